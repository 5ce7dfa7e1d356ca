"""Unit tests for scene upload and closest-hit tracing.

Tests cover:
- Uploading scenes into the kernel-side tables
- Closest hit among several spheres
- Misses, spheres behind the origin, non-positive radii
- Upload validation
"""

import math

import pytest
import taichi as ti


def _trace(origin, direction):
    """Trace one ray through the uploaded scene from Python."""
    from spheretracer.core.ray import make_ray
    from spheretracer.scene.intersection import trace_ray, vec3

    distance = ti.field(dtype=ti.f32, shape=())
    position = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    index = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
        payload = trace_ray(make_ray(vec3(ox, oy, oz), vec3(dx, dy, dz)))
        distance[None] = payload.hit_distance
        position[None] = payload.world_position
        normal[None] = payload.world_normal
        index[None] = payload.object_index

    test_kernel(*origin, *direction)
    return (
        float(distance[None]),
        tuple(position[None]),
        tuple(normal[None]),
        int(index[None]),
    )


class TestSceneUpload:
    """Tests for upload_scene and clear_scene."""

    def test_upload_counts(self):
        from spheretracer.materials.material import get_material_count
        from spheretracer.scene.intersection import get_sphere_count, upload_scene
        from spheretracer.scene.presets import create_default_scene

        upload_scene(create_default_scene())
        assert get_sphere_count() == 2
        assert get_material_count() == 2

    def test_clear_scene(self):
        from spheretracer.materials.material import get_material_count
        from spheretracer.scene.intersection import (
            clear_scene,
            get_sphere_count,
            get_uploaded_fingerprint,
            upload_scene,
        )
        from spheretracer.scene.presets import create_default_scene

        upload_scene(create_default_scene())
        clear_scene()
        assert get_sphere_count() == 0
        assert get_material_count() == 0
        assert get_uploaded_fingerprint() is None

    def test_upload_records_fingerprint(self):
        from spheretracer.scene.intersection import get_uploaded_fingerprint, upload_scene
        from spheretracer.scene.presets import create_default_scene

        scene = create_default_scene()
        upload_scene(scene)
        assert get_uploaded_fingerprint() == scene.fingerprint()

    def test_upload_invalid_material_index_raises(self):
        from spheretracer.scene.intersection import get_sphere_count, upload_scene
        from spheretracer.scene.presets import create_default_scene
        from spheretracer.scene.scene import SceneValidationError

        scene = create_default_scene()
        scene.spheres[1].material_index = 5

        with pytest.raises(SceneValidationError):
            upload_scene(scene)
        assert get_sphere_count() == 0

    def test_too_many_spheres_raise(self):
        from spheretracer.scene.intersection import MAX_SPHERES, upload_scene
        from spheretracer.scene.scene import Scene, Sphere

        scene = Scene()
        scene.add_material()
        scene.spheres = [Sphere(center=(float(i), 0.0, 0.0)) for i in range(MAX_SPHERES + 1)]

        with pytest.raises(RuntimeError):
            upload_scene(scene)


class TestTraceRay:
    """Tests for closest-hit tracing."""

    def test_empty_scene_misses(self):
        distance, _, _, index = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert distance < 0.0
        assert index == -1

    def test_direct_hit(self):
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.presets import create_single_sphere_scene

        upload_scene(create_single_sphere_scene())
        distance, position, normal, index = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))

        assert distance == pytest.approx(4.0, abs=1e-5)
        assert index == 0
        assert position == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)

    def test_closest_of_two(self):
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.scene import Scene

        scene = Scene()
        scene.add_material()
        # Farther sphere first so the scan has to replace its hit
        scene.add_sphere(center=(0.0, 0.0, -10.0), radius=1.0)
        scene.add_sphere(center=(0.0, 0.0, 0.0), radius=1.0)
        upload_scene(scene)

        distance, _, _, index = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert index == 1
        assert distance == pytest.approx(4.0, abs=1e-5)

    def test_sphere_behind_origin_ignored(self):
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.presets import create_single_sphere_scene

        upload_scene(create_single_sphere_scene())
        distance, _, _, index = _trace((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert distance < 0.0
        assert index == -1

    def test_origin_inside_sphere_sees_nothing(self):
        """Only the near root counts; from inside it lies behind the origin."""
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.presets import create_single_sphere_scene

        upload_scene(create_single_sphere_scene())
        distance, _, _, index = _trace((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert distance < 0.0
        assert index == -1

    def test_zero_radius_sphere_skipped(self):
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.scene import Scene

        scene = Scene()
        scene.add_material()
        scene.add_sphere(center=(0.0, 0.0, 0.0), radius=0.0)
        scene.add_sphere(center=(0.0, 0.0, -5.0), radius=1.0)
        upload_scene(scene)

        distance, _, _, index = _trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert index == 1
        assert distance == pytest.approx(9.0, abs=1e-4)

    def test_ground_sphere_from_above(self):
        from spheretracer.scene.intersection import upload_scene
        from spheretracer.scene.presets import create_default_scene

        upload_scene(create_default_scene())
        distance, position, normal, index = _trace((3.0, 2.0, 0.0), (0.0, -1.0, 0.0))

        assert index == 1
        # Surface point below x = 3: y = -101 + sqrt(100^2 - 3^2)
        assert distance == pytest.approx(103.0 - math.sqrt(9991.0), abs=1e-3)
        assert normal[1] > 0.99
