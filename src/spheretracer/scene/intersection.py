"""Scene upload and closest-hit ray tracing.

The scene is mirrored into Taichi fields in Structure-of-Arrays layout
before a frame is traced. :func:`trace_ray` scans every sphere linearly,
keeps the nearest intersection in front of the ray origin and turns it into
a :class:`HitPayload`; a ray that hits nothing gets a payload with a
negative hit distance.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.scene.intersection import upload_scene, trace_ray
    >>> upload_scene(scene)
    >>> # Inside a Taichi kernel: payload = trace_ray(make_ray(origin, direction))
"""

import logging

import taichi as ti
import taichi.math as tm

from spheretracer.core.ray import Ray, ray_at
from spheretracer.geometry.sphere import NO_HIT, hit_sphere, make_sphere, sphere_normal
from spheretracer.geometry.sphere import Sphere as SpherePrimitive
from spheretracer.materials.material import clear_materials, upload_materials
from spheretracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Initial "closest so far" distance of a scan
FAR_DISTANCE = 1e30


@ti.dataclass
class HitPayload:
    """Result of tracing a ray through the scene.

    Attributes:
        hit_distance: Ray parameter of the closest hit. Negative on a miss.
        world_position: World-space hit point. Only valid on a hit.
        world_normal: Outward unit normal at the hit point. Only valid on a hit.
        object_index: Index of the hit sphere, -1 on a miss.
    """

    hit_distance: ti.f32
    world_position: vec3
    world_normal: vec3
    object_index: ti.i32


# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_indices = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Fingerprint of the scene currently held by the tables, None when cleared
_uploaded = {"fingerprint": None}


def clear_scene() -> None:
    """Clear all spheres and materials from the kernel-side tables."""
    num_spheres[None] = 0
    clear_materials()
    _uploaded["fingerprint"] = None


def upload_scene(scene: Scene) -> None:
    """Validate a scene and copy it into the kernel-side tables.

    Must not be called while a frame kernel is running; the renderer only
    uploads between frames.

    Args:
        scene: The scene to upload.

    Raises:
        SceneValidationError: If a sphere references a missing material.
        ValueError: If a material parameter is out of range.
        RuntimeError: If the scene exceeds MAX_SPHERES spheres or
            MAX_MATERIALS materials.
    """
    scene.validate()

    if len(scene.spheres) > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    upload_materials(scene.materials)

    for idx, sphere in enumerate(scene.spheres):
        sphere_centers[idx] = [sphere.center[0], sphere.center[1], sphere.center[2]]
        sphere_radii[idx] = sphere.radius
        sphere_material_indices[idx] = sphere.material_index

    num_spheres[None] = len(scene.spheres)
    _uploaded["fingerprint"] = scene.fingerprint()
    logger.info(
        "Uploaded scene: %d sphere(s), %d material(s)",
        len(scene.spheres),
        len(scene.materials),
    )


def get_sphere_count() -> int:
    """Get the number of spheres in the kernel-side table."""
    return int(num_spheres[None])


def get_uploaded_fingerprint() -> tuple | None:
    """Get the fingerprint of the last uploaded scene, or None after a clear."""
    return _uploaded["fingerprint"]


@ti.func
def get_sphere_material_index(object_index: ti.i32) -> ti.i32:
    """Get the material index of an uploaded sphere."""
    return sphere_material_indices[object_index]


@ti.func
def miss() -> HitPayload:
    """Build the payload for a ray that hit nothing."""
    return HitPayload(
        hit_distance=NO_HIT,
        world_position=vec3(0.0, 0.0, 0.0),
        world_normal=vec3(0.0, 0.0, 0.0),
        object_index=-1,
    )


@ti.func
def _uploaded_sphere(object_index: ti.i32) -> SpherePrimitive:
    return make_sphere(sphere_centers[object_index], sphere_radii[object_index])


@ti.func
def closest_hit(ray: Ray, hit_distance: ti.f32, object_index: ti.i32) -> HitPayload:
    """Build the payload for the closest accepted hit of a scan.

    Falls back to a miss if the hit point coincides with the sphere center,
    which can only happen for degenerate spheres.
    """
    world_position = ray_at(ray, hit_distance)
    normal, valid = sphere_normal(world_position, _uploaded_sphere(object_index))

    result = miss()
    if valid == 1:
        result = HitPayload(
            hit_distance=hit_distance,
            world_position=world_position,
            world_normal=normal,
            object_index=object_index,
        )
    return result


@ti.func
def trace_ray(ray: Ray) -> HitPayload:
    """Find the closest sphere hit in front of the ray origin.

    Tests every sphere (no early exit, no acceleration structure) and keeps
    the smallest near-root distance that is positive.

    Args:
        ray: The ray to trace (direction need not be normalized).

    Returns:
        The payload of the closest hit, or a miss payload with a negative
        hit distance.
    """
    hit_distance = FAR_DISTANCE
    closest = -1

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        t = hit_sphere(ray, _uploaded_sphere(i))
        if t > 0.0 and t < hit_distance:
            hit_distance = t
            closest = i

    result = miss()
    if closest >= 0:
        result = closest_hit(ray, hit_distance, closest)
    return result
