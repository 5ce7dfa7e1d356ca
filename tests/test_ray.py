"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- length_squared
- Mirror reflection
"""

import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_origin(self):
        """Test ray_at returns origin when t=0."""
        from spheretracer.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 2.0) < 1e-6
        assert abs(r[2] - 3.0) < 1e-6

    def test_ray_at_positive_t(self):
        """Test ray_at computes correct point along ray."""
        from spheretracer.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -2.0))
            result[None] = ray_at(ray, 1.5)

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-6
        assert abs(r[1]) < 1e-6
        assert abs(r[2] - 2.0) < 1e-6

    def test_length_squared(self):
        """Test length_squared of a 3-4-0 vector."""
        from spheretracer.core.ray import length_squared, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = length_squared(vec3(3.0, 4.0, 0.0))

        test_kernel()
        assert abs(result[None] - 25.0) < 1e-5


class TestReflect:
    """Tests for mirror reflection about a normal."""

    def test_reflect_head_on(self):
        """A ray hitting a surface head-on comes straight back."""
        from spheretracer.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0))

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-6
        assert abs(r[1]) < 1e-6
        assert abs(r[2] - 1.0) < 1e-6

    def test_reflect_45_degrees(self):
        """The tangential component is kept, the normal component flips."""
        from spheretracer.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6

    def test_reflect_unnormalized_normal(self):
        """Reflecting about a non-unit normal scales the normal component."""
        from spheretracer.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            # i - 2 (n.i) n with n = (0, 2, 0), i = (0, -1, 0): (0, -1 + 8, 0)
            result[None] = reflect(vec3(0.0, -1.0, 0.0), vec3(0.0, 2.0, 0.0))

        test_kernel()
        assert abs(result[None][1] - 7.0) < 1e-5
