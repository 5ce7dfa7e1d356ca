"""Ray data structure and vector utilities for the path tracing kernels.

This module provides the Ray dataclass and the small set of vector helpers
the bounce loop needs. All operations are Taichi functions so they can be
inlined into the per-pixel kernel.

Directions are deliberately not required to be unit length: the bounce loop
reflects about a roughness-perturbed normal, which produces non-unit
directions, and the sphere intersection handles that case.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 5.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 4.0)  # (0, 0, 1)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Need not be
            normalized.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a Taichi kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Uses R = I - 2(N . I)N. The normal is used as given, so a perturbed,
    non-unit normal yields a correspondingly skewed (and non-unit) result,
    which is how surface roughness spreads the reflection.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal, possibly perturbed.

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(normal, incident) * normal
