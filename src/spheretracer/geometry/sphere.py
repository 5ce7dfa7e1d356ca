"""Sphere primitive with closed-form ray-sphere intersection.

The ray-sphere intersection is found by solving

    |origin + t * direction - center|^2 = radius^2

which expands to the quadratic a*t^2 + b*t + c = 0 with

    L = origin - center
    a = dot(direction, direction)
    b = 2 * dot(L, direction)
    c = dot(L, L) - radius^2

The direction does not need to be unit length. Only the near root
(-b - sqrt(b^2 - 4ac)) / 2a is reported: a ray starting inside a sphere
therefore does not see that sphere, which is what the bounce loop relies on
after offsetting the origin along the outward normal.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.core.ray import Ray
    >>> from spheretracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 0), radius=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from spheretracer.core.ray import Ray, length_squared

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Squared direction lengths below this are treated as degenerate rays
DEGENERATE_DIRECTION_EPSILON = 1e-12

# Hit points closer than this to the center produce no usable normal
DEGENERATE_NORMAL_EPSILON = 1e-12

# Distance reported for a miss
NO_HIT = -1.0


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Spheres with radius <= 0 are
            never hit.
    """

    center: vec3
    radius: ti.f32


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere) -> ti.f32:
    """Find the near intersection distance of a ray with a sphere.

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: The sphere to test intersection against.

    Returns:
        The near root t of the intersection quadratic, or NO_HIT when the
        ray misses, the direction is degenerate or the sphere has no
        positive radius. The caller decides whether t lies in front of the
        origin.
    """
    t = NO_HIT

    oc = ray.origin - sphere.center
    a = length_squared(ray.direction)
    b = 2.0 * tm.dot(oc, ray.direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    if a > DEGENERATE_DIRECTION_EPSILON and sphere.radius > 0.0:
        discriminant = b * b - 4.0 * a * c
        if discriminant >= 0.0:
            t = (-b - ti.sqrt(discriminant)) / (2.0 * a)

    return t


@ti.func
def sphere_normal(point: vec3, sphere: Sphere):
    """Compute the outward unit normal at a point on the sphere surface.

    Args:
        point: A point on the sphere surface in world space.
        sphere: The sphere the point lies on.

    Returns:
        A tuple (normal, valid). valid is 0 when the point coincides with
        the sphere center and no normal can be derived.
    """
    local = point - sphere.center
    len_sq = tm.dot(local, local)
    normal = vec3(0.0, 0.0, 0.0)
    valid = 0
    if len_sq > DEGENERATE_NORMAL_EPSILON:
        normal = local / ti.sqrt(len_sq)
        valid = 1
    return normal, valid


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a Taichi kernel."""
    return Sphere(center=center, radius=radius)
