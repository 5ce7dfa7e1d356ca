"""Geometry module for the sphere primitive.

Components:
    sphere: Sphere dataclass, near-root ray-sphere intersection and the
        outward normal

Spheres are the only primitive and scenes are scanned linearly, so there is
no acceleration structure here. All routines are Taichi functions
(@ti.func) inlined into the per-pixel kernel.
"""

from .sphere import NO_HIT, Sphere, hit_sphere, make_sphere, sphere_normal

__all__ = [
    "Sphere",
    "NO_HIT",
    "hit_sphere",
    "sphere_normal",
    "make_sphere",
]
