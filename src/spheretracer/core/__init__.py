"""Core rendering module.

This module contains the fundamental building blocks of the path tracer:

Components:
    ray: Ray data structure and vector helpers
    sampler: Uniform-in-a-cube random vector sampling (hash and Taichi streams)
    config: RenderConfig, the single structure of tunable constants
    integrator: The per-pixel bounce loop and its kernel-side configuration
    renderer: Accumulation buffer, frame index and the parallel frame sweep

All compute-intensive operations use Taichi kernels; the outermost loop of
the frame kernel runs over flat pixel indices and is parallelized by Taichi.
"""

from .config import SAMPLER_KINDS, RenderConfig, SamplerKind
from .ray import Ray, length_squared, make_ray, ray_at, reflect, vec3, vec4

# Note: integrator and renderer are NOT imported here because they declare
# Taichi fields at import time. Import them directly once Taichi is
# initialized:
#   from spheretracer.core.renderer import Renderer

__all__ = [
    "RenderConfig",
    "SamplerKind",
    "SAMPLER_KINDS",
    "Ray",
    "ray_at",
    "make_ray",
    "length_squared",
    "reflect",
    "vec3",
    "vec4",
]
