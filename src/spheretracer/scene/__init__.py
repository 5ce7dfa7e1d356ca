"""Scene module for scene description, upload and ray queries.

Components:
    scene: Sphere and Scene dataclasses, validation and change fingerprints
    intersection: Kernel-side sphere table, HitPayload and closest-hit tracing
    presets: Ready-made scenes (default two-sphere scene, single sphere)

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for sphere centers, radii and material indices
    - Materials addressed by index, shared between spheres
"""

from .intersection import (
    MAX_SPHERES,
    HitPayload,
    clear_scene,
    get_sphere_count,
    get_uploaded_fingerprint,
    trace_ray,
    upload_scene,
)
from .presets import create_default_scene, create_single_sphere_scene
from .scene import Scene, SceneValidationError, Sphere

__all__ = [
    "Scene",
    "Sphere",
    "SceneValidationError",
    "HitPayload",
    "MAX_SPHERES",
    "clear_scene",
    "upload_scene",
    "get_sphere_count",
    "get_uploaded_fingerprint",
    "trace_ray",
    "create_default_scene",
    "create_single_sphere_scene",
]
