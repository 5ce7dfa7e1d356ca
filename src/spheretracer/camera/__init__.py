"""Camera module for view and ray generation.

Components:
    perspective: Fly-through perspective camera, input structures and the
        cached per-pixel ray-direction table

Camera responsibilities:
    - Translate and rotate from per-frame movement and look input
    - Build projection and view matrices (and their inverses)
    - Unproject every pixel into a world-space ray direction once per
      camera change

Pixels are addressed as (x, y) with y = 0 at the bottom row of the image
and flattened as x + y * width.
"""

from .perspective import (
    Camera,
    LookInput,
    MovementInput,
    angle_axis,
    look_at,
    perspective_fov,
    quat_multiply,
    quat_rotate,
)

__all__ = [
    "Camera",
    "MovementInput",
    "LookInput",
    "perspective_fov",
    "look_at",
    "angle_axis",
    "quat_multiply",
    "quat_rotate",
]
