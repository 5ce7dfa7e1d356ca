"""Render configuration constants.

Every tunable constant of the tracer lives in :class:`RenderConfig`: the
bounce budget, the fixed sky color and directional light, the self
intersection epsilon, the per-bounce reflectance decay, camera speeds and
the random sampler selection. The defaults reproduce the reference look of
the renderer; tests override individual values with :meth:`RenderConfig.replace`.

Example:
    >>> from spheretracer.core.config import RenderConfig
    >>> config = RenderConfig()
    >>> config.bounces
    5
    >>> mirror_only = config.replace(bounces=1)
"""

import math
from dataclasses import dataclass, replace
from typing import Literal

# Sampler implementations understood by the integrator
SamplerKind = Literal["hash", "taichi"]

SAMPLER_KINDS: tuple[str, ...] = ("hash", "taichi")

# Largest viewport (in pixels) the preallocated per-pixel buffers can hold.
# Buffers are allocated once at this size so resizing never recompiles a kernel.
MAX_PIXELS = 1920 * 1080


@dataclass(frozen=True)
class RenderConfig:
    """Constants used by the camera, the path-trace kernel and the renderer.

    Attributes:
        bounces: Maximum number of ray segments traced per pixel sample.
        sky_color: Radiance returned when a ray escapes the scene (RGB).
        light_direction: Direction the single directional light travels in.
            Normalized when uploaded, so any non-zero vector is accepted.
        bounce_epsilon: Distance a bounced ray origin is pushed along the
            surface normal to avoid hitting the surface it left.
        reflectance_decay: Factor the path multiplier is scaled by after
            every surface hit.
        roughness_jitter: Half extent of the cube the normal perturbation
            is drawn from. Scaled by the material roughness.
        movement_speed: Camera translation speed in world units per second.
        rotation_speed: Camera rotation in radians per unit of look input.
        mouse_sensitivity: Conversion from pointer pixels to look input.
        pixel_center_offset: Sub-pixel position the ray for pixel (x, y)
            passes through, in pixels. 0.5 aims at the pixel center, 0.0 at
            its lower-left corner.
        seed: Seed of the per-pixel hash sampler.
        sampler: ``"hash"`` for the reproducible per-pixel hash stream or
            ``"taichi"`` for Taichi's built-in per-thread generator.
    """

    bounces: int = 5
    sky_color: tuple[float, float, float] = (0.6, 0.7, 0.9)
    light_direction: tuple[float, float, float] = (-1.0, -1.0, -1.0)
    bounce_epsilon: float = 1e-4
    reflectance_decay: float = 0.5
    roughness_jitter: float = 0.5
    movement_speed: float = 5.0
    rotation_speed: float = 0.3
    mouse_sensitivity: float = 0.002
    pixel_center_offset: float = 0.5
    seed: int = 0
    sampler: SamplerKind = "hash"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the configuration for values the kernels cannot handle.

        Raises:
            ValueError: If any value is out of its supported range.
        """
        if self.bounces < 0:
            raise ValueError(f"bounces must be >= 0, got {self.bounces}")

        if len(self.sky_color) != 3 or len(self.light_direction) != 3:
            raise ValueError("sky_color and light_direction must have 3 components")

        if math.sqrt(sum(c * c for c in self.light_direction)) < 1e-8:
            raise ValueError("light_direction must be a non-zero vector")

        if self.bounce_epsilon < 0.0:
            raise ValueError(f"bounce_epsilon must be >= 0, got {self.bounce_epsilon}")

        if not 0.0 <= self.pixel_center_offset < 1.0:
            raise ValueError(
                f"pixel_center_offset must be in [0, 1), got {self.pixel_center_offset}"
            )

        if self.sampler not in SAMPLER_KINDS:
            raise ValueError(
                f"Unknown sampler '{self.sampler}', expected one of {SAMPLER_KINDS}"
            )

        if not 0 <= self.seed < 2**31:
            raise ValueError(f"seed must be in [0, 2**31), got {self.seed}")

    def normalized_light_direction(self) -> tuple[float, float, float]:
        """Return the light direction scaled to unit length."""
        x, y, z = self.light_direction
        length = math.sqrt(x * x + y * y + z * z)
        return (x / length, y / length, z / length)

    def replace(self, **changes) -> "RenderConfig":
        """Return a copy with the given fields overridden."""
        return replace(self, **changes)
