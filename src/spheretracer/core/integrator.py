"""Per-pixel path-trace kernel.

Traces one sample for one pixel: a primary ray from the camera position
along the pixel's cached direction, followed by up to ``bounces`` mirror
bounces. Every surface hit adds its albedo lit by a single directional
light; a ray that escapes adds the sky color. Each hit halves the
contribution of everything that follows, and roughness perturbs the normal
the ray reflects about.

This is an approximate, non-physical model: there is no shadow ray, no
emission and no importance sampling. Its appeal is that it converges to a
soft, glossy look within a few dozen accumulated frames.

The kernel constants come from :class:`RenderConfig` and are mirrored into
0-d fields by :func:`configure_integrator`, so changing them never
recompiles the kernel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.camera.perspective import Camera
    >>> from spheretracer.core.config import RenderConfig
    >>> from spheretracer.core.integrator import configure_integrator, render_sample
    >>> from spheretracer.scene.intersection import upload_scene
    >>> from spheretracer.scene.presets import create_default_scene
    >>>
    >>> configure_integrator(RenderConfig())
    >>> upload_scene(create_default_scene())
    >>> camera = Camera()
    >>> camera.resize(64, 64)
    >>> render_sample(camera, 10, 20, sample_index=3)
"""

import logging
from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

from spheretracer.camera.perspective import camera_position, ray_directions
from spheretracer.core.config import RenderConfig
from spheretracer.core.ray import make_ray, reflect
from spheretracer.core.sampler import sample_cube, sampler_code, seed_stream
from spheretracer.materials.material import get_material_albedo, get_material_roughness
from spheretracer.scene.intersection import get_sphere_material_index, trace_ray

if TYPE_CHECKING:
    from spheretracer.camera.perspective import Camera

logger = logging.getLogger(__name__)

# Type aliases using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4

# =============================================================================
# Kernel Configuration
# =============================================================================

_bounces = ti.field(dtype=ti.i32, shape=())
_sky_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_light_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_bounce_epsilon = ti.field(dtype=ti.f32, shape=())
_reflectance_decay = ti.field(dtype=ti.f32, shape=())
_roughness_jitter = ti.field(dtype=ti.f32, shape=())
_seed = ti.field(dtype=ti.i32, shape=())
_sampler = ti.field(dtype=ti.i32, shape=())

# Config currently mirrored into the fields above
_active = {"config": None}


def configure_integrator(config: RenderConfig) -> None:
    """Mirror a render configuration into the kernel-side fields.

    Args:
        config: The configuration to use for subsequent samples.
    """
    _bounces[None] = config.bounces
    _sky_color[None] = list(config.sky_color)
    _light_direction[None] = list(config.normalized_light_direction())
    _bounce_epsilon[None] = config.bounce_epsilon
    _reflectance_decay[None] = config.reflectance_decay
    _roughness_jitter[None] = config.roughness_jitter
    _seed[None] = config.seed
    _sampler[None] = sampler_code(config.sampler)

    _active["config"] = config
    logger.debug("Integrator configured: %s", config)


def get_integrator_config() -> RenderConfig | None:
    """Get the configuration currently mirrored into the kernel fields."""
    return _active["config"]


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def per_pixel(x: ti.i32, y: ti.i32, width: ti.i32, sample_index: ti.i32) -> vec4:
    """Trace one sample for pixel (x, y).

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = bottom).
        width: Viewport width, used to flatten the pixel index.
        sample_index: Index of the frame being traced; keys the random stream.

    Returns:
        The sample color as RGBA with alpha 1. Components may exceed 1.
    """
    pixel_index = x + y * width

    ray = make_ray(camera_position[None], ray_directions[pixel_index])

    color = vec3(0.0, 0.0, 0.0)
    multiplier = 1.0

    state = seed_stream(pixel_index, sample_index, _seed[None])
    jitter_extent = _roughness_jitter[None]

    # Active flag for path continuation (no break in ti.func loops)
    active = 1

    for _ in range(_bounces[None]):
        if active == 1:
            payload = trace_ray(ray)

            if payload.hit_distance < 0.0:
                color += _sky_color[None] * multiplier
                active = 0
            else:
                light_intensity = tm.max(
                    tm.dot(payload.world_normal, -_light_direction[None]), 0.0
                )

                material_index = get_sphere_material_index(payload.object_index)
                sphere_color = get_material_albedo(material_index) * light_intensity
                color += sphere_color * multiplier

                multiplier *= _reflectance_decay[None]

                roughness = get_material_roughness(material_index)
                jitter, state = sample_cube(state, _sampler[None], -jitter_extent, jitter_extent)

                ray = make_ray(
                    payload.world_position + payload.world_normal * _bounce_epsilon[None],
                    reflect(ray.direction, payload.world_normal + roughness * jitter),
                )

    return vec4(color.x, color.y, color.z, 1.0)


# =============================================================================
# Single Pixel Evaluation
# =============================================================================


@ti.kernel
def _render_single_pixel(x: ti.i32, y: ti.i32, width: ti.i32, sample_index: ti.i32) -> vec4:
    """Trace one sample for a specific pixel."""
    return per_pixel(x, y, width, sample_index)


def render_sample(
    camera: "Camera",
    x: int,
    y: int,
    sample_index: int = 0,
) -> tuple[float, float, float, float]:
    """Trace one sample for a specific pixel from Python.

    Uses the scene currently uploaded and the configuration currently
    mirrored into the kernel (the default configuration if none was set).
    With the hash sampler the result equals the sample the renderer adds to
    the pixel when it traces frame ``sample_index``.

    Args:
        camera: Camera to trace from; its ray table is made current first.
        x: Pixel column (0 = left).
        y: Pixel row (0 = bottom).
        sample_index: Frame index keying the random stream.

    Returns:
        Tuple of (R, G, B, A) values.

    Raises:
        ValueError: If the pixel lies outside the camera's viewport.
    """
    width = camera.viewport_width
    height = camera.viewport_height
    if not (0 <= x < width and 0 <= y < height):
        raise ValueError(f"Pixel ({x}, {y}) is outside the {width}x{height} viewport")

    if _active["config"] is None:
        configure_integrator(camera.config)

    camera.prepare()
    color = _render_single_pixel(x, y, width, sample_index)
    return (float(color[0]), float(color[1]), float(color[2]), float(color[3]))
