"""Progressive frame renderer.

The renderer owns the accumulation buffer and the packed output image and
orchestrates one frame per :meth:`Renderer.render` call:

1. upload the scene if it changed since the last upload;
2. make the camera's ray table current;
3. on frame index 1, zero the accumulation buffer;
4. for every pixel in parallel, add one new sample to the accumulation,
   divide by the frame index, clamp to [0, 1] and pack into 0xAABBGGRR;
5. advance the frame index (or hold it at 1 when accumulation is off).

Camera motion and scene edits reset the frame index to 1, which discards
the stale accumulation on the next frame. The renderer detects both on its
own (camera revision, scene fingerprint); callers can also reset
explicitly with :meth:`Renderer.reset_frame_index`.

Buffers are flat, indexed x + y * width, and preallocated to MAX_PIXELS so
resizing the viewport never recompiles a kernel.
The buffers are shared by every Renderer: a renderer that renders after
another one has used them starts a fresh accumulation, and readback returns
the frame of whichever renderer rendered last.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.camera.perspective import Camera
    >>> from spheretracer.core.renderer import Renderer
    >>> from spheretracer.scene.presets import create_default_scene
    >>>
    >>> scene = create_default_scene()
    >>> camera = Camera()
    >>> camera.resize(640, 360)
    >>> renderer = Renderer(640, 360)
    >>> for _ in range(32):
    ...     renderer.render(scene, camera)
    >>> pixels = renderer.get_image_rgba8()
"""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretracer.core.config import MAX_PIXELS, RenderConfig
from spheretracer.core.integrator import configure_integrator, get_integrator_config, per_pixel
from spheretracer.scene.intersection import get_uploaded_fingerprint, upload_scene

if TYPE_CHECKING:
    from spheretracer.camera.perspective import Camera
    from spheretracer.scene.scene import Scene

logger = logging.getLogger(__name__)

vec4 = tm.vec4


@dataclass
class RendererSettings:
    """Per-renderer switches a user interface may toggle.

    Attributes:
        accumulate: Average samples across frames while nothing changes.
            When off every frame shows a single fresh sample.
    """

    accumulate: bool = True


# =============================================================================
# Frame Buffers
# =============================================================================

# Running sum of samples per pixel since the last reset (RGBA)
accumulation = ti.Vector.field(4, dtype=ti.f32, shape=MAX_PIXELS)

# Packed 0xAABBGGRR color per pixel
image_data = ti.field(dtype=ti.u32, shape=MAX_PIXELS)

# The buffers are shared; track which renderer last accumulated into them
_buffer_owner = {"renderer": None}


@ti.func
def pack_rgba(color: vec4) -> ti.u32:
    """Pack a color in [0, 1] into 0xAABBGGRR (alpha forced to 255)."""
    r = ti.cast(color.x * 255.0, ti.u32)
    g = ti.cast(color.y * 255.0, ti.u32)
    b = ti.cast(color.z * 255.0, ti.u32)
    a = ti.cast(255, ti.u32)
    return (a << 24) | (b << 16) | (g << 8) | r


@ti.func
def sanitize_sample(color: vec4) -> vec4:
    """Replace NaN and Inf components with zero."""
    result = color
    for c in ti.static(range(4)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            result[c] = 0.0
    return result


@ti.kernel
def _clear_accumulation(n: ti.i32):
    for i in range(n):
        accumulation[i] = vec4(0.0, 0.0, 0.0, 0.0)


@ti.kernel
def _render_frame(n: ti.i32, width: ti.i32, frame_index: ti.i32, sample_index: ti.i32):
    """Add one sample to every pixel and refresh the packed output."""
    for i in range(n):
        x = i % width
        y = i // width

        color = sanitize_sample(per_pixel(x, y, width, sample_index))

        accumulation[i] += color

        averaged = accumulation[i] / ti.cast(frame_index, ti.f32)
        averaged = tm.clamp(averaged, 0.0, 1.0)
        image_data[i] = pack_rgba(averaged)


# =============================================================================
# Renderer
# =============================================================================


class Renderer:
    """Accumulating renderer for a sphere scene seen through a Camera.

    Attributes:
        settings: User-facing switches (accumulation on/off).
    """

    def __init__(
        self,
        width: int = 0,
        height: int = 0,
        config: RenderConfig | None = None,
        settings: RendererSettings | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            width: Initial viewport width in pixels.
            height: Initial viewport height in pixels.
            config: Kernel configuration. Defaults to RenderConfig().
            settings: Renderer switches. Defaults to RendererSettings().

        Raises:
            ValueError: If the dimensions are negative or exceed MAX_PIXELS.
        """
        self._config = config if config is not None else RenderConfig()
        self.settings = settings if settings is not None else RendererSettings()

        self._width = 0
        self._height = 0
        self._frame_index = 1
        self._sample_index = 0
        self._last_render_time_ms = 0.0

        self._camera_state: tuple[int, int] | None = None
        self._warned_configs: tuple[int, int] | None = None
        self._scene_fingerprint: tuple | None = None

        self.on_resize(width, height)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def frame_index(self) -> int:
        """Index of the next frame within the current accumulation (1-based)."""
        return self._frame_index

    @property
    def sample_index(self) -> int:
        """Number of frames traced since the renderer was created."""
        return self._sample_index

    @property
    def last_render_time_ms(self) -> float:
        """Wall-clock duration of the last render call in milliseconds."""
        return self._last_render_time_ms

    @property
    def config(self) -> RenderConfig:
        return self._config

    @config.setter
    def config(self, value: RenderConfig) -> None:
        self._config = value
        self.reset_frame_index()

    # -------------------------------------------------------------------------
    # Frame control
    # -------------------------------------------------------------------------

    def on_resize(self, width: int, height: int) -> None:
        """Re-target the buffers to a new viewport size.

        A no-op when the size is unchanged; otherwise accumulation restarts.

        Raises:
            ValueError: If a dimension is negative or the pixel count
                exceeds MAX_PIXELS.
        """
        if width == self._width and height == self._height:
            return

        if width < 0 or height < 0:
            raise ValueError(f"Viewport dimensions must be >= 0, got {width}x{height}")
        if width * height > MAX_PIXELS:
            raise ValueError(
                f"Viewport dimensions ({width}x{height}) exceed maximum supported "
                f"pixel count ({MAX_PIXELS})"
            )

        self._width = int(width)
        self._height = int(height)
        self.reset_frame_index()
        logger.info("Renderer resized to %dx%d", width, height)

    def reset_frame_index(self) -> None:
        """Discard the accumulation; the next frame starts a fresh average."""
        self._frame_index = 1

    def render(self, scene: "Scene", camera: "Camera") -> None:
        """Trace one frame and fold it into the accumulation.

        Args:
            scene: Scene to render. Uploaded when it changed.
            camera: Camera to render from. Its viewport must match the
                renderer's size.

        Raises:
            ValueError: If the camera viewport differs from the renderer
                size, or the scene fails validation.
            RuntimeError: If the scene exceeds the sphere or material limits.
        """
        if (camera.viewport_width, camera.viewport_height) != (self._width, self._height):
            raise ValueError(
                f"Camera viewport ({camera.viewport_width}x{camera.viewport_height}) "
                f"does not match renderer size ({self._width}x{self._height})"
            )

        start = time.perf_counter()

        self._sync_scene(scene)
        self._sync_camera(camera)

        if get_integrator_config() is not self._config:
            configure_integrator(self._config)

        if _buffer_owner["renderer"] is not self:
            _buffer_owner["renderer"] = self
            self.reset_frame_index()

        n = self._width * self._height
        if n > 0:
            if self._frame_index == 1:
                _clear_accumulation(n)
            _render_frame(n, self._width, self._frame_index, self._sample_index)
            ti.sync()

        self._sample_index += 1
        if self.settings.accumulate:
            self._frame_index += 1
        else:
            self._frame_index = 1

        self._last_render_time_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            "Rendered sample %d in %.2f ms", self._sample_index - 1, self._last_render_time_ms
        )

    def _sync_scene(self, scene: "Scene") -> None:
        fingerprint = scene.fingerprint()
        if fingerprint != get_uploaded_fingerprint():
            upload_scene(scene)
        if fingerprint != self._scene_fingerprint:
            if self._scene_fingerprint is not None:
                logger.debug("Scene changed, resetting accumulation")
            self._scene_fingerprint = fingerprint
            self.reset_frame_index()

    def _sync_camera(self, camera: "Camera") -> None:
        self._check_camera_config(camera)
        camera.prepare()
        state = (id(camera), camera.revision)
        if state != self._camera_state:
            self._camera_state = state
            self.reset_frame_index()

    def _check_camera_config(self, camera: "Camera") -> None:
        pair = (id(camera.config), id(self._config))
        if pair == self._warned_configs or camera.config == self._config:
            return
        self._warned_configs = pair
        logger.warning(
            "Camera and renderer use different render configurations; "
            "the camera supplies the pixel-center offset and the renderer "
            "the kernel constants: camera=%s renderer=%s",
            camera.config,
            self._config,
        )

    # -------------------------------------------------------------------------
    # Readback
    # -------------------------------------------------------------------------

    def get_image_data(self) -> npt.NDArray[np.uint32]:
        """Get the packed output image.

        Returns:
            Flat uint32 array of length width * height, pixel (x, y) at
            index x + y * width, each value 0xAABBGGRR.
        """
        n = self._width * self._height
        return image_data.to_numpy()[:n].copy()

    def get_image_rgba8(self) -> npt.NDArray[np.uint8]:
        """Get the output image as 8-bit RGBA rows, top row first.

        Returns:
            Array of shape (height, width, 4) with dtype uint8.
        """
        from spheretracer.preview.display import unpack_rgba

        return unpack_rgba(self.get_image_data(), self._width, self._height)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the displayed image as floats, top row first.

        Returns:
            Array of shape (height, width, 3) with values in [0, 1], the
            8-bit quantized output scaled back to floats.
        """
        rgba = self.get_image_rgba8()
        return (rgba[:, :, :3].astype(np.float32) / 255.0).astype(np.float32)

    def get_accumulation_numpy(self) -> npt.NDArray[np.float32]:
        """Get the raw accumulation sums.

        Returns:
            Flat array of shape (width * height, 4): the sum of every sample
            added since the last reset.
        """
        n = self._width * self._height
        return accumulation.to_numpy()[:n].astype(np.float32)

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self._width}, height={self._height}, "
            f"frame_index={self._frame_index}, accumulate={self.settings.accumulate})"
        )
