"""Interactive preview window using Taichi GGUI.

Runs the render loop in a ti.ui.Window: every iteration feeds keyboard and
mouse state to the camera, renders one frame and shows it, so the image
converges while the camera holds still and restarts as soon as it moves.

Controls:
    - Hold the right mouse button to look around
    - While holding it: W/S forward and back, A/D left and right,
      Q/E down and up
    - Settings panel: toggle accumulation, reset it, last frame time
    - Scene panel: edit sphere position, radius and material, and every
      material's albedo, roughness and metallic value

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.preview.interactive import InteractivePreview
    >>> from spheretracer.scene.presets import create_default_scene
    >>>
    >>> preview = InteractivePreview(create_default_scene(), 1280, 720)
    >>> preview.run()  # Blocks until the window is closed
"""

import logging
import os
import time
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

import taichi as ti

from spheretracer.camera.perspective import LookInput, MovementInput
from spheretracer.core.config import MAX_PIXELS

if TYPE_CHECKING:
    from spheretracer.camera.perspective import Camera
    from spheretracer.core.renderer import Renderer
    from spheretracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Key bindings for the movement actions
MOVEMENT_KEYS = {
    "forward": "w",
    "backward": "s",
    "left": "a",
    "right": "d",
    "down": "q",
    "up": "e",
}

# Half extent of the position slider range around a sphere's initial center
POSITION_SLIDER_RANGE = 10.0


# Lazy kernel holder - kernel is created on first use after Taichi is initialized
_unpack_kernel: Any = None


def _get_unpack_kernel() -> Any:
    """Get or create the kernel copying the packed frame into a display field.

    The kernel is created lazily to ensure Taichi is initialized first.
    """
    global _unpack_kernel
    if _unpack_kernel is None:
        from spheretracer.core.renderer import image_data

        @ti.kernel
        def _kernel(width: ti.i32, dst: ti.template()):
            for x, y in dst:
                packed = image_data[x + y * width]
                r = ti.cast(packed & ti.cast(0xFF, ti.u32), ti.f32)
                g = ti.cast((packed >> 8) & ti.cast(0xFF, ti.u32), ti.f32)
                b = ti.cast((packed >> 16) & ti.cast(0xFF, ti.u32), ti.f32)
                dst[x, y] = ti.Vector([r, g, b]) / 255.0

        _unpack_kernel = _kernel
    return _unpack_kernel


def read_movement(is_pressed: Callable[[str], bool]) -> MovementInput:
    """Build the movement state from a key query function.

    Args:
        is_pressed: Returns whether the given key is held, e.g.
            ``window.is_pressed``.
    """
    return MovementInput(**{action: bool(is_pressed(key)) for action, key in MOVEMENT_KEYS.items()})


def read_look(
    previous: tuple[float, float],
    current: tuple[float, float],
    width: int,
    height: int,
    engaged: bool,
) -> LookInput:
    """Build the look state from two normalized cursor positions.

    GGUI reports cursor positions in [0, 1] with y growing upwards; the
    camera expects a pixel delta with y growing downwards.

    Args:
        previous: Cursor position on the previous frame.
        current: Cursor position on this frame.
        width: Window width in pixels.
        height: Window height in pixels.
        engaged: Whether free-look is engaged.
    """
    dx = (current[0] - previous[0]) * width
    dy = (previous[1] - current[1]) * height
    return LookInput(delta=(dx, dy), engaged=engaged)


class InteractivePreview:
    """Interactive render window using Taichi GGUI.

    Attributes:
        width: Window (and viewport) width in pixels.
        height: Window (and viewport) height in pixels.
        scene: The scene being rendered and edited.
        camera: The fly-through camera.
        renderer: The accumulating renderer.
        display_image: Taichi field holding the frame shown on the canvas.
    """

    def __init__(
        self,
        scene: "Scene",
        width: int,
        height: int,
        *,
        camera: "Camera | None" = None,
        renderer: "Renderer | None" = None,
        title: str = "Sphere Tracer",
    ) -> None:
        """Initialize the interactive preview.

        Args:
            scene: Scene to render. Edited in place by the Scene panel.
            width: Window width in pixels.
            height: Window height in pixels.
            camera: Camera to use (default: a Camera at its default pose).
            renderer: Renderer to use (default: a new Renderer).
            title: Window title.

        Note:
            Taichi must be initialized first. The window is created lazily
            by run(), so the preview can be built in headless environments.
        """
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.renderer import Renderer

        self.width = width
        self.height = height
        self.scene = scene
        self._title = title

        self.camera = camera if camera is not None else Camera()
        self.camera.resize(width, height)
        self.renderer = renderer if renderer is not None else Renderer()
        self.renderer.on_resize(width, height)

        self._window: "ti.ui.Window | None" = None
        self._canvas: "ti.ui.Canvas | None" = None

        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(width, height)
        )

        self._last_cursor = (0.5, 0.5)
        self._last_time: float | None = None

        # Slider ranges are fixed from the initial scene so dragging a
        # value never moves its own bounds
        self._position_ranges = [
            tuple((c - POSITION_SLIDER_RANGE, c + POSITION_SLIDER_RANGE) for c in sphere.center)
            for sphere in scene.spheres
        ]
        self._radius_limits = [max(2.0 * sphere.radius, 2.0) for sphere in scene.spheres]

    def _initialize_window(self) -> None:
        if self._window is not None:
            return

        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        if self._window is None:
            self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        if self._canvas is None:
            self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    def is_running(self) -> bool:
        """Check if the window is still open."""
        return self.window.running

    # =========================================================================
    # Frame Loop
    # =========================================================================

    def resize(self, width: int, height: int) -> bool:
        """Re-target the camera, renderer and display field to a new size.

        A zero dimension (a minimized window) keeps the current size, and so
        does a size beyond MAX_PIXELS, with a warning.

        Returns:
            Whether the size changed.
        """
        if width <= 0 or height <= 0 or (width, height) == (self.width, self.height):
            return False

        if width * height > MAX_PIXELS:
            logger.warning(
                "Window size %dx%d exceeds the %d pixel frame buffer; keeping %dx%d",
                width,
                height,
                MAX_PIXELS,
                self.width,
                self.height,
            )
            return False

        self.camera.resize(width, height)
        self.renderer.on_resize(width, height)
        self.width = width
        self.height = height
        self.display_image = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
        logger.info("Preview resized to %dx%d", width, height)
        return True

    def step(self, delta_time: float, movement: MovementInput, look: LookInput) -> bool:
        """Advance the camera and render one frame into the display field.

        Usable without a window, which is how the loop is tested.

        Returns:
            Whether the camera moved this frame.
        """
        moved = self.camera.update(delta_time, movement, look)
        if moved:
            self.renderer.reset_frame_index()

        self.renderer.render(self.scene, self.camera)
        _get_unpack_kernel()(self.width, self.display_image)
        return moved

    def _poll_input(self) -> tuple[MovementInput, LookInput]:
        window = self.window
        cursor = window.get_cursor_pos()
        engaged = window.is_pressed(ti.ui.RMB)

        look = read_look(self._last_cursor, cursor, self.width, self.height, engaged)
        self._last_cursor = cursor

        if not engaged:
            return MovementInput(), look
        return read_movement(window.is_pressed), look

    def run(self) -> None:
        """Run the render loop until the window is closed."""
        self._initialize_window()
        self._last_cursor = self.window.get_cursor_pos()
        self._last_time = time.perf_counter()

        while self.is_running():
            now = time.perf_counter()
            delta_time = now - self._last_time
            self._last_time = now

            self.resize(*self.window.get_window_shape())
            movement, look = self._poll_input()
            self.step(delta_time, movement, look)

            self._draw_gui_panels()

            self.canvas.set_image(self.display_image)
            self.window.show()

    def close(self) -> None:
        """Close the preview window."""
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        if os.uname().sysname == "Darwin":
            # SSH session without X forwarding
            return not (os.environ.get("SSH_CONNECTION") and not display)

        return bool(display or wayland)

    # =========================================================================
    # GUI Panels
    # =========================================================================

    def _draw_gui_panels(self) -> None:
        gui = self.window.get_gui()
        self._draw_settings_panel(gui)
        self._draw_scene_panel(gui)

    def _draw_settings_panel(self, gui: Any) -> None:
        with gui.sub_window("Settings", 0.02, 0.02, 0.25, 0.2) as panel:
            panel.text(f"Last render: {self.renderer.last_render_time_ms:.3f}ms")

            accumulate = panel.checkbox("Accumulate", self.renderer.settings.accumulate)
            if accumulate != self.renderer.settings.accumulate:
                self.renderer.settings.accumulate = accumulate
                self.renderer.reset_frame_index()

            if panel.button("Reset"):
                self.renderer.reset_frame_index()

            if panel.button("Export PNG"):
                self._export_png()

    def _draw_scene_panel(self, gui: Any) -> None:
        scene = self.scene
        material_count = len(scene.materials)

        with gui.sub_window("Scene", 0.72, 0.02, 0.26, 0.9) as panel:
            for i, sphere in enumerate(scene.spheres):
                panel.text(f"Sphere {i}")

                # Spheres added after start-up get ranges around their center
                if i < len(self._position_ranges):
                    ranges = self._position_ranges[i]
                    radius_limit = self._radius_limits[i]
                else:
                    ranges = tuple(
                        (c - POSITION_SLIDER_RANGE, c + POSITION_SLIDER_RANGE)
                        for c in sphere.center
                    )
                    radius_limit = max(2.0 * sphere.radius, 2.0)

                center = tuple(
                    panel.slider_float(f"{axis} ##{i}", value, minimum=lo, maximum=hi)
                    for axis, value, (lo, hi) in zip("xyz", sphere.center, ranges)
                )
                if center != tuple(sphere.center):
                    sphere.center = center

                sphere.radius = panel.slider_float(
                    f"Radius ##{i}", sphere.radius, minimum=0.0, maximum=radius_limit
                )

                if material_count > 0:
                    sphere.material_index = panel.slider_int(
                        f"Material ##{i}",
                        sphere.material_index,
                        minimum=0,
                        maximum=material_count - 1,
                    )

            for i, material in enumerate(scene.materials):
                panel.text(f"Material {i}")

                albedo = tuple(panel.color_edit_3(f"Albedo ##m{i}", material.albedo))
                if albedo != tuple(material.albedo):
                    material.albedo = albedo

                material.roughness = panel.slider_float(
                    f"Roughness ##m{i}", material.roughness, minimum=0.0, maximum=1.0
                )
                material.metallic = panel.slider_float(
                    f"Metallic ##m{i}", material.metallic, minimum=0.0, maximum=1.0
                )

    def _export_png(self) -> None:
        """Export the current frame to a timestamped PNG file."""
        from spheretracer.preview.export import save_png

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"spheres_{timestamp}.png"

        save_png(self.renderer, filename)
        logger.info("Exported %s", filename)
        print(f"Exported: {filename} ({self.renderer.frame_index - 1} frames)")
