"""Preview module for output and visualization.

Components:
    display: Unpacking of the renderer's packed output and a Matplotlib viewer
    export: PNG export via Pillow
    interactive: Taichi GGUI window with fly-through controls and scene editing

Example:
    >>> from spheretracer.preview import save_png, show_preview
    >>> for _ in range(64):
    ...     renderer.render(scene, camera)
    >>> show_preview(renderer)
    >>> save_png(renderer, "spheres.png")

For the interactive window:
    >>> from spheretracer.preview import InteractivePreview
    >>> InteractivePreview(scene, 1280, 720).run()
"""

from spheretracer.preview.display import show_preview, unpack_rgba
from spheretracer.preview.export import image_to_uint8, save_png, save_png_from_array
from spheretracer.preview.interactive import (
    InteractivePreview,
    read_look,
    read_movement,
)

__all__ = [
    # Interactive preview
    "InteractivePreview",
    "read_movement",
    "read_look",
    # Display
    "show_preview",
    "unpack_rgba",
    # Export
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
]
