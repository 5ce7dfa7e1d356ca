"""Matplotlib-based preview display for rendered frames.

The renderer produces a flat buffer of packed 0xAABBGGRR pixels with row 0
at the bottom of the image. :func:`unpack_rgba` turns that into a regular
(height, width, 4) uint8 image with the top row first, which is what
Matplotlib, Pillow and most other image consumers expect.

Example:
    >>> from spheretracer.preview.display import show_preview
    >>> for _ in range(64):
    ...     renderer.render(scene, camera)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from spheretracer.core.renderer import Renderer


def unpack_rgba(
    packed: npt.ArrayLike,
    width: int,
    height: int,
) -> npt.NDArray[np.uint8]:
    """Unpack a flat buffer of 0xAABBGGRR pixels into an RGBA image.

    Args:
        packed: Flat array of width * height packed pixels, pixel (x, y) at
            index x + y * width with y = 0 at the bottom.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Array of shape (height, width, 4) with dtype uint8, top row first.

    Raises:
        ValueError: If the buffer length doesn't match width * height.
    """
    data = np.asarray(packed, dtype=np.uint32).ravel()
    if data.size != width * height:
        raise ValueError(
            f"Packed buffer has {data.size} pixels, expected {width}x{height}"
        )

    channels = [((data >> shift) & 0xFF).astype(np.uint8) for shift in (0, 8, 16, 24)]
    image = np.stack(channels, axis=-1).reshape(height, width, 4)

    # Row 0 is the bottom of the image
    return np.ascontiguousarray(np.flipud(image))


def show_preview(
    renderer: Renderer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display the current frame as a Matplotlib figure.

    Args:
        renderer: The Renderer whose output to display.
        title: Custom title (default shows the accumulated frame count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until the figure is closed.
    """
    import matplotlib.pyplot as plt

    image = renderer.get_image_rgba8()

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {renderer.frame_index - 1} frames accumulated"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
