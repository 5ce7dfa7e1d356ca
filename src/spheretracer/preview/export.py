"""PNG export of rendered frames via Pillow.

Example:
    >>> from spheretracer.preview.export import save_png
    >>> for _ in range(64):
    ...     renderer.render(scene, camera)
    >>> save_png(renderer, "spheres.png")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from spheretracer.core.renderer import Renderer


def image_to_uint8(image: npt.NDArray) -> npt.NDArray[np.uint8]:
    """Convert an image to 8 bits per channel.

    Float images are clamped to [0, 1] and scaled by 255 (truncating, the
    same quantization the renderer uses). uint8 images pass through.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4).

    Returns:
        uint8 array of the same shape.

    Raises:
        ValueError: If the image isn't an RGB or RGBA array.
    """
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3) or (H, W, 4) image, got {image.shape}")

    if image.dtype == np.uint8:
        return image

    clamped = np.clip(np.nan_to_num(image.astype(np.float32)), 0.0, 1.0)
    return (clamped * 255.0).astype(np.uint8)


def save_png(renderer: Renderer, filepath: str) -> None:
    """Save the renderer's current frame as an 8-bit RGB PNG.

    The alpha channel is always opaque and is dropped.

    Args:
        renderer: The Renderer whose output to save.
        filepath: Output file path (should end in .png).
    """
    rgba = renderer.get_image_rgba8()
    PILImage.fromarray(np.ascontiguousarray(rgba[:, :, :3])).save(filepath)


def save_png_from_array(image: npt.NDArray, filepath: str) -> None:
    """Save an RGB or RGBA array as a PNG file.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4), top row first. Float
            arrays are expected in [0, 1].
        filepath: Output file path (should end in .png).
    """
    image_uint8 = np.ascontiguousarray(image_to_uint8(image))
    PILImage.fromarray(image_uint8).save(filepath)
