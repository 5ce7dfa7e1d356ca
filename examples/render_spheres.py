#!/usr/bin/env python3
"""Render the default sphere scene to a PNG file.

Creates the default scene (a pink mirror sphere on a large blue ground
sphere), places the camera at its default pose and accumulates a number of
frames before saving the result.

Usage:
    python examples/render_spheres.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 360)
    --frames FRAMES     Number of frames to accumulate (default: 64)
    --output OUTPUT     Output file path (default: spheres.png)
    --seed SEED         Seed of the per-pixel random streams (default: 0)
    --quiet             Suppress progress output

Example:
    python examples/render_spheres.py --width 320 --height 180 --frames 16
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the default sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=360,
        help="Image height in pixels (default: 360)",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=64,
        help="Number of frames to accumulate (default: 64)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed of the per-pixel random streams (default: 0)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_spheres(
    width: int = 640,
    height: int = 360,
    num_frames: int = 64,
    output_path: str = "spheres.png",
    seed: int = 0,
    quiet: bool = False,
) -> Path:
    """Render the default scene and save it to a file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_frames: Number of frames to accumulate.
        output_path: Output file path (PNG).
        seed: Seed of the per-pixel random streams.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretracer.camera.perspective import Camera
    from spheretracer.core.config import RenderConfig
    from spheretracer.core.renderer import Renderer
    from spheretracer.preview.export import save_png
    from spheretracer.scene.presets import create_default_scene

    if not quiet:
        print(f"Creating default sphere scene ({width}x{height})...")

    config = RenderConfig(seed=seed)
    scene = create_default_scene()

    camera = Camera(config=config)
    camera.resize(width, height)

    renderer = Renderer(width, height, config=config)

    if not quiet:
        print(f"Accumulating {num_frames} frames...")

    start_time = time.time()

    for frame in range(1, num_frames + 1):
        renderer.render(scene, camera)
        if not quiet:
            print(
                f"\r  Progress: {frame}/{num_frames} frames "
                f"- last frame {renderer.last_render_time_ms:.2f} ms",
                end="",
                flush=True,
            )

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    save_png(renderer, str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            output_path=args.output,
            seed=args.seed,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
