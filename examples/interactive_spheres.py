#!/usr/bin/env python3
"""Interactive sphere renderer with fly-through camera and scene editing.

Usage:
    python examples/interactive_spheres.py [--width WIDTH] [--height HEIGHT]

Controls:
    - Hold the right mouse button and move the mouse to look around
    - While holding it: W/S forward/back, A/D left/right, Q/E down/up
    - Settings panel: Accumulate toggle, Reset, last render time, Export PNG
    - Scene panel: sphere position, radius and material; material albedo,
      roughness and metallic

The image accumulates while the camera and the scene stay unchanged and
starts over as soon as either changes.
"""

from __future__ import annotations

import argparse
import platform
import sys

import taichi as ti


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive sphere renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive sphere renderer.")
    parser.add_argument("--width", type=int, default=1280, help="Window width (default: 1280)")
    parser.add_argument("--height", type=int, default=720, help="Window height (default: 720)")
    args = parser.parse_args()

    # Initialize Taichi first (before importing modules that declare fields)
    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from spheretracer.preview.interactive import InteractivePreview
    from spheretracer.scene.presets import create_default_scene

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    print(f"Creating interactive preview window ({args.width}x{args.height})...")
    preview = InteractivePreview(create_default_scene(), args.width, args.height)

    print("Starting interactive rendering...")
    print("  - Hold right mouse button to look around, WASDQE to move")
    print("  - Edit spheres and materials in the Scene panel")
    print("  - Close window to exit")
    print()

    try:
        preview.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
