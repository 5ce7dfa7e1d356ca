"""Interactive, progressively refining sphere path tracer built on Taichi.

This package renders scenes of analytic spheres frame by frame. Every frame
casts one ray per pixel, bounces it off the scene a bounded number of times
and adds the result to a per-pixel accumulation buffer, so the image
converges while the camera and scene stay still.

Subpackages:
    core: Ray helpers, sampler, render configuration, integrator and renderer
    camera: Fly-through perspective camera with a cached ray-direction table
    geometry: Ray-sphere intersection
    materials: Material parameters and the kernel-side material table
    scene: Scene description, validation, upload and closest-hit tracing
    preview: Display and export collaborators (GGUI window, PNG, Matplotlib)
"""

__version__ = "0.1.0"
