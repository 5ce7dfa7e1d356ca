"""Integration tests for the end-to-end rendering pipeline.

Scene, camera, kernel and renderer together: the documented single-sphere
and empty-scene scenarios, the accumulation invariant and reset behavior.

Tests are designed to be fast (tiny viewports, few frames) while still
exercising the full pipeline.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

from __future__ import annotations

import math

import numpy as np
import pytest


class TestSingleSphereScenario:
    """A unit mirror sphere seen head-on from the default camera pose."""

    def test_one_pixel_frame(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.presets import create_single_sphere_scene

        scene = create_single_sphere_scene(albedo=(1.0, 0.0, 1.0), roughness=0.0)
        camera = Camera(vertical_fov=45.0, near_clip=0.1, far_clip=100.0)
        camera.resize(1, 1)
        renderer = Renderer(1, 1)

        renderer.render(scene, camera)

        d = 1.0 / math.sqrt(3.0)
        expected = np.array([d + 0.3, 0.35, d + 0.45, 1.0])

        accumulated = renderer.get_accumulation_numpy()[0]
        assert accumulated == pytest.approx(expected, abs=1e-5)

        # Displayed value is clamped to [0, 1] and quantized by truncation
        pixel = renderer.get_image_rgba8()[0, 0].astype(int)
        clamped = np.minimum(expected, 1.0)
        assert np.all(np.abs(pixel - np.floor(clamped * 255.0)) <= 1)
        assert pixel[2] == 255
        assert pixel[3] == 255

    def test_converged_frames_match_single_frame(self) -> None:
        """A mirror scene has no noise, so accumulation doesn't change the output."""
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.presets import create_single_sphere_scene

        scene = create_single_sphere_scene(roughness=0.0)
        camera = Camera()
        camera.resize(1, 1)
        renderer = Renderer(1, 1)

        renderer.render(scene, camera)
        first = renderer.get_image_data().copy()
        for _ in range(4):
            renderer.render(scene, camera)

        assert np.array_equal(renderer.get_image_data(), first)
        assert renderer.frame_index == 6


class TestEmptySceneScenario:
    """Nothing to hit: every pixel shows the sky."""

    def test_every_pixel_is_sky(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.scene import Scene

        camera = Camera()
        camera.resize(5, 4)
        renderer = Renderer(5, 4)
        renderer.render(Scene(), camera)

        accumulated = renderer.get_accumulation_numpy()
        assert accumulated.shape == (20, 4)
        assert np.allclose(accumulated, [0.6, 0.7, 0.9, 1.0], atol=1e-6)

        data = renderer.get_image_data()
        assert len(set(data.tolist())) == 1


class TestAccumulation:
    """Tests for the accumulation invariant."""

    def test_accumulation_is_sum_of_samples(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.integrator import render_sample
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.presets import create_default_scene

        width, height, frames = 3, 2, 4
        scene = create_default_scene()
        scene.materials[0].roughness = 0.8

        camera = Camera()
        camera.resize(width, height)
        renderer = Renderer(width, height)

        for _ in range(frames):
            renderer.render(scene, camera)

        accumulated = renderer.get_accumulation_numpy()
        for y in range(height):
            for x in range(width):
                expected = np.zeros(4)
                for k in range(frames):
                    expected += np.array(render_sample(camera, x, y, sample_index=k))
                assert accumulated[x + y * width] == pytest.approx(expected, abs=1e-4)

        # Displayed = clamp(sum / N), truncated to 8 bits
        displayed = np.clip(accumulated / frames, 0.0, 1.0)
        data = renderer.get_image_data()
        red = (data & 0xFF).astype(int)
        assert np.all(np.abs(red - np.floor(displayed[:, 0] * 255.0)) <= 1)

    def test_reset_discards_stale_accumulation(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.integrator import render_sample
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.presets import create_default_scene

        scene = create_default_scene()
        camera = Camera()
        camera.resize(2, 2)
        renderer = Renderer(2, 2)

        for _ in range(3):
            renderer.render(scene, camera)

        renderer.reset_frame_index()
        renderer.render(scene, camera)

        accumulated = renderer.get_accumulation_numpy()
        for i in range(4):
            sample = render_sample(camera, i % 2, i // 2, sample_index=3)
            assert accumulated[i] == pytest.approx(sample, abs=1e-5)

    def test_accumulation_off_shows_single_samples(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.integrator import render_sample
        from spheretracer.core.renderer import Renderer, RendererSettings
        from spheretracer.scene.presets import create_default_scene

        scene = create_default_scene()
        scene.materials[1].roughness = 1.0
        camera = Camera()
        camera.resize(2, 2)
        renderer = Renderer(2, 2, settings=RendererSettings(accumulate=False))

        for _ in range(3):
            renderer.render(scene, camera)

        accumulated = renderer.get_accumulation_numpy()
        sample = render_sample(camera, 1, 0, sample_index=2)
        assert accumulated[1] == pytest.approx(sample, abs=1e-5)

    def test_scene_edit_changes_output(self) -> None:
        from spheretracer.camera.perspective import Camera
        from spheretracer.core.renderer import Renderer
        from spheretracer.scene.presets import create_single_sphere_scene

        scene = create_single_sphere_scene()
        camera = Camera()
        camera.resize(1, 1)
        renderer = Renderer(1, 1)

        renderer.render(scene, camera)
        renderer.render(scene, camera)

        # Shrink the sphere to nothing: the pixel sees the sky
        scene.spheres[0].radius = 0.0
        renderer.render(scene, camera)

        accumulated = renderer.get_accumulation_numpy()[0]
        assert accumulated == pytest.approx([0.6, 0.7, 0.9, 1.0], abs=1e-6)
