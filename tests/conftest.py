"""Pytest configuration for spheretracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset the kernel-side scene tables and integrator configuration.

    Fields are module-level and shared by every test, so each test starts
    from an empty scene and the default configuration.
    """
    # Import here to ensure Taichi is initialized
    from spheretracer.core.config import RenderConfig
    from spheretracer.core.integrator import configure_integrator
    from spheretracer.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        configure_integrator(RenderConfig())

    _clear_all()
    yield
    _clear_all()
