"""Ready-made scenes.

The default scene is a pink mirror sphere resting on a very large, slightly
rough blue sphere that acts as the ground. Seen from the default camera
position it shows the sky reflected in the mirror sphere, the ground
reflected below it and the roughness noise that accumulation clears up.

Example:
    >>> from spheretracer.scene.presets import create_default_scene
    >>> scene = create_default_scene()
    >>> len(scene.spheres), len(scene.materials)
    (2, 2)
"""

from spheretracer.materials.material import Material
from spheretracer.scene.scene import Scene, Sphere

# Default scene materials
PINK_ALBEDO = (1.0, 0.0, 1.0)
PINK_ROUGHNESS = 0.0
BLUE_ALBEDO = (0.2, 0.3, 1.0)
BLUE_ROUGHNESS = 0.1

# Ground sphere: radius 100, top surface at y = -1
GROUND_CENTER = (0.0, -101.0, 0.0)
GROUND_RADIUS = 100.0


def create_default_scene() -> Scene:
    """Create the default two-sphere scene.

    Returns:
        A Scene with a unit pink mirror sphere at the origin and a large blue
        ground sphere beneath it.
    """
    scene = Scene()

    pink = scene.add_material(Material(albedo=PINK_ALBEDO, roughness=PINK_ROUGHNESS))
    blue = scene.add_material(Material(albedo=BLUE_ALBEDO, roughness=BLUE_ROUGHNESS))

    scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=1.0, material_index=pink))
    scene.add_sphere(Sphere(center=GROUND_CENTER, radius=GROUND_RADIUS, material_index=blue))

    return scene


def create_single_sphere_scene(
    albedo: tuple[float, float, float] = PINK_ALBEDO,
    roughness: float = 0.0,
    radius: float = 1.0,
) -> Scene:
    """Create a scene with one sphere at the origin.

    Args:
        albedo: Albedo of the sphere's material.
        roughness: Roughness of the sphere's material.
        radius: Sphere radius.

    Returns:
        A Scene with one material and one sphere.
    """
    scene = Scene()
    material = scene.add_material(Material(albedo=albedo, roughness=roughness))
    scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=radius, material_index=material))
    return scene
