"""Surface material parameters and the kernel-side material table.

A material is an albedo color plus a roughness that controls how far the
mirror reflection is scattered, and a metallic factor that is carried
through to the kernels but not used by the current reflectance model.

The renderer keeps a Python-side list of :class:`Material` objects (owned by
the scene) and mirrors it into preallocated Taichi fields before a frame is
traced. Materials are referenced by index, so many spheres can share one.

Example:
    >>> from spheretracer.materials.material import Material
    >>> pink = Material(albedo=(1.0, 0.0, 1.0), roughness=0.0)
    >>> blue = Material(albedo=(0.2, 0.3, 1.0), roughness=0.1)
    >>> upload_materials([pink, blue])  # after ti.init
    2
"""

from collections.abc import Sequence
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@dataclass
class Material:
    """Surface parameters of a sphere.

    Attributes:
        albedo: Base reflected color (RGB, each component in [0, 1]).
        roughness: Spread of the reflected direction in [0, 1].
            0 = perfect mirror, 1 = widest scatter.
        metallic: Metalness in [0, 1]. Reserved for a richer reflectance
            model; stored and uploaded but not used in shading.
    """

    albedo: tuple[float, float, float] = (1.0, 1.0, 1.0)
    roughness: float = 1.0
    metallic: float = 0.0

    def __post_init__(self) -> None:
        self.albedo = tuple(float(c) for c in self.albedo)
        self.validate()

    def validate(self) -> None:
        """Check that every parameter lies in its supported range.

        Raises:
            ValueError: If the albedo does not have three components, or any
                albedo component, the roughness or the metallic factor is
                outside [0, 1].
        """
        if len(self.albedo) != 3:
            raise ValueError(f"Albedo must have 3 components, got {len(self.albedo)}")

        for i, component in enumerate(self.albedo):
            if component < 0.0 or component > 1.0:
                raise ValueError(
                    f"Albedo component {i} = {component} is outside [0, 1]. "
                    "This would violate energy conservation."
                )

        if self.roughness < 0.0 or self.roughness > 1.0:
            raise ValueError(
                f"Roughness = {self.roughness} is outside [0, 1]. "
                "Roughness must be between 0 (perfect mirror) and 1 (widest scatter)."
            )

        if self.metallic < 0.0 or self.metallic > 1.0:
            raise ValueError(f"Metallic = {self.metallic} is outside [0, 1].")


# =============================================================================
# Material Field Storage
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 256

material_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_roughnesses = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_metallics = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are uploaded.
    """
    num_materials[None] = 0


def upload_materials(materials: Sequence[Material]) -> int:
    """Replace the kernel-side material table with the given materials.

    Args:
        materials: Materials in index order.

    Returns:
        The number of materials uploaded.

    Raises:
        RuntimeError: If more than MAX_MATERIALS materials are given.
        ValueError: If any material has out-of-range parameters.
    """
    if len(materials) > MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    for idx, material in enumerate(materials):
        material.validate()
        material_albedos[idx] = [material.albedo[0], material.albedo[1], material.albedo[2]]
        material_roughnesses[idx] = material.roughness
        material_metallics[idx] = material.metallic

    num_materials[None] = len(materials)
    return len(materials)


def get_material_count() -> int:
    """Get the number of materials in the kernel-side table."""
    return int(num_materials[None])


@ti.func
def get_material_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a material by index."""
    return material_albedos[material_idx]


@ti.func
def get_material_roughness(material_idx: ti.i32) -> ti.f32:
    """Get the roughness for a material by index."""
    return material_roughnesses[material_idx]


@ti.func
def get_material_metallic(material_idx: ti.i32) -> ti.f32:
    """Get the metallic factor for a material by index.

    Not read by the bounce loop; available to kernels that shade by it.
    """
    return material_metallics[material_idx]
