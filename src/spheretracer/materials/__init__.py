"""Materials module.

Components:
    material: The Material dataclass (albedo, roughness, metallic) and the
        preallocated Taichi fields the integrator reads it from.

Shading in this renderer is a single Lambertian term from a fixed
directional light plus a mirror reflection whose normal is jittered by the
material roughness; there is no per-type BSDF dispatch.
"""

from .material import (
    MAX_MATERIALS,
    Material,
    clear_materials,
    get_material_albedo,
    get_material_count,
    get_material_metallic,
    get_material_roughness,
    upload_materials,
)

__all__ = [
    "Material",
    "MAX_MATERIALS",
    "clear_materials",
    "upload_materials",
    "get_material_count",
    "get_material_albedo",
    "get_material_roughness",
    "get_material_metallic",
]
