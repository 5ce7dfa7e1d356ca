"""Scene description: spheres and the materials they reference.

A :class:`Scene` is a flat, ordered list of spheres and a flat, ordered list
of materials. Spheres refer to materials by index, so the relationship is
many-to-one and the scene, not the sphere, owns the material.

Scenes are plain Python objects: the scene-editing collaborator mutates them
freely between frames, and the renderer notices the edit by comparing
:meth:`Scene.fingerprint` with the fingerprint of the last uploaded state.

Example:
    >>> from spheretracer.scene.scene import Scene, Sphere
    >>> from spheretracer.materials.material import Material
    >>> scene = Scene()
    >>> pink = scene.add_material(Material(albedo=(1.0, 0.0, 1.0), roughness=0.0))
    >>> scene.add_sphere(Sphere(center=(0.0, 0.0, 0.0), radius=1.0, material_index=pink))
    0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from spheretracer.materials.material import Material

logger = logging.getLogger(__name__)


class SceneValidationError(ValueError):
    """Raised when a scene references a material that does not exist."""


@dataclass
class Sphere:
    """A sphere in the scene.

    Attributes:
        center: Center point in world space (x, y, z).
        radius: Sphere radius. Spheres with radius <= 0 are kept in the
            scene but never hit.
        material_index: Index into the owning scene's material list.
    """

    center: tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 0.5
    material_index: int = 0

    def __post_init__(self) -> None:
        self.center = tuple(float(c) for c in self.center)
        if len(self.center) != 3:
            raise ValueError(f"Center must have 3 components, got {len(self.center)}")


@dataclass
class Scene:
    """Ordered collections of spheres and materials.

    Invariant: every sphere's material_index is a valid index into
    materials. The invariant is checked by :meth:`validate`, which the
    renderer calls before each upload, rather than on every mutation, so an
    editor may temporarily break it between frames.

    Attributes:
        spheres: The spheres, in scan order.
        materials: The materials, addressed by index.
    """

    spheres: list[Sphere] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)

    def add_material(self, material: Material | None = None, **params) -> int:
        """Append a material and return its index.

        Args:
            material: The material to add. If omitted, a Material is built
                from the keyword arguments (albedo, roughness, metallic).

        Returns:
            The index the material can be referenced by.
        """
        if material is None:
            material = Material(**params)
        self.materials.append(material)
        return len(self.materials) - 1

    def add_sphere(self, sphere: Sphere | None = None, **params) -> int:
        """Append a sphere and return its index.

        Args:
            sphere: The sphere to add. If omitted, a Sphere is built from
                the keyword arguments (center, radius, material_index).

        Returns:
            The index of the sphere in scan order.

        Raises:
            SceneValidationError: If the sphere references a material index
                that is not in the scene.
        """
        if sphere is None:
            sphere = Sphere(**params)
        self._check_material_index(len(self.spheres), sphere)
        self.spheres.append(sphere)
        return len(self.spheres) - 1

    def validate(self) -> None:
        """Check the material-reference invariant and material ranges.

        Raises:
            SceneValidationError: If any sphere references a missing material.
            ValueError: If any material parameter is out of range.
        """
        for material in self.materials:
            material.validate()

        for idx, sphere in enumerate(self.spheres):
            self._check_material_index(idx, sphere)
            if sphere.radius <= 0.0:
                logger.warning(
                    "Sphere %d has non-positive radius %s and will not be rendered",
                    idx,
                    sphere.radius,
                )

    def _check_material_index(self, idx: int, sphere: Sphere) -> None:
        if not 0 <= sphere.material_index < len(self.materials):
            raise SceneValidationError(
                f"Sphere {idx} references material {sphere.material_index}, "
                f"but the scene has {len(self.materials)} material(s)"
            )

    def fingerprint(self) -> tuple:
        """Return a hashable snapshot of every value the renderer uploads.

        Two fingerprints compare equal exactly when an upload of the scene
        would produce identical kernel-side tables.
        """
        spheres = tuple(
            (tuple(s.center), float(s.radius), int(s.material_index)) for s in self.spheres
        )
        materials = tuple(
            (tuple(m.albedo), float(m.roughness), float(m.metallic)) for m in self.materials
        )
        return (spheres, materials)
