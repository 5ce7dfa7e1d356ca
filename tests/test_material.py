"""Unit tests for materials and the kernel-side material table."""

import pytest
import taichi as ti


class TestMaterial:
    """Tests for the Material dataclass."""

    def test_defaults(self):
        from spheretracer.materials.material import Material

        material = Material()
        assert material.albedo == (1.0, 1.0, 1.0)
        assert material.roughness == 1.0
        assert material.metallic == 0.0

    def test_albedo_is_tuple(self):
        from spheretracer.materials.material import Material

        material = Material(albedo=[0.2, 0.3, 1.0])
        assert material.albedo == (0.2, 0.3, 1.0)

    @pytest.mark.parametrize(
        "params",
        [
            {"albedo": (1.5, 0.0, 0.0)},
            {"albedo": (0.0, -0.1, 0.0)},
            {"albedo": (0.5, 0.5)},
            {"roughness": 1.01},
            {"roughness": -0.5},
            {"metallic": 2.0},
        ],
    )
    def test_out_of_range_parameters_raise(self, params):
        from spheretracer.materials.material import Material

        with pytest.raises(ValueError):
            Material(**params)


class TestMaterialUpload:
    """Tests for uploading materials into Taichi fields."""

    def test_upload_and_read_back(self):
        from spheretracer.materials.material import (
            Material,
            get_material_albedo,
            get_material_count,
            get_material_roughness,
            upload_materials,
        )

        count = upload_materials(
            [
                Material(albedo=(1.0, 0.0, 1.0), roughness=0.0),
                Material(albedo=(0.2, 0.3, 1.0), roughness=0.1),
            ]
        )
        assert count == 2
        assert get_material_count() == 2

        albedo = ti.field(dtype=ti.math.vec3, shape=())
        roughness = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            albedo[None] = get_material_albedo(1)
            roughness[None] = get_material_roughness(1)

        test_kernel()
        a = albedo[None]
        assert abs(a[0] - 0.2) < 1e-6
        assert abs(a[1] - 0.3) < 1e-6
        assert abs(a[2] - 1.0) < 1e-6
        assert abs(roughness[None] - 0.1) < 1e-6

    def test_metallic_read_back(self):
        from spheretracer.materials.material import (
            Material,
            get_material_metallic,
            upload_materials,
        )

        upload_materials([Material(metallic=0.25), Material(metallic=0.75)])

        metallic = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            metallic[0] = get_material_metallic(0)
            metallic[1] = get_material_metallic(1)

        test_kernel()
        assert abs(metallic[0] - 0.25) < 1e-6
        assert abs(metallic[1] - 0.75) < 1e-6

    def test_clear_materials(self):
        from spheretracer.materials.material import (
            Material,
            clear_materials,
            get_material_count,
            upload_materials,
        )

        upload_materials([Material()])
        clear_materials()
        assert get_material_count() == 0

    def test_too_many_materials_raise(self):
        from spheretracer.materials.material import MAX_MATERIALS, Material, upload_materials

        with pytest.raises(RuntimeError):
            upload_materials([Material()] * (MAX_MATERIALS + 1))
