"""Tests for the line-oriented declaration processors."""

import pytest

from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.declarations import (
    is_varying,
    process_attribute,
    process_line,
    process_stage,
    process_texture,
    process_uniform,
    process_varying,
)
from wgslbind.transpiler.errors import TextureDimensionError
from wgslbind.transpiler.models import (
    BindingKind,
    BindingPair,
    ShaderStage,
    TextureSampleType,
    TextureViewDimension,
    UniformEntry,
)


class TestAttributes:
    """Tests for process_attribute."""

    def test_float_attribute(self, context: ProcessingContext) -> None:
        """Test registering a float attribute."""
        # Act
        result = process_attribute("attribute position : vec3<f32>;", context, {})

        # Assert
        assert result == ""
        assert context.available_attributes == {"position": 0}
        assert context.ordered_attributes == {0: "position"}
        assert context.declarations.attributes_input == [
            "@location(0) position : vec3<f32>,"
        ]
        assert context.declarations.attributes_conversion_code == [
            "vertexInputs.position = vertexInputs_.position;"
        ]
        assert not context.declarations.has_non_float_attribute

    def test_locations_are_consecutive(self, context: ProcessingContext) -> None:
        """Test that attributes get locations in declaration order."""
        process_attribute("attribute position : vec3<f32>;", context, {})
        process_attribute("attribute world : mat4x4<f32>;", context, {})
        process_attribute("attribute uv : vec2<f32>;", context, {})

        assert context.available_attributes == {"position": 0, "world": 1, "uv": 5}
        assert context.ordered_attributes[5] == "uv"

    def test_signed_integer_buffer(self) -> None:
        """Test the integer shadow input of an attribute fed by signed data."""
        # Arrange
        context = ProcessingContext(
            vertex_buffer_kind_to_number_of_components={"matricesIndices": -4}
        )

        # Act
        process_attribute("attribute matricesIndices : vec4<f32>;", context, {})

        # Assert
        declarations = context.declarations
        assert declarations.has_non_float_attribute
        assert declarations.attributes_input == [
            "@location(0) _int_matricesIndices_ : vec4<i32>,"
        ]
        assert declarations.attributes == ["matricesIndices : vec4<f32>,"]
        assert declarations.attributes_conversion_code == [
            "vertexInputs.matricesIndices = "
            "vec4<f32>(vertexInputs_._int_matricesIndices_);"
        ]

    @pytest.mark.parametrize(
        "components, expected",
        [(1, "u32"), (3, "vec3<u32>"), (-1, "i32"), (-2, "vec2<i32>")],
    )
    def test_integer_shadow_types(self, components: int, expected: str) -> None:
        """Test the shadow type for each component count."""
        context = ProcessingContext(
            vertex_buffer_kind_to_number_of_components={"index": components}
        )

        process_attribute("attribute index : f32;", context, {})

        assert context.declarations.attributes_input == [
            f"@location(0) _int_index_ : {expected},"
        ]

    def test_not_an_attribute(self, context: ProcessingContext) -> None:
        """Test that other lines are not claimed."""
        assert process_attribute("let a = 1.0;", context, {}) is None
        assert context.available_attributes == {}


class TestVaryings:
    """Tests for process_varying."""

    def test_is_varying(self) -> None:
        """Test detection of varying declarations."""
        assert is_varying("varying vUV : vec2<f32>;")
        assert is_varying("flat varying vIndex : u32;")
        assert not is_varying("let varyingCount = 2;")

    def test_vertex_varying_default_interpolation(
        self, context: ProcessingContext
    ) -> None:
        """Test that a vertex varying is allocated with perspective/center."""
        result = process_varying("varying vUV : vec2<f32>;", False, context, {})

        assert result == ""
        assert context.available_varyings == {"vUV": 0}
        assert context.declarations.varyings == [
            "  @location(0) @interpolate(perspective, center) vUV : vec2<f32>,"
        ]
        assert context.declarations.varying_names == ["vUV"]

    def test_flat_varying(self, context: ProcessingContext) -> None:
        """Test that flat interpolation has no sampling argument."""
        process_varying("flat varying vIndex : u32;", False, context, {})

        assert context.declarations.varyings == [
            "  @location(0) @interpolate(flat) vIndex : u32,"
        ]

    def test_explicit_interpolation(self, context: ProcessingContext) -> None:
        """Test explicit interpolation type and sampling."""
        process_varying("linear sample varying vDepth : f32;", False, context, {})

        assert context.declarations.varyings == [
            "  @location(0) @interpolate(linear, sample) vDepth : f32,"
        ]

    def test_fragment_varying_is_looked_up(
        self, context: ProcessingContext, warnings: list[str]
    ) -> None:
        """Test that the fragment stage reuses the vertex location."""
        # Arrange
        process_varying("varying vNormal : vec3<f32>;", False, context, {})
        process_varying("varying vUV : vec2<f32>;", False, context, {})

        # Act
        result = process_varying("varying vUV : vec2<f32>;", True, context, {})

        # Assert
        assert result == ""
        assert context.available_varyings == {"vNormal": 0, "vUV": 1}
        assert len(context.declarations.varyings) == 2
        assert warnings == []

    def test_fragment_varying_missing_in_vertex(
        self, context: ProcessingContext, warnings: list[str]
    ) -> None:
        """Test that an undeclared fragment varying is dropped with a warning."""
        result = process_varying("varying vColor : vec4<f32>;", True, context, {})

        assert result == ""
        assert context.available_varyings == {}
        assert len(warnings) == 1
        assert '"vColor"' in warnings[0]
        assert "not declared in the vertex shader" in warnings[0]


class TestUniforms:
    """Tests for process_uniform."""

    def test_uniform_goes_to_left_over(self, context: ProcessingContext) -> None:
        """Test that a plain uniform is consumed and collected."""
        result = process_uniform("uniform world : mat4x4<f32>;", context, {})

        assert result == ""
        assert context.left_over_uniforms == [
            UniformEntry(name="world", type="mat4x4<f32>", length=0)
        ]

    def test_uniform_array(self, context: ProcessingContext) -> None:
        """Test that array uniforms record element type and length."""
        process_uniform(
            "uniform bones : array<mat4x4<f32>, NUM_BONES>;",
            context,
            {"NUM_BONES": "6"},
        )

        assert context.left_over_uniforms == [
            UniformEntry(name="bones", type="mat4x4<f32>", length=6)
        ]

    def test_uniform_declared_in_both_stages(self, context: ProcessingContext) -> None:
        """Test that a uniform appears once in the leftover list."""
        process_uniform("uniform alpha : f32;", context, {})
        process_uniform("uniform alpha : f32;", context, {})

        assert len(context.left_over_uniforms) == 1


class TestTextures:
    """Tests for process_texture."""

    def test_texture_gets_binding(self, context: ProcessingContext) -> None:
        """Test that a texture declaration is prefixed with its binding."""
        line = "var diffuse : texture_2d<f32>;"

        result = process_texture(line, True, context, {})

        assert result == "@group(1) @binding(0) var diffuse : texture_2d<f32>;"
        texture_info = context.available_textures["diffuse"]
        assert texture_info.textures == [BindingPair(1, 0)]
        assert texture_info.sample_type == TextureSampleType.FLOAT
        assert not texture_info.is_texture_array

    def test_texture_declared_in_both_stages(self, context: ProcessingContext) -> None:
        """Test that both stages get the same binding and a shared entry."""
        # Arrange
        line = "var heightMap : texture_2d<f32>;"

        # Act
        vertex_line = process_texture(line, False, context, {})
        fragment_line = process_texture(line, True, context, {})

        # Assert
        assert vertex_line == fragment_line
        assert context.get_next_free_ubo_binding() == BindingPair(1, 1)
        entries = context.bind_group_layout_entries[1]
        assert len(entries) == 1
        assert entries[0].visibility == ShaderStage.VERTEX | ShaderStage.FRAGMENT

    def test_texture_array(self, context: ProcessingContext) -> None:
        """Test that a texture array takes one binding per element."""
        result = process_texture(
            "var shadows : array<texture_depth_2d, 3>;", True, context, {}
        )

        texture_info = context.available_textures["shadows"]
        assert texture_info.is_texture_array
        assert texture_info.textures == [
            BindingPair(1, 0),
            BindingPair(1, 1),
            BindingPair(1, 2),
        ]
        assert texture_info.sample_type == TextureSampleType.DEPTH
        assert result.startswith("@group(1) @binding(0) var shadows")
        infos = context.bind_group_layout_entry_info[1]
        assert [infos[i].name_in_array_of_texture for i in range(3)] == [
            "shadows0",
            "shadows1",
            "shadows2",
        ]

    def test_texture_array_length_from_define(self, context: ProcessingContext) -> None:
        """Test that the array length may be a material define."""
        process_texture(
            "var lights : array<texture_2d<f32>, NUM_LIGHTS>;",
            True,
            context,
            {"NUM_LIGHTS": "2"},
        )

        assert len(context.available_textures["lights"].textures) == 2

    @pytest.mark.parametrize(
        "declaration, sample_type",
        [
            ("var t : texture_2d<u32>;", TextureSampleType.UINT),
            ("var t : texture_2d<i32>;", TextureSampleType.SINT),
            ("var t : texture_3d<f32>;", TextureSampleType.FLOAT),
            ("var t : texture_depth_cube;", TextureSampleType.DEPTH),
            ("var t : array<texture_2d<u32>, 2>;", TextureSampleType.UINT),
        ],
    )
    def test_sample_types(
        self,
        context: ProcessingContext,
        declaration: str,
        sample_type: TextureSampleType,
    ) -> None:
        """Test the sample type derived from the texture type."""
        process_texture(declaration, True, context, {})

        assert context.available_textures["t"].sample_type == sample_type

    def test_storage_texture(self, context: ProcessingContext) -> None:
        """Test that storage textures record their format."""
        process_texture(
            "var output : texture_storage_2d<rgba8unorm, write>;", True, context, {}
        )

        assert context.available_textures["output"].is_storage_texture
        entry = context.bind_group_layout_entries[1][0]
        assert entry.kind == BindingKind.STORAGE_TEXTURE
        assert entry.storage_format == "rgba8unorm"
        assert entry.view_dimension == TextureViewDimension.E2D

    def test_external_texture(self, context: ProcessingContext) -> None:
        """Test that external textures have no view dimension."""
        process_texture("var video : texture_external;", True, context, {})

        entry = context.bind_group_layout_entries[1][0]
        assert entry.kind == BindingKind.EXTERNAL_TEXTURE
        assert entry.view_dimension is None

    def test_multisampled_texture(self, context: ProcessingContext) -> None:
        """Test that multisampled textures are flagged in their entry."""
        process_texture(
            "var scene : texture_multisampled_2d<f32>;", True, context, {}
        )

        assert context.bind_group_layout_entries[1][0].multisampled

    def test_unknown_texture_function(self, context: ProcessingContext) -> None:
        """Test that an unknown texture function aborts before allocating."""
        with pytest.raises(TextureDimensionError) as exc_info:
            process_texture("var t : texture_2dd<f32>;", True, context, {})

        assert exc_info.value.texture_function == "texture_2dd"
        assert context.available_textures == {}
        assert context.get_next_free_ubo_binding() == BindingPair(1, 0)


class TestProcessLine:
    """Tests for process_line and process_stage."""

    def test_unclaimed_line_is_unchanged(self, context: ProcessingContext) -> None:
        """Test that ordinary code passes through."""
        line = "  let color = vec4<f32>(1.0);"

        assert process_line(line, True, context, {}) == line

    def test_dispatch(self, context: ProcessingContext) -> None:
        """Test that each kind of declaration is routed to its processor."""
        # Arrange
        code = "\n".join(
            [
                "attribute position : vec3<f32>;",
                "varying vUV : vec2<f32>;",
                "uniform alpha : f32;",
                "var albedo : texture_2d<f32>;",
                "fn main() {}",
            ]
        )

        # Act
        result = process_stage(code, False, context, {})

        # Assert
        assert result.split("\n") == [
            "",
            "",
            "",
            "@group(1) @binding(0) var albedo : texture_2d<f32>;",
            "fn main() {}",
        ]
        assert "position" in context.available_attributes
        assert "vUV" in context.available_varyings
        assert context.left_over_uniforms[0].name == "alpha"
        assert "albedo" in context.available_textures
