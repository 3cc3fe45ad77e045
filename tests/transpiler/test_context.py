"""Tests for the processing context allocators."""

import pytest

from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.errors import BindingCapacityError, LocationCapacityError
from wgslbind.transpiler.models import BindingPair, TextureBinding


class TestBindingAllocator:
    """Tests for the (group, binding) allocator."""

    def test_engine_mode_skips_scene_group(self, context: ProcessingContext) -> None:
        """Test that group 0 is left to the scene buffer outside pure mode."""
        assert context.get_next_free_ubo_binding() == BindingPair(1, 0)
        assert context.get_next_free_ubo_binding() == BindingPair(1, 1)

    def test_pure_mode_starts_at_zero(self, pure_context: ProcessingContext) -> None:
        """Test that pure mode allocates from (0, 0)."""
        assert pure_context.get_next_free_ubo_binding() == BindingPair(0, 0)
        assert pure_context.get_next_free_ubo_binding() == BindingPair(0, 1)

    def test_allocations_are_distinct_and_increasing(
        self, context: ProcessingContext
    ) -> None:
        """Test that consecutive allocations never repeat a pair."""
        pairs = [context.get_next_free_ubo_binding() for _ in range(20)]

        assert len(set(pairs)) == len(pairs)
        assert pairs == sorted(
            pairs, key=lambda pair: (pair.group_index, pair.binding_index)
        )

    def test_rolls_over_to_next_group(self) -> None:
        """Test that a full group moves allocation to the next one."""
        # Arrange
        context = ProcessingContext(pure_mode=True, max_bindings_per_group=2)

        # Act
        pairs = [context.get_next_free_ubo_binding() for _ in range(5)]

        # Assert
        assert pairs == [
            BindingPair(0, 0),
            BindingPair(0, 1),
            BindingPair(1, 0),
            BindingPair(1, 1),
            BindingPair(2, 0),
        ]

    def test_capacity_exhausted(self) -> None:
        """Test that running past the last group raises an error."""
        context = ProcessingContext(
            pure_mode=True, max_bindings_per_group=1, max_groups=2
        )
        context.get_next_free_ubo_binding()
        context.get_next_free_ubo_binding()

        with pytest.raises(BindingCapacityError, match="Too many textures or UBOs"):
            context.get_next_free_ubo_binding()

    def test_binding_pair_attribute(self) -> None:
        """Test the WGSL annotation of a binding pair."""
        assert BindingPair(2, 5).attribute() == "@group(2) @binding(5) "


class TestLocationAllocator:
    """Tests for attribute and varying location allocation."""

    def test_attribute_locations_follow_type_size(
        self, context: ProcessingContext
    ) -> None:
        """Test that matrices take one location per column."""
        assert context.get_attribute_next_location("vec3<f32>") == 0
        assert context.get_attribute_next_location("mat4x4<f32>") == 1
        assert context.get_attribute_next_location("vec2<f32>") == 5
        assert context.get_attribute_next_location("mat3x3f") == 6
        assert context.get_attribute_next_location("f32") == 9

    def test_array_varying_takes_one_location_per_element(
        self, context: ProcessingContext
    ) -> None:
        """Test that an array varying advances by its length."""
        assert context.get_varying_next_location("vec4<f32>", 3) == 0
        assert context.get_varying_next_location("vec4<f32>") == 3

    def test_attribute_and_varying_counters_are_independent(
        self, context: ProcessingContext
    ) -> None:
        """Test that attributes and varyings are numbered separately."""
        context.get_attribute_next_location("vec3<f32>")
        context.get_attribute_next_location("vec3<f32>")

        assert context.get_varying_next_location("vec2<f32>") == 0

    def test_varying_capacity(self) -> None:
        """Test that varyings past the maximum location raise an error."""
        context = ProcessingContext(max_varying_locations=2)
        context.get_varying_next_location("vec4<f32>")
        context.get_varying_next_location("vec4<f32>")

        with pytest.raises(LocationCapacityError):
            context.get_varying_next_location("vec4<f32>")

    def test_attribute_capacity(self) -> None:
        """Test that an attribute overflowing the locations raises an error."""
        context = ProcessingContext(max_attribute_locations=4)
        context.get_attribute_next_location("vec3<f32>")

        with pytest.raises(LocationCapacityError, match="mat4x4<f32>"):
            context.get_attribute_next_location("mat4x4<f32>")


class TestContextReset:
    """Tests for resetting the stage bookkeeping."""

    def test_reset_keeps_bindings(self, context: ProcessingContext) -> None:
        """Test that resetting drops declarations but keeps registries."""
        # Arrange
        context.vertex_buffer_kind_to_number_of_components = {"joints": 4}
        context.declarations.attributes_input.append("@location(0) joints : vec4<u32>,")
        context.available_textures["albedo"] = TextureBinding(
            textures=[context.get_next_free_ubo_binding()]
        )

        # Act
        context.reset_stage_declarations()

        # Assert
        assert context.vertex_buffer_kind_to_number_of_components == {}
        assert context.declarations.attributes_input == []
        assert "albedo" in context.available_textures
        assert context.get_next_free_ubo_binding() == BindingPair(1, 1)

    def test_initialize_forgets_locations(self, context: ProcessingContext) -> None:
        """Test that initializing restarts attribute and varying numbering."""
        # Arrange
        context.available_attributes["position"] = 0
        context.ordered_attributes[0] = "position"
        context.available_varyings["vUV"] = 0
        context.get_attribute_next_location("vec3<f32>")
        context.get_varying_next_location("vec2<f32>")
        pair = context.get_next_free_ubo_binding()

        # Act
        context.initialize()

        # Assert
        assert context.available_attributes == {}
        assert context.ordered_attributes == {}
        assert context.available_varyings == {}
        assert context.get_attribute_next_location("vec3<f32>") == 0
        assert context.get_varying_next_location("vec2<f32>") == 0
        assert context.get_next_free_ubo_binding() != pair


class TestKnownUbos:
    """Tests for the reserved bindings of the engine-known buffers."""

    def test_scene_is_reserved_outside_pure_mode(
        self, context: ProcessingContext
    ) -> None:
        """Test that the scene buffer keeps (0, 0)."""
        assert context.known_ubos["Scene"] == BindingPair(0, 0)

    def test_nothing_is_reserved_in_pure_mode(
        self, pure_context: ProcessingContext
    ) -> None:
        """Test that every known buffer is bound lazily in pure mode."""
        assert all(
            binding == BindingPair(-1, -1)
            for binding in pure_context.known_ubos.values()
        )
