"""
Processing context shared by the vertex and fragment stages of one compile.

The context owns every allocation made while a shader pair is transpiled:
attribute and varying locations, the (group, binding) allocator and the
registries of textures, samplers, buffers and leftover uniforms. A fresh
context is created per compile; it is never shared between compiles.
"""

from loguru import logger

from wgslbind.transpiler.constants import (
    KNOWN_UBOS,
    LOCATION_SIZES,
    MAX_ATTRIBUTE_LOCATIONS,
    MAX_BINDINGS_PER_GROUP,
    MAX_GROUPS,
    MAX_VARYING_LOCATIONS,
)
from wgslbind.transpiler.errors import BindingCapacityError, LocationCapacityError
from wgslbind.transpiler.models import (
    BindGroupEntry,
    BindGroupLayoutEntry,
    BindGroupLayoutEntryInfo,
    BindingPair,
    BufferBinding,
    SamplerBinding,
    StageDeclarations,
    TextureBinding,
    UniformEntry,
)
from wgslbind.transpiler.type_utils import base_type_name


class ProcessingContext:
    """Allocation state of one shader pair compile.

    Attributes:
        pure_mode: Skip engine-specific internals and y-flip normalization
        available_attributes: Attribute name to location
        ordered_attributes: Location to attribute name
        available_varyings: Varying name to location
        available_textures: Texture name to texture binding
        available_samplers: Sampler name to sampler binding
        available_buffers: Buffer name to buffer binding
        left_over_uniforms: Plain uniforms in discovery order
        vertex_buffer_kind_to_number_of_components: Component count of the vertex
            buffer feeding an attribute; negative counts mark integer buffers
        declarations: Stage declaration bookkeeping, reset after finalization
    """

    def __init__(
        self,
        pure_mode: bool = False,
        max_bindings_per_group: int = MAX_BINDINGS_PER_GROUP,
        max_groups: int = MAX_GROUPS,
        vertex_buffer_kind_to_number_of_components: dict[str, int] | None = None,
        max_attribute_locations: int = MAX_ATTRIBUTE_LOCATIONS,
        max_varying_locations: int = MAX_VARYING_LOCATIONS,
    ):
        self.pure_mode = pure_mode
        self.max_bindings_per_group = max_bindings_per_group
        self.max_groups = max_groups
        self.max_attribute_locations = max_attribute_locations
        self.max_varying_locations = max_varying_locations

        self.available_attributes: dict[str, int] = {}
        self.ordered_attributes: dict[int, str] = {}
        self.available_varyings: dict[str, int] = {}
        self.available_textures: dict[str, TextureBinding] = {}
        self.available_samplers: dict[str, SamplerBinding] = {}
        self.available_buffers: dict[str, BufferBinding] = {}
        self.left_over_uniforms: list[UniformEntry] = []
        self.vertex_buffer_kind_to_number_of_components: dict[str, int] = dict(
            vertex_buffer_kind_to_number_of_components or {}
        )

        self.bind_group_layout_entries: list[list[BindGroupLayoutEntry]] = []
        self.bind_group_layout_entry_info: list[
            dict[int, BindGroupLayoutEntryInfo]
        ] = []
        self.bind_group_entries: list[list[BindGroupEntry]] = []
        self.buffer_names: list[str] = []
        self.texture_names: list[str] = []
        self.sampler_names: list[str] = []

        self.declarations = StageDeclarations()

        # Pure mode allocates from (0, 0), so no binding can be reserved
        self.known_ubos: dict[str, BindingPair] = {
            name: BindingPair(-1, -1) if pure_mode else BindingPair(group, binding)
            for name, (group, binding) in KNOWN_UBOS.items()
        }

        self._attribute_next_location = 0
        self._varying_next_location = 0
        self.free_group_index = 0
        self.free_binding_index = 0
        if not pure_mode:
            self._find_starting_group_binding()

    def _find_starting_group_binding(self) -> None:
        """Start allocating after the bindings reserved by the known UBOs."""
        groups: dict[int, int] = {}
        for binding in self.known_ubos.values():
            if binding.group_index == -1:
                continue
            groups[binding.group_index] = max(
                groups.get(binding.group_index, binding.binding_index),
                binding.binding_index,
            )

        if not groups:
            return

        last_group = max(groups)
        if last_group == 0:
            # Group 0 is reserved for the scene UBO
            self.free_group_index = 1
            self.free_binding_index = 0
        else:
            self.free_group_index = last_group
            self.free_binding_index = groups[last_group] + 1

    def initialize(self) -> None:
        """Reset the attribute/varying state before a new shader pair is processed.

        Binding registries and the binding allocator are kept, so a reused context
        never hands out a binding pair twice.
        """
        self.declarations = StageDeclarations()
        self.available_attributes = {}
        self.ordered_attributes = {}
        self.available_varyings = {}
        self._attribute_next_location = 0
        self._varying_next_location = 0

    def reset_stage_declarations(self) -> None:
        """Drop per-compile attribute/varying bookkeeping, keep binding allocations.

        Called at the end of finalization so a reused context does not leak the
        component counts or struct fields of the previous compile. The attribute
        and varying maps stay readable until the next ``initialize``.
        """
        self.declarations = StageDeclarations()
        self.vertex_buffer_kind_to_number_of_components = {}

    def get_next_free_ubo_binding(self) -> BindingPair:
        """Allocate the next unused (group, binding) pair."""
        return self._get_next_free_binding(1)

    def _get_next_free_binding(self, binding_count: int) -> BindingPair:
        if self.free_binding_index > self.max_bindings_per_group - binding_count:
            self.free_group_index += 1
            self.free_binding_index = 0

        if self.free_group_index >= self.max_groups:
            raise BindingCapacityError(
                "Too many textures or UBOs have been declared: all "
                f"{self.max_groups} bind groups of {self.max_bindings_per_group} "
                "bindings are in use"
            )

        pair = BindingPair(self.free_group_index, self.free_binding_index)
        self.free_binding_index += binding_count
        logger.debug(f"Allocated binding {pair}")
        return pair

    def get_attribute_next_location(self, data_type: str, array_length: int = 0) -> int:
        """Allocate the location(s) of a vertex attribute.

        Args:
            data_type: Declared attribute type
            array_length: Array length, 0 for non-array attributes

        Returns:
            First location taken by the attribute
        """
        location = self._attribute_next_location
        self._attribute_next_location += _location_size(data_type) * (
            array_length or 1
        )
        if self._attribute_next_location > self.max_attribute_locations:
            raise LocationCapacityError(
                f"Attribute of type {data_type} needs locations up to "
                f"{self._attribute_next_location - 1}, the maximum is "
                f"{self.max_attribute_locations - 1}"
            )
        return location

    def get_varying_next_location(self, data_type: str, array_length: int = 0) -> int:
        """Allocate the location(s) of a varying.

        Args:
            data_type: Declared varying type
            array_length: Array length, 0 for non-array varyings

        Returns:
            First location taken by the varying
        """
        location = self._varying_next_location
        self._varying_next_location += _location_size(data_type) * (
            array_length or 1
        )
        if self._varying_next_location > self.max_varying_locations:
            raise LocationCapacityError(
                f"Varying of type {data_type} needs locations up to "
                f"{self._varying_next_location - 1}, the maximum is "
                f"{self.max_varying_locations - 1}"
            )
        return location


def _location_size(data_type: str) -> int:
    base = base_type_name(data_type)
    size = LOCATION_SIZES.get(base)
    if size is None and base[:3] == "mat" and base[-1:] in ("f", "h"):
        # mat4x4f / mat3x3h aliases
        size = LOCATION_SIZES.get(base[:-1])
    return size or 1
