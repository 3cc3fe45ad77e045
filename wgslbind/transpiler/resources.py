"""
Sampler and custom buffer processors.

These run during finalization over the declaration-stripped stage code and
insert ``@group(g) @binding(b)`` in front of every sampler and explicit
``var<uniform>``/``var<storage>`` buffer declaration. Bindings are registered
by name, so a resource declared in both stages gets the same binding.
"""

import re

from loguru import logger

from wgslbind.transpiler.bindings import (
    add_buffer_binding_description,
    add_sampler_binding_description,
)
from wgslbind.transpiler.constants import AUTO_SAMPLER_SUFFIX
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.models import (
    BufferBinding,
    BufferBindingType,
    SamplerBinding,
    SamplerBindingType,
)

SAMPLER_REGEX = re.compile(r"var\s+(\w+)\s*:\s*(sampler|sampler_comparison)\s*;")
CUSTOM_BUFFER_REGEX = re.compile(
    r"var<\s*(uniform|storage)\s*(,\s*(read|read_write)\s*)?>\s+(\S+)\s*:\s*(\S+)\s*;"
)


def auto_sampler_texture_name(sampler_name: str) -> str | None:
    """Get the texture a sampler is bound to by naming convention, if any."""
    if sampler_name.endswith(AUTO_SAMPLER_SUFFIX) and len(sampler_name) > len(
        AUTO_SAMPLER_SUFFIX
    ):
        return sampler_name[: -len(AUTO_SAMPLER_SUFFIX)]
    return None


def process_samplers(code: str, is_vertex: bool, context: ProcessingContext) -> str:
    """Annotate every sampler declaration of a stage with its binding."""

    def annotate(match: re.Match[str]) -> str:
        name = match.group(1)
        sampler_type = match.group(2)

        texture_name = auto_sampler_texture_name(name)
        if texture_name:
            texture_info = context.available_textures.get(texture_name)
            if texture_info is not None:
                texture_info.auto_bind_sampler = True

        sampler_info = context.available_samplers.get(name)
        if sampler_info is None:
            sampler_info = SamplerBinding(
                binding=context.get_next_free_ubo_binding(),
                type=(
                    SamplerBindingType.COMPARISON
                    if sampler_type == "sampler_comparison"
                    else SamplerBindingType.FILTERING
                ),
            )
            context.available_samplers[name] = sampler_info
            logger.debug(f"Registered sampler {name}: {sampler_info.binding}")

        add_sampler_binding_description(context, name, sampler_info, is_vertex)
        return sampler_info.binding.attribute() + match.group(0)

    return SAMPLER_REGEX.sub(annotate, code)


def process_custom_buffers(
    code: str, is_vertex: bool, context: ProcessingContext
) -> str:
    """Annotate every explicit uniform/storage buffer declaration of a stage.

    Buffers whose struct is one of the engine-known UBOs are registered under
    the struct name and reuse its reserved binding, or get one lazily.
    """

    def annotate(match: re.Match[str]) -> str:
        address_space = match.group(1)
        access = match.group(3)
        name = match.group(4)
        struct_name = match.group(5)

        if access == "read_write":
            buffer_type = BufferBindingType.STORAGE
        elif address_space == "storage":
            buffer_type = BufferBindingType.READ_ONLY_STORAGE
        else:
            buffer_type = BufferBindingType.UNIFORM

        buffer_info = context.available_buffers.get(name)
        if buffer_info is None:
            known_ubo = (
                context.known_ubos.get(struct_name)
                if address_space == "uniform"
                else None
            )
            if known_ubo is not None:
                name = struct_name
                binding = known_ubo
                if binding.group_index == -1:
                    existing = context.available_buffers.get(name)
                    binding = (
                        existing.binding
                        if existing is not None
                        else context.get_next_free_ubo_binding()
                    )
            else:
                binding = context.get_next_free_ubo_binding()

            buffer_info = context.available_buffers.get(name)
            if buffer_info is None:
                buffer_info = BufferBinding(binding=binding, buffer_type=buffer_type)
                context.available_buffers[name] = buffer_info
                logger.debug(f"Registered buffer {name}: {binding}")

        add_buffer_binding_description(
            context, name, buffer_info, buffer_type, is_vertex
        )
        return buffer_info.binding.attribute() + match.group(0)

    return CUSTOM_BUFFER_REGEX.sub(annotate, code)
