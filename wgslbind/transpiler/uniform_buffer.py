"""
Leftover uniform buffer builder.

Plain ``uniform NAME : TYPE;`` declarations of both stages are gathered into a
single synthesized uniform buffer. Arrays of scalars and 2-component vectors
cannot be laid out directly in the uniform address space (the array stride must
be a multiple of 16 bytes), so each of them gets a padded single-field wrapper
struct and every ``name[expr]`` access is rewritten to ``name[expr].el``.
"""

import re

from loguru import logger

from wgslbind.transpiler.bindings import add_buffer_binding_description
from wgslbind.transpiler.constants import LEFTOVER_UBO_NAME, LEFTOVER_VAR_NAME
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.models import (
    BufferBinding,
    BufferBindingType,
    StridedArrayRegistration,
    UniformEntry,
)
from wgslbind.transpiler.type_utils import component_count, get_array_size


def add_uniform_to_left_over_ubo(
    context: ProcessingContext,
    name: str,
    uniform_type: str,
    preprocessors: dict[str, str],
) -> None:
    """Append a uniform to the leftover list unless one of that name exists."""
    name, uniform_type, length = get_array_size(name, uniform_type, preprocessors)
    if any(uniform.name == name for uniform in context.left_over_uniforms):
        return

    context.left_over_uniforms.append(
        UniformEntry(name=name, type=uniform_type, length=length)
    )
    logger.debug(f"Collected leftover uniform: {name}, type: {uniform_type}")


def build_left_over_ubo(context: ProcessingContext) -> str:
    """Build the leftover uniform buffer declaration, empty if there is none.

    The buffer binding is allocated on first build and described as visible
    to both stages.
    """
    if not context.left_over_uniforms:
        return ""

    name = LEFTOVER_UBO_NAME
    buffer_info = context.available_buffers.get(name)
    if buffer_info is None:
        buffer_info = BufferBinding(binding=context.get_next_free_ubo_binding())
        context.available_buffers[name] = buffer_info
        for is_vertex in (True, False):
            add_buffer_binding_description(
                context, name, buffer_info, BufferBindingType.UNIFORM, is_vertex
            )

    return generate_left_over_ubo_code(context, name, buffer_info)


def generate_left_over_ubo_code(
    context: ProcessingContext, name: str, buffer_info: BufferBinding
) -> str:
    """Generate the struct, strided wrappers and variable of the leftover buffer.

    Args:
        context: Processing context holding the leftover uniforms
        name: Name of the generated struct
        buffer_info: Binding of the buffer variable

    Returns:
        WGSL declaration of the leftover uniform buffer
    """
    strided_arrays = ""
    ubo = f"struct {name} {{\n"
    for uniform in context.left_over_uniforms:
        if uniform.length > 0:
            size = component_count(uniform.type)
            if size is not None and size <= 2:
                strided_array_type = (
                    f"{name}_{len(context.declarations.strided_uniform_arrays)}"
                    "_strided_arr"
                )
                strided_arrays += (
                    f"struct {strided_array_type} {{\n"
                    "  @size(16)\n"
                    f"  el: {uniform.type},\n"
                    "}\n"
                )
                context.declarations.strided_uniform_arrays.append(
                    StridedArrayRegistration(
                        name=uniform.name, struct_name=strided_array_type
                    )
                )
                ubo += (
                    f"  @align(16) {uniform.name} : "
                    f"array<{strided_array_type}, {uniform.length}>,\n"
                )
            else:
                ubo += (
                    f"  {uniform.name} : array<{uniform.type}, {uniform.length}>,\n"
                )
        else:
            ubo += f"  {uniform.name} : {uniform.type},\n"
    ubo += "};\n"

    binding = buffer_info.binding.attribute()
    return (
        f"{strided_arrays}\n{ubo}"
        f"{binding}var<uniform> {LEFTOVER_VAR_NAME} : {name};\n"
    )


def process_strided_uniform_arrays(code: str, context: ProcessingContext) -> str:
    """Rewrite ``name[expr]`` into ``name[expr].el`` for every strided array."""
    for registration in context.declarations.strided_uniform_arrays:
        name = re.escape(registration.name)
        code = re.sub(
            rf"\b{name}\s*\[(.*?)\]",
            lambda match, n=registration.name: f"{n}[{match.group(1)}].el",
            code,
        )
    return code
