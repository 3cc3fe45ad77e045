"""
Stage finalizer.

Runs once per compile over both processed stages: annotates samplers and
custom buffers, prefixes the leftover uniform buffer, synthesizes the stage
input/output structs, wraps the ``main`` entry points and emits the required
directives. The binding-layout tables of the context are completed here.
"""

import re

from loguru import logger

from wgslbind.transpiler.bindings import (
    collect_binding_names,
    pre_create_bind_group_entries,
)
from wgslbind.transpiler.code_utils import (
    inject_starting_and_ending_code,
    neutralize_define_directives,
)
from wgslbind.transpiler.constants import (
    DISABLE_UNIFORMITY_ANALYSIS_MARKER,
    DUAL_SOURCE_BLENDING_MARKER,
    FRAG_DATA_PREFIX,
    FRAG_DEPTH_BUILTIN,
    FRAGMENT_POSITION_MARKER,
    INTERNALS_VAR_NAME,
    MAIN_FUNCTION_DECLARATION,
    MAX_RENDER_TARGETS,
    MRT_AND_COLOR_MARKER,
    OIT_MARKER,
)
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.resources import process_custom_buffers, process_samplers
from wgslbind.transpiler.uniform_buffer import (
    build_left_over_ubo,
    process_strided_uniform_arrays,
)

UNREACHABLE_CODE_DIAGNOSTIC = "diagnostic(off, chromium.unreachable_code);\n"
DERIVATIVE_UNIFORMITY_DIAGNOSTIC = "diagnostic(off, derivative_uniformity);\n"


def build_vertex_inputs(context: ProcessingContext) -> str:
    """Build the vertex input struct(s) and their private variables."""
    declarations = context.declarations
    suffix = "_" if declarations.has_non_float_attribute else ""

    code = (
        "struct VertexInputs {\n"
        "  @builtin(vertex_index) vertexIndex : u32,\n"
        "  @builtin(instance_index) instanceIndex : u32,\n"
    )
    if declarations.attributes_input:
        code += "\n".join(declarations.attributes_input)
    code += f"\n}};\nvar<private> vertexInputs{suffix} : VertexInputs;\n"

    if declarations.has_non_float_attribute:
        code += "struct VertexInputs_ {\n  vertexIndex : u32, instanceIndex : u32,\n"
        code += "\n".join(declarations.attributes)
        code += "\n};\nvar<private> vertexInputs : VertexInputs_;\n"

    return code


def build_vertex_outputs(context: ProcessingContext) -> str:
    """Build the vertex output struct, which is the fragment input struct."""
    code = "struct FragmentInputs {\n  @builtin(position) position : vec4<f32>,\n"
    if context.declarations.varyings:
        code += "\n".join(context.declarations.varyings)
    code += "\n};\nvar<private> vertexOutputs : FragmentInputs;\n"
    return code


def build_fragment_inputs(context: ProcessingContext) -> str:
    """Build the fragment input struct from the vertex stage varyings."""
    code = (
        "struct FragmentInputs {\n"
        "  @builtin(position) position : vec4<f32>,\n"
        "  @builtin(front_facing) frontFacing : bool,\n"
    )
    if context.declarations.varyings:
        code += "\n".join(context.declarations.varyings)
    code += "\n};\nvar<private> fragmentInputs : FragmentInputs;\n"
    return code


def has_frag_depth(fragment_code: str) -> bool:
    """Check for a frag depth write outside of a ``//`` comment."""
    for match in re.finditer(re.escape(FRAG_DEPTH_BUILTIN), fragment_code):
        line_start = fragment_code.rfind("\n", 0, match.start()) + 1
        if "//" not in fragment_code[line_start : match.start()]:
            return True
    return False


def build_fragment_outputs(
    fragment_code: str, enabled_extensions: list[str]
) -> str:
    """Build the fragment output struct from the markers found in the code.

    Args:
        fragment_code: Fragment stage code
        enabled_extensions: Receives the extensions the outputs require

    Returns:
        The fragment output struct and its private variable
    """
    code = "struct FragmentOutputs {\n"
    location = 0

    if FRAG_DATA_PREFIX + "0" in fragment_code:
        code += f"  @location({location}) fragData0 : vec4<f32>,\n"
        location += 1
        for index in range(1, MAX_RENDER_TARGETS):
            if f"{FRAG_DATA_PREFIX}{index}" in fragment_code:
                code += f"  @location({location}) fragData{index} : vec4<f32>,\n"
                location += 1
        if MRT_AND_COLOR_MARKER in fragment_code:
            code += f"  @location({location}) color : vec4<f32>,\n"
            location += 1

    if OIT_MARKER in fragment_code:
        code += f"  @location({location}) depth : vec2<f32>,\n"
        code += f"  @location({location + 1}) frontColor : vec4<f32>,\n"
        code += f"  @location({location + 2}) backColor : vec4<f32>,\n"
        location += 3

    if location == 0:
        if DUAL_SOURCE_BLENDING_MARKER in fragment_code:
            enabled_extensions.append("dual_source_blending")
            code += "  @location(0) @blend_src(0) color : vec4<f32>,\n"
            code += "  @location(0) @blend_src(1) color2 : vec4<f32>,\n"
        else:
            code += "  @location(0) color : vec4<f32>,\n"

    if has_frag_depth(fragment_code):
        code += "  @builtin(frag_depth) fragDepth: f32,\n"

    code += "};\nvar<private> fragmentOutputs : FragmentOutputs;\n"
    return code


def _diagnostics(code: str) -> str:
    needs_diagnostic_off = DISABLE_UNIFORMITY_ANALYSIS_MARKER in code
    return (
        DERIVATIVE_UNIFORMITY_DIAGNOSTIC if needs_diagnostic_off else ""
    ) + UNREACHABLE_CODE_DIAGNOSTIC


def finalize_vertex(vertex_code: str, context: ProcessingContext) -> str:
    """Wrap the vertex stage with its structs, prologue and epilogue."""
    declarations = context.declarations

    vertex_code = neutralize_define_directives(vertex_code)
    vertex_code = process_strided_uniform_arrays(vertex_code, context)
    vertex_code = (
        build_vertex_inputs(context) + build_vertex_outputs(context) + vertex_code
    )

    suffix = "_" if declarations.has_non_float_attribute else ""
    starting_code = f"\n  vertexInputs{suffix} = input;\n"
    if declarations.has_non_float_attribute:
        starting_code += (
            "vertexInputs.vertexIndex = vertexInputs_.vertexIndex;\n"
            "vertexInputs.instanceIndex = vertexInputs_.instanceIndex;\n"
        )
        starting_code += "\n".join(declarations.attributes_conversion_code)
        starting_code += "\n"

    if context.pure_mode:
        ending_code = "  return vertexOutputs;"
    else:
        ending_code = (
            "  vertexOutputs.position.y = vertexOutputs.position.y * "
            f"{INTERNALS_VAR_NAME}.yFactor_;\n  return vertexOutputs;"
        )

    return _diagnostics(vertex_code) + inject_starting_and_ending_code(
        vertex_code, MAIN_FUNCTION_DECLARATION, starting_code, ending_code
    )


def finalize_fragment(fragment_code: str, context: ProcessingContext) -> str:
    """Wrap the fragment stage with its structs, prologue and epilogue."""
    enabled_extensions: list[str] = []

    frag_coord_code = ""
    if FRAGMENT_POSITION_MARKER in fragment_code and not context.pure_mode:
        frag_coord_code = (
            f"\n  if ({INTERNALS_VAR_NAME}.yFactor_ == 1.) {{\n"
            "    fragmentInputs.position.y = "
            f"{INTERNALS_VAR_NAME}.textureOutputHeight_ - fragmentInputs.position.y;\n"
            "  }\n"
        )

    fragment_code = neutralize_define_directives(fragment_code)
    fragment_code = process_strided_uniform_arrays(fragment_code, context)
    if not context.pure_mode:
        # also covers dpdyCoarse and dpdyFine
        fragment_code = fragment_code.replace(
            "dpdy", f"(-{INTERNALS_VAR_NAME}.yFactor_)*dpdy"
        )

    fragment_code = (
        build_fragment_inputs(context)
        + build_fragment_outputs(fragment_code, enabled_extensions)
        + fragment_code
    )

    starting_code = "\n  fragmentInputs = input;\n" + frag_coord_code
    ending_code = "  return fragmentOutputs;"

    if enabled_extensions:
        fragment_code = (
            "enable " + ";\nenable ".join(enabled_extensions) + ";\n" + fragment_code
        )

    return _diagnostics(fragment_code) + inject_starting_and_ending_code(
        fragment_code, MAIN_FUNCTION_DECLARATION, starting_code, ending_code
    )


def finalize_shaders(
    vertex_code: str, fragment_code: str, context: ProcessingContext
) -> tuple[str, str]:
    """Finalize both stages of a compile.

    Args:
        vertex_code: Vertex stage after declaration and define processing
        fragment_code: Fragment stage after declaration and define processing
        context: Processing context of the compile

    Returns:
        Tuple of (vertex code, fragment code) ready for native compilation
    """
    vertex_code = process_samplers(vertex_code, True, context)
    fragment_code = process_samplers(fragment_code, False, context)

    vertex_code = process_custom_buffers(vertex_code, True, context)
    fragment_code = process_custom_buffers(fragment_code, False, context)

    left_over_ubo = build_left_over_ubo(context)
    vertex_code = left_over_ubo + vertex_code
    fragment_code = left_over_ubo + fragment_code

    vertex_code = finalize_vertex(vertex_code, context)
    fragment_code = finalize_fragment(fragment_code, context)

    collect_binding_names(context)
    pre_create_bind_group_entries(context)

    logger.debug(
        f"Finalized shaders: {len(context.available_attributes)} attributes, "
        f"{len(context.available_varyings)} varyings, "
        f"{len(context.available_textures)} textures, "
        f"{len(context.available_samplers)} samplers, "
        f"{len(context.available_buffers)} buffers"
    )

    context.reset_stage_declarations()

    return vertex_code, fragment_code
