"""
Transpilation of attribute/varying/uniform shader pairs to binding-aware WGSL.

This module provides the top-level interface for transpiling a vertex and a
fragment shader that share one resource binding layout.
"""

from loguru import logger

from wgslbind.transpiler.code_utils import remove_comments
from wgslbind.transpiler.constants import (
    INTERNALS_UBO_NAME,
    INTERNALS_VAR_NAME,
    MAX_BINDINGS_PER_GROUP,
)
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.declarations import process_stage
from wgslbind.transpiler.defines import collect_source_defines, post_process
from wgslbind.transpiler.errors import TranspilerError
from wgslbind.transpiler.finalizer import finalize_shaders
from wgslbind.transpiler.models import TranspileResult

INTERNALS_UBO_DECLARATION = (
    f"struct {INTERNALS_UBO_NAME} {{\n"
    "  yFactor_: f32,\n"
    "  textureOutputHeight_: f32,\n"
    "};\n"
    f"var<uniform> {INTERNALS_VAR_NAME} : {INTERNALS_UBO_NAME};\n"
)


def pre_process_shader_code(code: str, pure_mode: bool = False) -> str:
    """Remove comments and inject the engine internals uniform buffer.

    Code that already carries the internals declaration is returned untouched.

    Args:
        code: Raw stage source
        pure_mode: Skip the engine internals declaration

    Returns:
        The preprocessed stage source
    """
    declaration = "" if pure_mode else INTERNALS_UBO_DECLARATION
    if declaration and declaration in code:
        return code
    return declaration + remove_comments(code)


def transpile(
    vertex_source: str,
    fragment_source: str,
    *,
    defines: dict[str, str] | None = None,
    source_defines: dict[str, str] | None = None,
    vertex_buffer_components: dict[str, int] | None = None,
    pure_mode: bool = False,
    max_bindings_per_group: int = MAX_BINDINGS_PER_GROUP,
    context: ProcessingContext | None = None,
) -> TranspileResult:
    """Transpile a vertex/fragment shader pair.

    The vertex stage is always processed before the fragment stage so that
    fragment varyings find the locations the vertex stage allocated.

    Args:
        vertex_source: Vertex stage source
        fragment_source: Fragment stage source
        defines: Material-level preprocessor defines (name to value)
        source_defines: In-source macro defines; collected from each stage's
            ``#define`` directives when omitted
        vertex_buffer_components: Component count of the vertex buffer feeding
            each attribute, negative for integer buffers
        pure_mode: Skip the engine-specific y-flip and internals buffer
        max_bindings_per_group: Capacity of a bind group
        context: Context to process with; a fresh one is created when omitted.
            A given context keeps its own pure mode and bind group capacity,
            ``pure_mode`` and ``max_bindings_per_group`` are ignored then

    Returns:
        The two transpiled stages and the populated processing context

    Raises:
        TranspilerError: If the compile must be aborted

    Examples:
        result = transpile(vertex_code, fragment_code, defines={"NUM_LIGHTS": "4"})
        result.context.available_textures["diffuse"].textures[0]
    """
    defines = defines or {}
    if context is None:
        context = ProcessingContext(
            pure_mode=pure_mode,
            max_bindings_per_group=max_bindings_per_group,
            vertex_buffer_kind_to_number_of_components=vertex_buffer_components,
        )
    else:
        if (
            pure_mode != context.pure_mode
            or max_bindings_per_group != context.max_bindings_per_group
        ):
            logger.debug(
                "Using the pure mode and bind group capacity of the given context "
                f"(pure_mode: {context.pure_mode}, "
                f"max_bindings_per_group: {context.max_bindings_per_group})"
            )
        if vertex_buffer_components is not None:
            context.vertex_buffer_kind_to_number_of_components = dict(
                vertex_buffer_components
            )
    context.initialize()

    logger.debug(
        f"Transpiling shader pair with {len(defines)} defines, "
        f"pure_mode: {context.pure_mode}"
    )

    vertex_code = pre_process_shader_code(vertex_source, context.pure_mode)
    fragment_code = pre_process_shader_code(fragment_source, context.pure_mode)

    vertex_code = process_stage(vertex_code, False, context, defines)
    fragment_code = process_stage(fragment_code, True, context, defines)

    vertex_defines = (
        source_defines
        if source_defines is not None
        else collect_source_defines(vertex_code)
    )
    fragment_defines = (
        source_defines
        if source_defines is not None
        else collect_source_defines(fragment_code)
    )
    vertex_code = post_process(vertex_code, defines, vertex_defines)
    fragment_code = post_process(fragment_code, defines, fragment_defines)

    vertex_code, fragment_code = finalize_shaders(vertex_code, fragment_code, context)
    return TranspileResult(
        vertex_code=vertex_code, fragment_code=fragment_code, context=context
    )


__all__ = [
    "ProcessingContext",
    "TranspileResult",
    "TranspilerError",
    "pre_process_shader_code",
    "transpile",
]
