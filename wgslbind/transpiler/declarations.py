"""
Line-oriented declaration processors.

Each processor looks at one source line and either returns ``None`` ("not this
kind of declaration") or the replacement text for the line, registering the
declared resource in the processing context on the way. ``process_line`` tries
the processors in a fixed order; ``process_stage`` runs it over a whole stage.

The vertex stage must be processed before the fragment stage: fragment varyings
are looked up, never allocated.
"""

import re

from loguru import logger

from wgslbind.transpiler.bindings import add_texture_binding_description
from wgslbind.transpiler.constants import TEXTURE_VIEW_DIMENSIONS
from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.errors import TextureDimensionError
from wgslbind.transpiler.models import TextureBinding, TextureSampleType
from wgslbind.transpiler.type_utils import get_array_size
from wgslbind.transpiler.uniform_buffer import add_uniform_to_left_over_ubo

ATTRIBUTE_REGEX = re.compile(r"\s*attribute\s+(\S+)\s*:\s*(.+)\s*;")
VARYING_CHECK_REGEX = re.compile(
    r"(flat|linear|perspective)?\s*(center|centroid|sample)?\s*\bvarying\b"
)
VARYING_REGEX = re.compile(
    r"\s*(flat|linear|perspective)?\s*(center|centroid|sample)?\s*varying\s+"
    r"(?:(?:highp)?|(?:lowp)?)\s*(\S+)\s*:\s*(.+)\s*;"
)
UNIFORM_REGEX = re.compile(r"uniform\s+(\w+)\s*:\s*(.+)\s*;")
TEXTURE_REGEX = re.compile(
    r"var\s+(\w+)\s*:\s*((array<\s*)?(texture_\w+)\s*(<\s*(.+)\s*>)?\s*"
    r"(,\s*\w+\s*>\s*)?);"
)


def process_attribute(
    line: str, context: ProcessingContext, preprocessors: dict[str, str]
) -> str | None:
    """Register a vertex attribute and consume its declaration.

    When the vertex buffer feeding the attribute holds integer data but the
    shader declares a float type, the raw input gets an integer shadow field
    ``_int_<name>_`` and a conversion statement for the entry point prologue.
    """
    match = ATTRIBUTE_REGEX.search(line)
    if match is None:
        return None

    name = match.group(1)
    attribute_type = match.group(2).strip()
    location = context.get_attribute_next_location(
        attribute_type, get_array_size(name, attribute_type, preprocessors)[2]
    )
    context.available_attributes[name] = location
    context.ordered_attributes[location] = name

    declarations = context.declarations
    num_components = context.vertex_buffer_kind_to_number_of_components.get(name)
    if num_components is not None:
        if num_components < 0:
            new_type = "i32" if num_components == -1 else f"vec{-num_components}<i32>"
        else:
            new_type = "u32" if num_components == 1 else f"vec{num_components}<u32>"
        new_name = f"_int_{name}_"

        declarations.attributes_input.append(
            f"@location({location}) {new_name} : {new_type},"
        )
        declarations.attributes.append(f"{name} : {attribute_type},")
        declarations.attributes_conversion_code.append(
            f"vertexInputs.{name} = {attribute_type}(vertexInputs_.{new_name});"
        )
        declarations.has_non_float_attribute = True
    else:
        declarations.attributes_input.append(
            f"@location({location}) {name} : {attribute_type},"
        )
        declarations.attributes.append(f"{name} : {attribute_type},")
        declarations.attributes_conversion_code.append(
            f"vertexInputs.{name} = vertexInputs_.{name};"
        )

    logger.debug(f"Attribute {name} : {attribute_type} at location {location}")
    return ""


def is_varying(line: str) -> bool:
    """Check whether a line declares a varying."""
    return VARYING_CHECK_REGEX.search(line) is not None


def process_varying(
    line: str,
    is_fragment: bool,
    context: ProcessingContext,
    preprocessors: dict[str, str],
) -> str | None:
    """Allocate (vertex) or look up (fragment) a varying location.

    A fragment varying missing from the vertex stage is dropped with a warning.
    """
    match = VARYING_REGEX.search(line)
    if match is None:
        return None

    interpolation_type = match.group(1) or "perspective"
    interpolation_sampling = match.group(2) or "center"
    name = match.group(3)
    varying_type = match.group(4).strip()

    if interpolation_type == "flat":
        interpolation = f"@interpolate({interpolation_type})"
    else:
        interpolation = f"@interpolate({interpolation_type}, {interpolation_sampling})"

    if is_fragment:
        if name not in context.available_varyings:
            logger.warning(
                f'Invalid fragment shader: The varying named "{name}" is not '
                "declared in the vertex shader! This declaration will be ignored."
            )
    else:
        location = context.get_varying_next_location(
            varying_type, get_array_size(name, varying_type, preprocessors)[2]
        )
        context.available_varyings[name] = location
        context.declarations.varyings.append(
            f"  @location({location}) {interpolation} {name} : {varying_type},"
        )
        context.declarations.varying_names.append(name)
        logger.debug(f"Varying {name} : {varying_type} at location {location}")

    return ""


def process_uniform(
    line: str, context: ProcessingContext, preprocessors: dict[str, str]
) -> str | None:
    """Move a plain uniform into the leftover uniform buffer."""
    match = UNIFORM_REGEX.search(line)
    if match is None:
        return None

    add_uniform_to_left_over_ubo(
        context, match.group(1), match.group(2).strip(), preprocessors
    )
    return ""


def process_texture(
    line: str,
    is_fragment: bool,
    context: ProcessingContext,
    preprocessors: dict[str, str],
) -> str | None:
    """Prefix a texture declaration with its binding annotation.

    A texture array of length N takes N consecutive bindings. A texture already
    registered by the other stage keeps its bindings.

    Raises:
        TextureDimensionError: If the texture function has no view dimension
    """
    match = TEXTURE_REGEX.search(line)
    if match is None:
        return None

    name = match.group(1)
    texture_type = match.group(2)  # texture_2d<f32> or array<texture_2d<f32>, 5>
    is_array_of_texture = bool(match.group(3))
    texture_function = match.group(4)  # texture_2d, texture_depth_2d, ...
    component_type = match.group(6)  # f32, i32, u32, "rgba8unorm, write" or None
    if component_type:
        # array<texture_2d<u32>, 4> captures "u32>, 4"
        component_type = component_type.split(">")[0].strip()

    if texture_function not in TEXTURE_VIEW_DIMENSIONS:
        raise TextureDimensionError(texture_function, line)
    dimension = TEXTURE_VIEW_DIMENSIONS[texture_function]

    is_storage_texture = texture_function.find("storage") > 0
    is_depth_texture = texture_function.find("depth") > 0
    storage_texture_format = None
    if is_storage_texture and component_type:
        storage_texture_format = component_type.split(",")[0].strip()

    array_size = (
        get_array_size(name, texture_type, preprocessors)[2]
        if is_array_of_texture
        else 0
    )
    texture_info = context.available_textures.get(name)
    if texture_info is None:
        texture_info = TextureBinding(
            textures=[
                context.get_next_free_ubo_binding() for _ in range(array_size or 1)
            ],
            is_texture_array=array_size > 0,
            is_storage_texture=is_storage_texture,
        )
        context.available_textures[name] = texture_info
        logger.debug(f"Registered texture {name}: {texture_info.textures}")

    if is_depth_texture:
        texture_info.sample_type = TextureSampleType.DEPTH
    elif component_type == "u32":
        texture_info.sample_type = TextureSampleType.UINT
    elif component_type == "i32":
        texture_info.sample_type = TextureSampleType.SINT
    else:
        texture_info.sample_type = TextureSampleType.FLOAT

    for index in range(len(texture_info.textures)):
        add_texture_binding_description(
            context,
            name,
            texture_info,
            index,
            dimension,
            storage_texture_format,
            "multisampled" in texture_function,
            not is_fragment,
        )

    return texture_info.textures[0].attribute() + line


def process_line(
    line: str,
    is_fragment: bool,
    context: ProcessingContext,
    preprocessors: dict[str, str],
) -> str:
    """Run the declaration processors over one line.

    Args:
        line: Source line
        is_fragment: Whether the line belongs to the fragment stage
        context: Processing context of the compile
        preprocessors: Material-level preprocessor constants

    Returns:
        The replacement of the line, the line itself if no processor claimed it
    """
    stripped = line.strip()
    result: str | None = None
    if stripped.startswith("attribute"):
        result = process_attribute(stripped, context, preprocessors)
    elif is_varying(stripped):
        result = process_varying(stripped, is_fragment, context, preprocessors)
    elif UNIFORM_REGEX.search(stripped):
        result = process_uniform(stripped, context, preprocessors)
    elif TEXTURE_REGEX.search(stripped):
        result = process_texture(line, is_fragment, context, preprocessors)
    return line if result is None else result


def process_stage(
    code: str,
    is_fragment: bool,
    context: ProcessingContext,
    preprocessors: dict[str, str],
) -> str:
    """Run the declaration processors over every line of a stage."""
    return "\n".join(
        process_line(line, is_fragment, context, preprocessors)
        for line in code.split("\n")
    )
