"""
Constants and predefined values for the WGSL shader transpiler.

This module contains the fixed tables used throughout the transpiler: texture
view dimensions per texture function, component counts of uniform types,
location sizes of attribute/varying types, the engine-known uniform buffers and
the textual markers the stage finalizer looks for.
"""

from wgslbind.transpiler.models import TextureViewDimension

# Name of the synthesized leftover uniform buffer struct and its variable
LEFTOVER_UBO_NAME = "LeftOver"
LEFTOVER_VAR_NAME = "uniforms"

# Engine internals uniform buffer injected in front of every stage
INTERNALS_UBO_NAME = "Internals"
INTERNALS_VAR_NAME = "internals"

# Suffix linking a sampler to the texture it samples (diffuseSampler -> diffuse)
AUTO_SAMPLER_SUFFIX = "Sampler"

# Material-level define names starting with this prefix are engine internal
RESERVED_DEFINE_PREFIX = "__"

# Entry point declaration wrapped by the stage finalizer
MAIN_FUNCTION_DECLARATION = "fn main"

# Fragment stage markers
FRAG_DEPTH_BUILTIN = "fragmentOutputs.fragDepth"
FRAG_DATA_PREFIX = "fragmentOutputs.fragData"
MRT_AND_COLOR_MARKER = "MRT_AND_COLOR"
OIT_MARKER = "oitDepthSampler"
DUAL_SOURCE_BLENDING_MARKER = "DUAL_SOURCE_BLENDING"
DISABLE_UNIFORMITY_ANALYSIS_MARKER = "#define DISABLE_UNIFORMITY_ANALYSIS"
FRAGMENT_POSITION_MARKER = "fragmentInputs.position"
MAX_RENDER_TARGETS = 8

# Allocator limits
MAX_GROUPS = 4
MAX_BINDINGS_PER_GROUP = 1 << 16
MAX_ATTRIBUTE_LOCATIONS = 16
MAX_VARYING_LOCATIONS = 16

# View dimension per texture function; None marks external textures
TEXTURE_VIEW_DIMENSIONS: dict[str, TextureViewDimension | None] = {
    "texture_1d": TextureViewDimension.E1D,
    "texture_2d": TextureViewDimension.E2D,
    "texture_2d_array": TextureViewDimension.E2D_ARRAY,
    "texture_3d": TextureViewDimension.E3D,
    "texture_cube": TextureViewDimension.CUBE,
    "texture_cube_array": TextureViewDimension.CUBE_ARRAY,
    "texture_multisampled_2d": TextureViewDimension.E2D,
    "texture_depth_2d": TextureViewDimension.E2D,
    "texture_depth_2d_array": TextureViewDimension.E2D_ARRAY,
    "texture_depth_cube": TextureViewDimension.CUBE,
    "texture_depth_cube_array": TextureViewDimension.CUBE_ARRAY,
    "texture_depth_multisampled_2d": TextureViewDimension.E2D,
    "texture_storage_1d": TextureViewDimension.E1D,
    "texture_storage_2d": TextureViewDimension.E2D,
    "texture_storage_2d_array": TextureViewDimension.E2D_ARRAY,
    "texture_storage_3d": TextureViewDimension.E3D,
    "texture_external": None,
}

# Number of scalar components of a uniform type (template argument removed)
UNIFORM_SIZES: dict[str, int] = {
    # GLSL spellings
    "bool": 1,
    "int": 1,
    "float": 1,
    "vec2": 2,
    "ivec2": 2,
    "uvec2": 2,
    "vec3": 3,
    "ivec3": 3,
    "uvec3": 3,
    "vec4": 4,
    "ivec4": 4,
    "uvec4": 4,
    "mat2": 4,
    "mat3": 12,
    "mat4": 16,
    # WGSL spellings
    "i32": 1,
    "u32": 1,
    "f32": 1,
    "f16": 1,
    "vec2i": 2,
    "vec2u": 2,
    "vec2f": 2,
    "vec2h": 2,
    "vec3i": 3,
    "vec3u": 3,
    "vec3f": 3,
    "vec3h": 3,
    "vec4i": 4,
    "vec4u": 4,
    "vec4f": 4,
    "vec4h": 4,
    "mat2x2": 4,
    "mat3x3": 12,
    "mat4x4": 16,
    "mat2x2f": 4,
    "mat3x3f": 12,
    "mat4x4f": 16,
    "mat2x2h": 4,
    "mat3x3h": 12,
    "mat4x4h": 16,
}

# Number of locations taken by an attribute/varying type; anything else takes 1
LOCATION_SIZES: dict[str, int] = {
    "mat2": 2,
    "mat3": 3,
    "mat4": 4,
    "mat2x2": 2,
    "mat2x3": 2,
    "mat2x4": 2,
    "mat3x2": 3,
    "mat3x3": 3,
    "mat3x4": 3,
    "mat4x2": 4,
    "mat4x3": 4,
    "mat4x4": 4,
}

# Engine-known uniform buffers keyed by struct name. A group index of -1 means
# the binding is allocated lazily the first time the buffer is declared.
KNOWN_UBOS: dict[str, tuple[int, int]] = {
    "Scene": (0, 0),
    "Light0": (-1, -1),
    "Light1": (-1, -1),
    "Light2": (-1, -1),
    "Light3": (-1, -1),
    "Material": (-1, -1),
    "Mesh": (-1, -1),
    "Internals": (-1, -1),
}
