"""
Data models and structures for the WGSL shader transpiler.

This module contains the dataclass definitions used throughout the transpiler
to represent binding pairs, registered resources, leftover uniforms and the
binding-layout records consumed by bind group creation.
"""

from dataclasses import dataclass, field
from enum import Enum, IntFlag, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wgslbind.transpiler.context import ProcessingContext


class TextureViewDimension(Enum):
    """View dimension of a texture binding."""

    E1D = "1d"
    E2D = "2d"
    E2D_ARRAY = "2d-array"
    CUBE = "cube"
    CUBE_ARRAY = "cube-array"
    E3D = "3d"


class TextureSampleType(Enum):
    """Sample type of a sampled texture binding."""

    FLOAT = "float"
    UNFILTERABLE_FLOAT = "unfilterable-float"
    DEPTH = "depth"
    SINT = "sint"
    UINT = "uint"


class SamplerBindingType(Enum):
    """Kind of sampler binding."""

    FILTERING = "filtering"
    NON_FILTERING = "non-filtering"
    COMPARISON = "comparison"


class BufferBindingType(Enum):
    """Kind of buffer binding."""

    UNIFORM = "uniform"
    STORAGE = "storage"
    READ_ONLY_STORAGE = "read-only-storage"


class StorageTextureAccess(Enum):
    """Access mode of a storage texture binding."""

    WRITE_ONLY = "write-only"
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"


class ShaderStage(IntFlag):
    """Shader stage visibility flags of a binding."""

    NONE = 0
    VERTEX = 1
    FRAGMENT = 2
    COMPUTE = 4


class BindingKind(Enum):
    """Resource kind described by a bind group layout entry."""

    BUFFER = auto()
    SAMPLER = auto()
    TEXTURE = auto()
    STORAGE_TEXTURE = auto()
    EXTERNAL_TEXTURE = auto()


@dataclass(frozen=True)
class BindingPair:
    """A (group, binding) address of a GPU-visible resource slot."""

    group_index: int
    binding_index: int

    def attribute(self) -> str:
        """Return the WGSL binding annotation for this pair."""
        return f"@group({self.group_index}) @binding({self.binding_index}) "


@dataclass
class UniformEntry:
    """Plain uniform collected into the leftover uniform buffer.

    Attributes:
        name: Uniform name, unique within the leftover list
        type: Element type (array wrapper removed)
        length: Array length, 0 for non-array uniforms
    """

    name: str
    type: str
    length: int = 0


@dataclass
class TextureBinding:
    """Texture registered by the texture processor.

    Attributes:
        textures: One binding pair per array element (a single pair otherwise)
        is_texture_array: Whether the declaration is an array of textures
        is_storage_texture: Whether the texture is a storage texture
        sample_type: Sample type derived from the component type
        auto_bind_sampler: Whether a sampler named ``<texture>Sampler`` exists
    """

    textures: list[BindingPair]
    is_texture_array: bool = False
    is_storage_texture: bool = False
    sample_type: TextureSampleType = TextureSampleType.FLOAT
    auto_bind_sampler: bool = False


@dataclass
class SamplerBinding:
    """Sampler registered by the sampler processor."""

    binding: BindingPair
    type: SamplerBindingType = SamplerBindingType.FILTERING


@dataclass
class BufferBinding:
    """Uniform or storage buffer registered by the buffer processors."""

    binding: BindingPair
    buffer_type: BufferBindingType = BufferBindingType.UNIFORM


@dataclass
class StridedArrayRegistration:
    """Leftover uniform array whose elements are padded to a 16 byte stride.

    Attributes:
        name: Name of the uniform array
        struct_name: Name of the generated single-field wrapper struct
    """

    name: str
    struct_name: str


@dataclass
class BindGroupLayoutEntry:
    """Description of one binding in a bind group layout."""

    binding: int
    kind: BindingKind
    visibility: ShaderStage = ShaderStage.NONE
    buffer_type: BufferBindingType | None = None
    sampler_type: SamplerBindingType | None = None
    sample_type: TextureSampleType | None = None
    view_dimension: TextureViewDimension | None = None
    multisampled: bool = False
    storage_access: StorageTextureAccess | None = None
    storage_format: str | None = None


@dataclass
class BindGroupLayoutEntryInfo:
    """Name lookup for a bind group layout entry.

    Attributes:
        name: Name of the resource as declared in the shader
        index: Position of the entry in its group's entry list
        name_in_array_of_texture: ``name<i>`` for texture arrays, ``name`` otherwise
    """

    name: str
    index: int
    name_in_array_of_texture: str | None = None


@dataclass
class BindGroupEntry:
    """Placeholder bind group entry, filled with a resource at bind time."""

    binding: int
    is_buffer: bool = False
    offset: int = 0
    size: int = 0
    resource: object | None = None


@dataclass
class StageDeclarations:
    """Per-compile declaration bookkeeping accumulated while processing lines.

    Attributes:
        attributes_input: Fields of the raw vertex input struct
        attributes: Fields of the converted vertex input struct
        attributes_conversion_code: Statements copying/converting raw inputs
        has_non_float_attribute: Whether any attribute needed int conversion
        varyings: Fields shared by the vertex output / fragment input structs
        varying_names: Names of the declared varyings, in declaration order
        strided_uniform_arrays: Leftover arrays padded to a 16 byte stride
    """

    attributes_input: list[str] = field(default_factory=list)
    attributes: list[str] = field(default_factory=list)
    attributes_conversion_code: list[str] = field(default_factory=list)
    has_non_float_attribute: bool = False
    varyings: list[str] = field(default_factory=list)
    varying_names: list[str] = field(default_factory=list)
    strided_uniform_arrays: list[StridedArrayRegistration] = field(
        default_factory=list
    )


@dataclass
class TranspileResult:
    """Output of one shader pair compile."""

    vertex_code: str
    fragment_code: str
    context: "ProcessingContext"
