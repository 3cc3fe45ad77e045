"""
Binding-layout descriptions of the resources registered during a compile.

The declaration processors only allocate binding pairs; the functions here
describe every binding for the bind group layout creation that follows the
compile: one ``BindGroupLayoutEntry`` per (group, binding), with a visibility
accumulated over the stages that reference it, plus a name lookup table.
"""

from loguru import logger

from wgslbind.transpiler.context import ProcessingContext
from wgslbind.transpiler.models import (
    BindGroupEntry,
    BindGroupLayoutEntry,
    BindGroupLayoutEntryInfo,
    BindingKind,
    BindingPair,
    BufferBinding,
    BufferBindingType,
    SamplerBinding,
    ShaderStage,
    StorageTextureAccess,
    TextureBinding,
    TextureViewDimension,
)


def _ensure_group(context: ProcessingContext, group_index: int) -> None:
    while len(context.bind_group_layout_entries) <= group_index:
        context.bind_group_layout_entries.append([])
        context.bind_group_layout_entry_info.append({})


def _add_entry(
    context: ProcessingContext,
    pair: BindingPair,
    name: str,
    entry: BindGroupLayoutEntry,
    is_vertex: bool,
    name_in_array_of_texture: str | None = None,
) -> BindGroupLayoutEntry:
    """Register ``entry`` once per binding pair and OR in the stage visibility."""
    _ensure_group(context, pair.group_index)
    entries = context.bind_group_layout_entries[pair.group_index]
    infos = context.bind_group_layout_entry_info[pair.group_index]

    info = infos.get(pair.binding_index)
    if info is None:
        entries.append(entry)
        info = BindGroupLayoutEntryInfo(
            name=name,
            index=len(entries) - 1,
            name_in_array_of_texture=name_in_array_of_texture,
        )
        infos[pair.binding_index] = info
        logger.debug(f"Described {entry.kind.name} binding {name} at {pair}")

    existing = entries[info.index]
    existing.visibility |= ShaderStage.VERTEX if is_vertex else ShaderStage.FRAGMENT
    return existing


def add_texture_binding_description(
    context: ProcessingContext,
    name: str,
    texture_info: TextureBinding,
    texture_index: int,
    dimension: TextureViewDimension | None,
    storage_format: str | None,
    multisampled: bool,
    is_vertex: bool,
) -> None:
    """Describe one element of a (possibly arrayed) texture binding."""
    pair = texture_info.textures[texture_index]
    if dimension is None:
        entry = BindGroupLayoutEntry(
            binding=pair.binding_index, kind=BindingKind.EXTERNAL_TEXTURE
        )
    elif texture_info.is_storage_texture:
        entry = BindGroupLayoutEntry(
            binding=pair.binding_index,
            kind=BindingKind.STORAGE_TEXTURE,
            storage_access=StorageTextureAccess.WRITE_ONLY,
            storage_format=storage_format,
            view_dimension=dimension,
        )
    else:
        entry = BindGroupLayoutEntry(
            binding=pair.binding_index,
            kind=BindingKind.TEXTURE,
            sample_type=texture_info.sample_type,
            view_dimension=dimension,
            multisampled=multisampled,
        )

    texture_name = (
        f"{name}{texture_index}" if texture_info.is_texture_array else name
    )
    _add_entry(context, pair, name, entry, is_vertex, texture_name)


def add_sampler_binding_description(
    context: ProcessingContext,
    name: str,
    sampler_info: SamplerBinding,
    is_vertex: bool,
) -> None:
    """Describe a sampler binding."""
    entry = BindGroupLayoutEntry(
        binding=sampler_info.binding.binding_index,
        kind=BindingKind.SAMPLER,
        sampler_type=sampler_info.type,
    )
    _add_entry(context, sampler_info.binding, name, entry, is_vertex)


def add_buffer_binding_description(
    context: ProcessingContext,
    name: str,
    buffer_info: BufferBinding,
    buffer_type: BufferBindingType,
    is_vertex: bool,
) -> None:
    """Describe a uniform or storage buffer binding."""
    entry = BindGroupLayoutEntry(
        binding=buffer_info.binding.binding_index,
        kind=BindingKind.BUFFER,
        buffer_type=buffer_type,
    )
    _add_entry(context, buffer_info.binding, name, entry, is_vertex)


def collect_binding_names(context: ProcessingContext) -> None:
    """Fill the texture/sampler/buffer name lists in group and entry order."""
    context.texture_names = []
    context.sampler_names = []
    context.buffer_names = []
    for group_index, entries in enumerate(context.bind_group_layout_entries):
        infos = context.bind_group_layout_entry_info[group_index]
        for entry in entries:
            info = infos[entry.binding]
            if entry.kind in (
                BindingKind.TEXTURE,
                BindingKind.STORAGE_TEXTURE,
                BindingKind.EXTERNAL_TEXTURE,
            ):
                context.texture_names.append(
                    info.name_in_array_of_texture or info.name
                )
            elif entry.kind == BindingKind.SAMPLER:
                context.sampler_names.append(info.name)
            else:
                context.buffer_names.append(info.name)


def pre_create_bind_group_entries(context: ProcessingContext) -> None:
    """Create one placeholder bind group entry per layout entry."""
    context.bind_group_entries = [
        [
            BindGroupEntry(
                binding=entry.binding, is_buffer=entry.kind == BindingKind.BUFFER
            )
            for entry in entries
        ]
        for entries in context.bind_group_layout_entries
    ]
