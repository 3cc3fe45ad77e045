"""Command line interface for wgslbind.

This module provides a command-line interface for transpiling vertex/fragment
shader pairs to WGSL, inspecting the resulting binding layout and re-exporting
the shaders whenever their sources change.
"""

import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

import arrow
import typer
import watchdog.events
import watchdog.observers
from loguru import logger
from watchdog.events import FileSystemEventHandler

from wgslbind.transpiler import transpile
from wgslbind.transpiler.errors import TranspilerError
from wgslbind.transpiler.models import ShaderStage, TranspileResult

VISIBLE_STAGES = (ShaderStage.VERTEX, ShaderStage.FRAGMENT, ShaderStage.COMPUTE)

# Define type variables for TypedCallable
F = TypeVar("F", bound=Callable[..., Any])


# TypedCommand decorator helper
def typed_command(app_command: Any) -> Callable[[F], F]:
    """Wrap typer command with proper typing for mypy."""

    def decorator(func: F) -> F:
        return cast(F, app_command(func))

    return decorator


app = typer.Typer(
    name="wgslbind",
    help=(
        "Transpile vertex/fragment shader pairs into binding-aware WGSL. "
        "Commands: export, bindings, watch."
    ),
    add_completion=False,
)


def _parse_assignments(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated NAME=VALUE options into a dictionary.

    Args:
        values: Raw option values
        option: Option name, used in error messages

    Returns:
        Dictionary of names to values (a bare NAME maps to an empty string)
    """
    result: dict[str, str] = {}
    for value in values or []:
        name, _, assigned = value.partition("=")
        name = name.strip()
        if not name:
            raise typer.BadParameter(f"Invalid {option} value: {value!r}")
        result[name] = assigned.strip()
    return result


def _parse_components(values: list[str] | None) -> dict[str, int]:
    """Parse repeated NAME=N vertex buffer component counts."""
    components: dict[str, int] = {}
    for name, value in _parse_assignments(values, "--components").items():
        try:
            components[name] = int(value)
        except ValueError as e:
            raise typer.BadParameter(
                f"Component count of {name} must be an integer, got {value!r}"
            ) from e
    return components


def _get_transpiled_shaders(
    vertex_file: Path,
    fragment_file: Path,
    defines: dict[str, str],
    components: dict[str, int],
    pure: bool,
    max_bindings_per_group: int | None = None,
) -> TranspileResult:
    """Read and transpile a shader pair.

    Args:
        vertex_file: Vertex stage source file
        fragment_file: Fragment stage source file
        defines: Material-level defines
        components: Vertex buffer component counts per attribute
        pure: Whether to skip engine-specific normalization
        max_bindings_per_group: Optional bind group capacity

    Returns:
        The transpile result
    """
    try:
        vertex_source = vertex_file.read_text()
        fragment_source = fragment_file.read_text()
    except OSError as e:
        logger.error(f"Failed to read shader sources: {e}")
        raise typer.Exit(1) from e

    kwargs: dict[str, Any] = {}
    if max_bindings_per_group is not None:
        kwargs["max_bindings_per_group"] = max_bindings_per_group

    try:
        result = transpile(
            vertex_source,
            fragment_source,
            defines=defines,
            vertex_buffer_components=components,
            pure_mode=pure,
            **kwargs,
        )
    except TranspilerError as e:
        logger.error(f"Transpilation error: {e}")
        raise typer.Exit(1) from e

    logger.info(f"Transpiled {vertex_file.name} and {fragment_file.name}")
    return result


def _add_header_comments(code: str, source_file: Path, stage: str) -> str:
    """Add header comments to the code.

    Args:
        code: Generated code
        source_file: Source shader file
        stage: Stage name ("vertex" or "fragment")

    Returns:
        Code with header comments
    """
    timestamp = arrow.utcnow().format("YYYY-MM-DD HH:mm:ss UTC")
    header = f"// Generated by wgslbind v{__import__('wgslbind').__version__}\n"
    header += f"// Generation time: {timestamp}\n"
    header += f"// Source file: {source_file.name}\n"
    header += f"// Stage: {stage}\n"
    header += "\n"
    return header + code


def _output_stem(vertex_file: Path) -> str:
    """Get the base name of the exported files: ``pbr.vertex.fx`` -> ``pbr``."""
    return vertex_file.name.split(".")[0]


def _write_outputs(
    result: TranspileResult,
    vertex_file: Path,
    fragment_file: Path,
    output_dir: Path | None,
    format: str,
) -> None:
    """Write (or print) both transpiled stages."""
    vertex_code = result.vertex_code
    fragment_code = result.fragment_code
    if format == "commented":
        vertex_code = _add_header_comments(vertex_code, vertex_file, "vertex")
        fragment_code = _add_header_comments(fragment_code, fragment_file, "fragment")
    elif format != "plain":
        logger.warning(f"Unknown format: {format}. Using plain.")

    if output_dir is None:
        typer.echo(vertex_code)
        typer.echo(fragment_code)
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    stem = _output_stem(vertex_file)
    vertex_output = output_dir / f"{stem}.vertex.wgsl"
    fragment_output = output_dir / f"{stem}.fragment.wgsl"
    vertex_output.write_text(vertex_code)
    fragment_output.write_text(fragment_code)
    logger.info(f"Shader code exported to {vertex_output} and {fragment_output}")


# Define reusable arguments
VERTEX_ARG = typer.Argument(..., help="Vertex shader source file")
FRAGMENT_ARG = typer.Argument(..., help="Fragment shader source file")
DEFINE_OPT = typer.Option(
    None, "--define", "-D", help="Material define as NAME=VALUE (repeatable)"
)
COMPONENTS_OPT = typer.Option(
    None,
    "--components",
    "-c",
    help="Vertex buffer component count as NAME=N, negative for integer data",
)
PURE_OPT = typer.Option(
    False, "--pure", help="Skip the engine internals buffer and y-flip"
)


@typed_command(app.command("export"))
def export_shader_code(
    vertex_file: Path = VERTEX_ARG,
    fragment_file: Path = FRAGMENT_ARG,
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Directory of the exported .wgsl files"
    ),
    define: list[str] | None = DEFINE_OPT,
    components: list[str] | None = COMPONENTS_OPT,
    pure: bool = PURE_OPT,
    max_bindings_per_group: int | None = typer.Option(
        None, "--max-bindings-per-group", help="Bindings available per bind group"
    ),
    format: str = typer.Option(
        "plain", "--format", "-f", help="Code format (plain, commented)"
    ),
) -> None:
    """Export a shader pair to WGSL code.

    Without an output directory both stages are printed to stdout.

    Example: wgslbind export default.vertex.fx default.fragment.fx -o out
    """
    result = _get_transpiled_shaders(
        vertex_file,
        fragment_file,
        _parse_assignments(define, "--define"),
        _parse_components(components),
        pure,
        max_bindings_per_group,
    )
    _write_outputs(result, vertex_file, fragment_file, output_dir, format)


@typed_command(app.command("bindings"))
def show_bindings(
    vertex_file: Path = VERTEX_ARG,
    fragment_file: Path = FRAGMENT_ARG,
    define: list[str] | None = DEFINE_OPT,
    components: list[str] | None = COMPONENTS_OPT,
    pure: bool = PURE_OPT,
) -> None:
    """Print the binding layout of a shader pair.

    Lists every (group, binding) with its resource kind, stage visibility and
    name, followed by the attribute and varying locations.

    Example: wgslbind bindings default.vertex.fx default.fragment.fx
    """
    result = _get_transpiled_shaders(
        vertex_file,
        fragment_file,
        _parse_assignments(define, "--define"),
        _parse_components(components),
        pure,
    )
    context = result.context

    typer.echo("group binding kind visibility name")
    for group_index, entries in enumerate(context.bind_group_layout_entries):
        infos = context.bind_group_layout_entry_info[group_index]
        for entry in entries:
            info = infos[entry.binding]
            name = info.name_in_array_of_texture or info.name
            visibility = "|".join(
                stage.name for stage in VISIBLE_STAGES if stage in entry.visibility
            )
            typer.echo(
                f"{group_index} {entry.binding} {entry.kind.name.lower()} "
                f"{visibility.lower()} {name}"
            )

    for location, name in sorted(context.ordered_attributes.items()):
        typer.echo(f"attribute {location} {name}")
    for name, location in context.available_varyings.items():
        typer.echo(f"varying {location} {name}")


class ShaderChangeHandler(FileSystemEventHandler):  # type: ignore
    """Event handler re-exporting a shader pair when one of its files changes."""

    def __init__(
        self,
        vertex_file: Path,
        fragment_file: Path,
        output_dir: Path,
        defines: dict[str, str],
        components: dict[str, int],
        pure: bool,
    ):
        """Initialize shader change handler.

        Args:
            vertex_file: Vertex stage source file
            fragment_file: Fragment stage source file
            output_dir: Directory of the exported files
            defines: Material-level defines
            components: Vertex buffer component counts
            pure: Whether to skip engine-specific normalization
        """
        self.vertex_file = vertex_file
        self.fragment_file = fragment_file
        self.output_dir = output_dir
        self.defines = defines
        self.components = components
        self.pure = pure
        self.needs_reload = False

    def watched_paths(self) -> set[str]:
        """Get the absolute paths of the watched sources."""
        return {
            os.path.abspath(self.vertex_file),
            os.path.abspath(self.fragment_file),
        }

    def on_modified(self, event: watchdog.events.FileSystemEvent) -> None:
        """Handle file modified event.

        Args:
            event: File system event
        """
        if os.path.abspath(str(event.src_path)) in self.watched_paths():
            logger.info(f"Detected changes in {event.src_path}")
            self.needs_reload = True

    def export(self) -> bool:
        """Export the shader pair; compile errors are logged, not raised.

        Returns:
            Whether the export succeeded
        """
        try:
            result = _get_transpiled_shaders(
                self.vertex_file,
                self.fragment_file,
                self.defines,
                self.components,
                self.pure,
            )
        except typer.Exit:
            logger.warning("Export failed, waiting for the next change")
            return False
        _write_outputs(
            result, self.vertex_file, self.fragment_file, self.output_dir, "plain"
        )
        return True


@typed_command(app.command("watch"))
def watch_shaders(
    vertex_file: Path = VERTEX_ARG,
    fragment_file: Path = FRAGMENT_ARG,
    output_dir: Path = typer.Option(
        ..., "--output-dir", "-o", help="Directory of the exported .wgsl files"
    ),
    define: list[str] | None = DEFINE_OPT,
    components: list[str] | None = COMPONENTS_OPT,
    pure: bool = PURE_OPT,
) -> None:
    """Watch a shader pair and re-export it on changes.

    Example: wgslbind watch default.vertex.fx default.fragment.fx -o out
    """
    handler = ShaderChangeHandler(
        vertex_file,
        fragment_file,
        output_dir,
        _parse_assignments(define, "--define"),
        _parse_components(components),
        pure,
    )
    handler.export()

    # Watch the files' directories, not the files themselves
    observer = watchdog.observers.Observer()
    directories = {os.path.dirname(path) for path in handler.watched_paths()}
    for directory in directories:
        observer.schedule(handler, path=directory, recursive=False)
    observer.start()

    logger.info("Watching shader sources (press Ctrl+C to exit)...")
    try:
        while True:
            if handler.needs_reload:
                handler.needs_reload = False
                handler.export()
            time.sleep(0.1)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, stopping...")
    finally:
        observer.stop()
        observer.join()


if __name__ == "__main__":
    app()
