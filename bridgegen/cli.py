"""bridgegen CLI — generate native bridges from annotated Python schemas."""

from __future__ import annotations

import importlib
import json
import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from bridgegen import __version__
from bridgegen.config import BridgeConfig, ConfigError, load_config
from bridgegen.ir import ExtractionResult, Severity, parse_from_live_annotations, parse_from_source
from bridgegen.utils.file_scanner import expand_paths

console = Console()

_SEVERITY_STYLES = {
    Severity.ERROR: "[red]x[/]",
    Severity.WARNING: "[yellow]![/]",
    Severity.INFO: "[blue]i[/]",
}


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """bridgegen — native bridge generator.

    Reads Python schema files marked with @native_struct, @export and
    @export_async and emits C++ value structs, a pybind11 bridge module and a
    typed Python facade.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # Diagnostics are printed by the commands themselves
    logging.getLogger("bridgegen.ir.builder").setLevel(
        logging.DEBUG if verbose else logging.CRITICAL
    )


# ── Generate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("paths", nargs=-1)
@click.option("--output", "-o", default=None, help="Output directory (overrides config)")
@click.option("--config", "-c", "config_path", default=None, help="Path to bridgegen.yaml")
@click.option("--module", "modules", multiple=True, help="Import a module and read it live")
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
def generate(
    paths: tuple[str, ...],
    output: str | None,
    config_path: str | None,
    modules: tuple[str, ...],
    strict: bool,
):
    """Generate bridge artifacts from schema files.

    PATHS are Python files or directories to scan. Use --module instead to
    read importable modules through their live annotations.
    """
    from bridgegen.generators import ArtifactEmitter, GenerationError

    config = _load_config_or_exit(config_path)
    extraction = _extract(paths, modules, config)

    console.print(f"\n[bold blue]bridgegen[/] — {escape(extraction.summary())}\n")
    _print_ir_tables(extraction)
    _print_diagnostics(extraction)

    if not extraction.passed:
        console.print("\n[red]Generation aborted: schema has errors.[/]")
        sys.exit(1)
    if strict and extraction.warnings:
        console.print("\n[red]FAIL[/] (strict mode: warnings treated as errors)")
        sys.exit(1)

    output_dir = Path(output) if output else config.output.get_output_path(Path.cwd())
    try:
        result = ArtifactEmitter(extraction.ir, config).emit(output_dir)
    except (GenerationError, OSError) as e:
        console.print(f"[red]Generation failed:[/] {e}")
        sys.exit(1)

    for path in result.written:
        console.print(f"  [green]wrote[/] {path}")
    for path in result.skipped:
        console.print(f"  [yellow]kept[/]  {path} (hand-edited, not overwritten)")
    console.print(f"\n[green]Generated {len(result.written)} file(s) in {output_dir}[/]")


# ── Inspect ──────────────────────────────────────────────────────────


@main.command()
@click.argument("paths", nargs=-1)
@click.option("--config", "-c", "config_path", default=None, help="Path to bridgegen.yaml")
@click.option("--module", "modules", multiple=True, help="Import a module and read it live")
@click.option(
    "--format", "fmt", default="table", type=click.Choice(["table", "yaml", "json"]),
    help="Output format",
)
def inspect(
    paths: tuple[str, ...], config_path: str | None, modules: tuple[str, ...], fmt: str
):
    """Print the schema IR extracted from PATHS."""
    config = _load_config_or_exit(config_path)
    extraction = _extract(paths, modules, config)

    if fmt == "json":
        click.echo(json.dumps(extraction.ir.to_dict(), indent=2))
    elif fmt == "yaml":
        click.echo(yaml.safe_dump(extraction.ir.to_dict(), sort_keys=False), nl=False)
    else:
        _print_ir_tables(extraction)
        _print_diagnostics(extraction)

    if not extraction.passed:
        sys.exit(1)


# ── Helpers ──────────────────────────────────────────────────────────


def _load_config_or_exit(config_path: str | None) -> BridgeConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)


def _extract(
    paths: tuple[str, ...], modules: tuple[str, ...], config: BridgeConfig
) -> ExtractionResult:
    if paths and modules:
        raise click.UsageError("Give either schema PATHS or --module names, not both")
    if not paths and not modules:
        raise click.UsageError("No schema given: pass schema PATHS or --module names")

    if modules:
        # Schema modules live in the user's project, not in site-packages
        if str(Path.cwd()) not in sys.path:
            sys.path.insert(0, str(Path.cwd()))
        try:
            loaded = [importlib.import_module(name) for name in modules]
        except ImportError as e:
            console.print(f"[red]Cannot import module:[/] {e}")
            sys.exit(1)
        return parse_from_live_annotations(loaded)

    try:
        files = expand_paths(paths)
        return parse_from_source(files, config.markers, repo_root=Path.cwd())
    except OSError as e:
        console.print(f"[red]Cannot read schema:[/] {e}")
        sys.exit(1)


def _print_ir_tables(extraction: ExtractionResult) -> None:
    ir = extraction.ir

    structs = Table(title=f"Structs ({len(ir.structs)})")
    structs.add_column("Name", style="cyan")
    structs.add_column("Fields")
    for struct in ir.structs:
        fields = ", ".join(
            f"{f.name}: {f.value_type}{' | None' if f.is_optional else ''}" for f in struct.fields
        )
        structs.add_row(struct.name, escape(fields))
    console.print(structs)

    exports = Table(title=f"Exports ({len(ir.exports)})")
    exports.add_column("Entry point", style="cyan")
    exports.add_column("Mode")
    exports.add_column("Parameter")
    exports.add_column("Returns")
    for export in ir.exports:
        mode = "[magenta]async[/]" if export.is_async else "sync"
        exports.add_row(export.name, mode, escape(export.param_type), escape(export.return_type))
    console.print(exports)


def _print_diagnostics(extraction: ExtractionResult) -> None:
    for diagnostic in extraction.diagnostics:
        console.print(f"  {_SEVERITY_STYLES[diagnostic.severity]} {escape(str(diagnostic))}")


if __name__ == "__main__":
    main()
