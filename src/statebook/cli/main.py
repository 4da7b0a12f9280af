"""statebook CLI entry point."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from statebook import __version__

console = Console()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@click.group()
@click.version_option(__version__, prog_name="statebook")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
def cli(debug: bool) -> None:
    """statebook - literate document-state specs compiled to pytest suites."""
    _configure_logging(debug)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--project",
    "-p",
    type=click.Path(exists=True, path_type=Path),
    help="Project root directory. Defaults to current directory.",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to statebook.yaml config file.",
)
@click.option(
    "--check",
    is_flag=True,
    help="Compile without writing generated suites.",
)
def build(paths: tuple[Path, ...], project: Path | None, config: Path | None, check: bool) -> None:
    """Compile spec files into pytest suites written beside them.

    PATHS are spec files or directories. Defaults to the configured spec_paths.
    """
    from statebook.builder import build_paths, format_results
    from statebook.config import load_config, resolve_paths

    project_root = project or Path.cwd()
    cfg = resolve_paths(load_config(config_path=config, project_root=project_root), project_root)
    targets = list(paths) or [Path(p) for p in cfg.spec_paths]

    results = build_paths(targets, cfg, write=not check)

    if not results:
        console.print(f"[yellow]No *{cfg.spec_extension} files found[/yellow]")
        return

    output = escape(format_results(results))

    if any(not r.ok for r in results):
        console.print(Panel(output, title="[red]Build Failed[/red]", border_style="red"))
        raise SystemExit(1)
    else:
        console.print(Panel(output, title="[green]Build Succeeded[/green]", border_style="green"))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def check(path: Path) -> None:
    """Validate a spec file without generating code.

    PATH is the path to a spec file.
    """
    from statebook.compiler.parser import parse_file
    from statebook.compiler.resolver import resolve
    from statebook.diagnostics import StatebookError

    try:
        resolved = resolve(parse_file(path))
    except StatebookError as e:
        console.print(f"[red]✗[/red] Invalid: {escape(str(e))}")
        raise SystemExit(1)

    console.print(
        f"[green]✓[/green] Valid: {len(resolved.setups)} initial states, {len(resolved.tests)} transitions"
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file for the generated suite. Defaults to stdout.",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to statebook.yaml config file.",
)
def compile(path: Path, output: Path | None, config: Path | None) -> None:
    """Compile a spec file to a pytest suite.

    PATH is the path to a spec file to compile.
    """
    from statebook.builder import compile_file
    from statebook.config import load_config
    from statebook.diagnostics import StatebookError

    cfg = load_config(config_path=config)

    try:
        suite = compile_file(path, cfg)
    except StatebookError as e:
        console.print(f"[red]Compile error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    if output:
        output.write_text(suite.code, encoding="utf-8")
        console.print(f"[green]✓[/green] Compiled to {output}")
    else:
        click.echo(suite.code, nl=False)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--pretty",
    is_flag=True,
    default=True,
    help="Pretty-print JSON output (default: true).",
)
def inspect(path: Path, pretty: bool) -> None:
    """Print the resolved IR of a spec file as JSON.

    PATH is the path to a spec file.
    """
    from statebook.compiler.parser import parse_file
    from statebook.compiler.resolver import resolve
    from statebook.diagnostics import StatebookError

    try:
        resolved = resolve(parse_file(path))
    except StatebookError as e:
        console.print(f"[red]Parse error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    click.echo(resolved.model_dump_json(indent=2 if pretty else None))


@cli.command()
def init() -> None:
    """Initialize statebook in the current directory.

    Creates:
    - tests/specs/
    - statebook.yaml
    """
    project_root = Path.cwd()

    specs_dir = project_root / "tests" / "specs"
    specs_dir.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Created {specs_dir.relative_to(project_root)}/")

    config_file = project_root / "statebook.yaml"
    if not config_file.exists():
        config_file.write_text(
            """\
# statebook configuration
version: "0.1"

# Directories to search for spec files
# spec_paths:
#   - tests/specs

# spec_extension: .md

commands:
  # Prefix for commands written with a leading "." (".select.left")
  # namespace: dance

  # Command receiving {"mode": ..., "value": ...} for "> mode.behavior <- value"
  # selection_behavior: dance.dev.setSelectionBehavior

  # Command receiving {"text": ...} for "type:<char>" operations
  # type: type

generator:
  # Generated suite name: <spec stem><output_suffix>
  # output_suffix: _test.py

  # pytest fixture (usually in conftest.py) returning a statebook Host
  # host_fixture: statebook_host

  # Delay between characters typed while a command runs
  # type_stagger_ms: 20

  # Fail instead of waiting forever for a predecessor test
  # wait_timeout_ms: 10000

  # default_behavior:
  #   mode: normal
  #   behavior: caret
"""
        )
        console.print(f"[green]✓[/green] Created {config_file.name}")
    else:
        console.print(f"[yellow]-[/yellow] {config_file.name} already exists")

    console.print("\n[dim]statebook initialized. Write specs in tests/specs/[/dim]")


@cli.command()
@click.option(
    "--project",
    "-p",
    type=click.Path(exists=True, path_type=Path),
    help="Project root directory. Defaults to current directory.",
)
def config(project: Path | None) -> None:
    """Show the current configuration."""
    from statebook.config import load_config

    project_root = project or Path.cwd()
    cfg = load_config(project_root=project_root)

    console.print(Panel(cfg.model_dump_json(indent=2), title="statebook Config"))


if __name__ == "__main__":
    cli()
