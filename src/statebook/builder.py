"""Spec builder - compiles spec files and writes the generated suites."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from statebook.compiler.codegen import CompiledSuite, generate_suite
from statebook.compiler.parser import parse
from statebook.compiler.resolver import resolve
from statebook.config import StatebookConfig
from statebook.diagnostics import StatebookError

logger = logging.getLogger(__name__)


class BuildStatus(str, Enum):
    """Outcome of building one spec file."""

    WRITTEN = "written"
    CHECKED = "checked"  # Compiled without writing
    FAILED = "failed"


@dataclass
class BuildResult:
    """Result of building a single spec file."""

    source: Path
    status: BuildStatus
    output: Path | None = None
    message: str | None = None
    suite: CompiledSuite | None = None

    @property
    def ok(self) -> bool:
        return self.status is not BuildStatus.FAILED


def compile_spec(text: str, name: str, config: StatebookConfig | None = None) -> CompiledSuite:
    """Parse, resolve and generate the suite for one spec.

    Raises:
        StatebookError: On any parse or validation error. Nothing is produced.
    """
    document = parse(text)
    resolved = resolve(document)
    return generate_suite(resolved, name, config)


def compile_file(path: Path | str, config: StatebookConfig | None = None) -> CompiledSuite:
    """Compile a spec file into its suite."""
    path = Path(path)
    return compile_spec(path.read_text(encoding="utf-8"), path.name, config)


def output_path(source: Path, config: StatebookConfig) -> Path:
    """Where the suite generated from `source` is written."""
    return source.with_name(source.stem + config.generator.output_suffix)


def discover_specs(paths: Iterable[Path | str], extension: str = ".md") -> list[Path]:
    """Spec files at or below `paths`, sorted, without duplicates."""
    found: set[Path] = set()

    for path in map(Path, paths):
        if path.is_file():
            found.add(path)
        elif path.is_dir():
            found.update(p for p in path.rglob(f"*{extension}") if p.is_file())
        else:
            logger.warning("spec path %s does not exist", path)

    return sorted(found)


def build_file(path: Path, config: StatebookConfig | None = None, write: bool = True) -> BuildResult:
    """Compile one spec file and write its suite beside it.

    Output is only written when compilation succeeds.
    """
    config = config or StatebookConfig()

    try:
        suite = compile_file(path, config)
    except StatebookError as e:
        logger.debug("failed to compile %s: %s", path, e.summary)
        return BuildResult(source=path, status=BuildStatus.FAILED, message=str(e))

    if not write:
        return BuildResult(source=path, status=BuildStatus.CHECKED, suite=suite)

    target = output_path(path, config)
    target.write_text(suite.code, encoding="utf-8")
    logger.info("wrote %s (%d tests)", target, len(suite.tests))

    return BuildResult(source=path, status=BuildStatus.WRITTEN, output=target, suite=suite)


def build_paths(
    paths: Iterable[Path | str],
    config: StatebookConfig | None = None,
    write: bool = True,
) -> list[BuildResult]:
    """Build every spec file found under `paths`."""
    config = config or StatebookConfig()
    return [build_file(path, config, write=write) for path in discover_specs(paths, config.spec_extension)]


def format_results(results: list[BuildResult]) -> str:
    """Format build results for display.

    Args:
        results: List of build results.

    Returns:
        Formatted string for display.
    """
    lines = []
    built = 0
    failed = 0
    tests = 0

    for result in results:
        if result.ok:
            built += 1
            suite = result.suite
            count = len(suite.tests) if suite else 0
            tests += count
            target = result.output.name if result.output else "checked"
            lines.append(f"  ✓ {result.source} -> {target} ({count} tests)")
        else:
            failed += 1
            lines.append(f"  ✗ {result.source}")
            if result.message:
                for line in result.message.split("\n"):
                    lines.append(f"      {line}")

    summary = f"\n{built} built, {failed} failed, {tests} tests ({len(results)} files)"
    return "\n".join(lines) + summary
