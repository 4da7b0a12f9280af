"""Code generator - renders a resolved spec as a pytest module.

The module opens one editor per suite, seeds a StateGraph with the initial
states, declares one pending node per transition and defines one async test
per transition, in execution order.
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import BaseModel, Field

from statebook.config import StatebookConfig
from statebook.diagnostics import DiagnosticContext, MarkerError
from statebook.document import DocumentState

from .ir import ConfigureStep, Entry, Invocation, InvokeStep, ResolvedSpec, Step
from .sequencer import sequence

logger = logging.getLogger(__name__)


class GeneratedTest(BaseModel):
    """One generated test function."""

    function: str  # Python function name
    title: str
    comes_after: str
    steps: list[Step] = Field(default_factory=list)
    expected: DocumentState

    @property
    def label(self) -> str:
        return f"{self.comes_after} > {self.title}"


class CompiledSuite(BaseModel):
    """Result of compiling one spec file."""

    name: str  # Source file name
    setups: list[str] = Field(default_factory=list)  # Seeded titles
    tests: list[GeneratedTest] = Field(default_factory=list)
    code: str = ""


def encode(entry: Entry) -> DocumentState:
    """Document state of an entry, with the entry named in marker errors."""
    try:
        return DocumentState.parse(entry.content)
    except MarkerError as e:
        raise MarkerError(
            f'invalid cursor markers in "{entry.title}": {e.summary}',
            DiagnosticContext(title=entry.title, line=entry.line),
        ) from None


def generate_suite(resolved: ResolvedSpec, name: str, config: StatebookConfig | None = None) -> CompiledSuite:
    """Compile a resolved spec into a pytest module.

    Args:
        resolved: Output of the resolver.
        name: Source file name, used as the suite name.
        config: Command names and generator options. Defaults apply if None.

    Raises:
        MarkerError: If a fenced block has malformed cursor markers.
        InvalidOperationError: If a transition cannot be sequenced.
    """
    config = config or StatebookConfig()
    generator = config.generator

    seeds = [(setup.title, encode(setup)) for setup in resolved.setups]
    tests: list[GeneratedTest] = []
    used_names: set[str] = set()

    for test in resolved.tests:
        function = _unique(f"test_{_slug(test.comes_after)}_to_{_slug(test.title)}", used_names)
        tests.append(
            GeneratedTest(
                function=function,
                title=test.title,
                comes_after=test.comes_after,
                steps=sequence(test, config.commands, generator.type_stagger_ms),
                expected=encode(test),
            )
        )

    code = _render_module(name, seeds, tests, config)
    logger.debug("generated %d test(s) for %s", len(tests), name)

    return CompiledSuite(name=name, setups=[title for title, _ in seeds], tests=tests, code=code)


# =============================================================================
# Rendering
# =============================================================================


def _render_module(
    name: str,
    seeds: list[tuple[str, DocumentState]],
    tests: list[GeneratedTest],
    config: StatebookConfig,
) -> str:
    generator = config.generator
    host = generator.host_fixture
    default = generator.default_behavior
    states = [state for _, state in seeds] + [test.expected for test in tests]
    uses_selections = any(state.selections for state in states)
    uses_groups = any(isinstance(step, InvokeStep) and step.is_group for test in tests for step in test.steps)

    lines = [
        f'"""Transition tests generated from {_docstring(name)} by statebook.',
        "",
        "Do not edit: regenerate with `statebook build`.",
        '"""',
        "",
        "import pytest",
        "import pytest_asyncio",
        "",
        "from statebook.document import " + ("DocumentState, Selection" if uses_selections else "DocumentState"),
        "from statebook.runtime import " + ("StateGraph, joined, staggered" if uses_groups else "StateGraph"),
        "",
        'pytestmark = pytest.mark.asyncio(loop_scope="module")',
        "",
        f"SUITE = {_quote(name)}",
        "",
        "",
        '@pytest_asyncio.fixture(scope="module", loop_scope="module")',
        f"async def editor({host}):",
        "    # Set up document.",
        f"    editor = await {host}.open_editor()",
        "    " + _configure(config, default.mode.value, default.behavior.value),
        "",
        "    yield editor",
        "",
        "    await editor.close()",
        "",
        "",
        "# Each test sets up using the document of the test it comes after, and",
        "# settles its own state once done. This ensures that tests are executed in",
        "# the right order, and that we skip tests whose dependencies failed.",
        "states = StateGraph()",
    ]

    for title, state in seeds:
        lines += [
            "states.seed(",
            f"    {_quote(title)},",
            f"    {state.to_python(indent=4)},",
            ")",
        ]
    for test in tests:
        lines.append(f"states.declare({_quote(test.title)}, after={_quote(test.comes_after)})")

    for test in tests:
        lines += ["", ""]
        lines += _render_test(test, config)

    return "\n".join(lines) + "\n"


def _render_test(test: GeneratedTest, config: StatebookConfig) -> list[str]:
    timeout = config.generator.wait_timeout_ms
    title = _quote(test.title)
    comes_after = _quote(test.comes_after)

    lines = [
        f"async def {test.function}(editor):",
        f'    """transition {_docstring(test.label)}"""',
    ]

    if timeout is None:
        lines.append(f"    before = await states.wait({comes_after})")
    else:
        lines += [
            "    try:",
            f"        before = await states.wait({comes_after}, timeout_ms={timeout})",
            "    except BaseException:",
            f"        states.fail({title})",
            "        raise",
        ]

    lines += [
        "",
        "    if before is None:",
        f"        states.skip({title})",
        f"        pytest.skip({_quote(test.comes_after + ' did not pass')})",
        "",
        f"    after = {test.expected.to_python(indent=4)}",
        "",
        "    try:",
        "        # Set up document to be in expected initial state.",
        "        await before.apply(editor)",
        "",
    ]

    if test.steps:
        lines.append("        # Perform all operations.")
        for step in test.steps:
            lines += ["        " + line for line in _render_step(step, config)]
        lines.append("")

    lines += [
        "        # Ensure document is as expected.",
        "        after.assert_equals(editor)",
        "    except BaseException:",
        f"        states.fail({title})",
        "        raise",
        "",
        "    # Test passed, allow dependent tests to run.",
        f"    states.resolve({title}, after)",
    ]
    return lines


def _render_step(step: Step, config: StatebookConfig) -> list[str]:
    if isinstance(step, ConfigureStep):
        return [_configure(config, step.mode.value, step.behavior.value)]

    if not step.is_group:
        return [f"await {_call(step.invocations[0])}"]

    lines = ["await joined("]
    for invocation in step.invocations:
        lines.append(f"    {_call(invocation)},")
    lines.append(")")
    return lines


def _call(invocation: Invocation) -> str:
    args = [_quote(invocation.command)]
    if invocation.args is not None:
        args.append(invocation.args)

    if invocation.delay_ms:
        return f"staggered({invocation.delay_ms}, editor.execute_command, {', '.join(args)})"
    return f"editor.execute_command({', '.join(args)})"


def _configure(config: StatebookConfig, mode: str, behavior: str) -> str:
    args = json.dumps({"mode": mode, "value": behavior})
    return f"await editor.execute_command({_quote(config.commands.selection_behavior)}, {args})"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _docstring(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _slug(text: str) -> str:
    return re.sub(r"[^0-9a-zA-Z]+", "_", text).strip("_").lower() or "state"


def _unique(name: str, used: set[str]) -> str:
    candidate = name
    n = 2
    while candidate in used:
        candidate = f"{name}_{n}"
        n += 1
    used.add(candidate)
    return candidate
