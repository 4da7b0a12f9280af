"""Shared fixtures for statebook tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from statebook.builder import compile_spec
from statebook.compiler.codegen import CompiledSuite
from statebook.config import StatebookConfig
from statebook.document import DocumentState, Selection, offset_at, position_at
from statebook.hosts.memory import MemoryEditor


class SuiteHarness:
    """Loads a generated suite and drives its tests like pytest would.

    Tests run in definition order against one editor. The generated
    module-scoped fixture is bypassed: the editor is passed in directly.
    """

    def __init__(self, suite: CompiledSuite):
        self.suite = suite
        self.namespace: dict[str, Any] = {}
        exec(compile(suite.code, f"<{suite.name}>", "exec"), self.namespace)

    @property
    def states(self):
        return self.namespace["states"]

    def test_functions(self) -> list[tuple[str, Callable[..., Any]]]:
        return [(name, fn) for name, fn in self.namespace.items() if name.startswith("test_") and callable(fn)]

    async def run(self, editor: MemoryEditor) -> dict[str, str]:
        """Run every test; map function name to passed/failed/skipped/error."""
        outcomes: dict[str, str] = {}
        for name, fn in self.test_functions():
            try:
                await fn(editor)
            except pytest.skip.Exception:
                outcomes[name] = "skipped"
            except AssertionError:
                outcomes[name] = "failed"
            except Exception:
                outcomes[name] = "error"
            else:
                outcomes[name] = "passed"
        return outcomes


@pytest.fixture
def load_suite() -> Callable[..., SuiteHarness]:
    """Compile spec text and load the generated module."""

    def _load(text: str, config: StatebookConfig | None = None, name: str = "spec.md") -> SuiteHarness:
        return SuiteHarness(compile_spec(text, name, config))

    return _load


async def insert_x(editor: MemoryEditor, *args: Any) -> None:
    """Test command: type "X" at every selection."""
    editor.replace_selections("X")


async def line_end(editor: MemoryEditor, *args: Any) -> None:
    """Test command: move every selection to a caret at the end of its line."""
    state = editor.get_state()
    lines = state.text.split("\n")
    selections = tuple(
        Selection.caret(s.active.line, len(lines[s.active.line])) for s in state.selections
    )
    await editor.set_state(DocumentState(text=state.text, selections=selections))


async def char_right(editor: MemoryEditor, *args: Any) -> None:
    """Test command: move every caret one character right."""
    state = editor.get_state()
    selections = []
    for s in state.selections:
        offset = min(offset_at(state.text, s.active) + 1, len(state.text))
        position = position_at(state.text, offset)
        selections.append(Selection(anchor=position, active=position))
    await editor.set_state(DocumentState(text=state.text, selections=tuple(selections)))


async def set_selection_behavior(editor: MemoryEditor, args: dict[str, Any]) -> None:
    """Test command: accepted and recorded in the editor history only."""


@pytest.fixture
def editor() -> MemoryEditor:
    """Memory editor with the commands the test specs use."""
    return MemoryEditor(
        commands={
            "insert.a": insert_x,
            "dance.select.lineEnd": line_end,
            "dance.select.right": char_right,
            "dance.dev.setSelectionBehavior": set_selection_behavior,
        }
    )
