"""Host for the example specs: an in-memory editor with a few motions."""

import asyncio

import pytest

from statebook.document import DocumentState, Selection, offset_at, position_at
from statebook.hosts import MemoryEditor, MemoryHost

host = MemoryHost()


def _move(editor: MemoryEditor, move) -> DocumentState:
    state = editor.get_state()
    lines = state.text.split("\n")
    return DocumentState(text=state.text, selections=tuple(move(state.text, lines, s) for s in state.selections))


@host.command("dance.select.lineStart")
async def line_start(editor, *args):
    await editor.set_state(_move(editor, lambda text, lines, s: Selection.caret(s.active.line, 0)))


@host.command("dance.select.lineEnd")
async def line_end(editor, *args):
    await editor.set_state(
        _move(editor, lambda text, lines, s: Selection.caret(s.active.line, len(lines[s.active.line])))
    )


@host.command("dance.select.right")
async def right(editor, args=None):
    count = (args or {}).get("count", 1)

    def move(text, lines, s):
        position = position_at(text, min(offset_at(text, s.active) + count, len(text)))
        return Selection(anchor=position, active=position)

    await editor.set_state(_move(editor, move))


@host.command("dance.modes.insert.before")
async def insert_before(editor, *args):
    await editor.set_state(_move(editor, lambda text, lines, s: Selection(anchor=s.start, active=s.start)))
    # Stay busy while the keys typed after this command arrive
    await asyncio.sleep(0.1)


@host.command("dance.dev.setSelectionBehavior")
async def set_selection_behavior(editor, args):
    editor.behaviors = {**getattr(editor, "behaviors", {}), args["mode"]: args["value"]}


@pytest.fixture(scope="module")
def statebook_host():
    return host
