"""In-memory host for statebook.

A plain text buffer with selections and a table of async command handlers.
It knows one command out of the box, "type", which replaces every selection
with the given text; everything else is registered by the user.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Sequence

from statebook.diagnostics import CommandNotFoundError
from statebook.document import DocumentState, Selection, offset_at, position_at
from statebook.hosts.base import Host, ReplayEditor, TextChange

CommandHandler = Callable[..., Awaitable[Any]]


async def type_command(editor: MemoryEditor, args: dict[str, Any]) -> None:
    """Built-in "type" command: {"text": ...} replaces every selection."""
    editor.replace_selections(str(args["text"]))


class MemoryEditor(ReplayEditor):
    """Editor over an in-memory document."""

    def __init__(
        self,
        commands: dict[str, CommandHandler] | None = None,
        state: DocumentState | None = None,
    ):
        """Initialize the editor.

        Args:
            commands: Handlers by command name, called as handler(editor, *args).
            state: Initial document. Defaults to an empty document.
        """
        self.commands: dict[str, CommandHandler] = {"type": type_command, **(commands or {})}
        self.history: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False
        self._state = state or DocumentState(text="")

    def register(self, command: str, handler: CommandHandler) -> None:
        """Add or replace a command handler."""
        self.commands[command] = handler

    async def execute_command(self, command: str, *args: Any) -> Any:
        handler = self.commands.get(command)
        if handler is None:
            raise CommandNotFoundError(f"command {command!r} is not registered")

        self.history.append((command, args))
        return await handler(self, *args)

    async def set_state(self, state: DocumentState) -> None:
        self._state = state

    def get_state(self) -> DocumentState:
        return self._state

    async def close(self) -> None:
        self.closed = True

    async def apply_changes(self, changes: Sequence[TextChange]) -> None:
        """Apply changes at the main selection, which ends up as a caret after them.

        Secondary selections are dropped.
        """
        state = self._state
        main = state.selections[0] if state.selections else Selection.caret(0, 0)
        text = state.text

        for change in changes:
            if change.range_length == 0:
                start = end = offset_at(text, main.active)
            else:
                start, end = offset_at(text, main.start), offset_at(text, main.end)

            text = text[:start] + change.text + text[end:]
            caret = position_at(text, start + len(change.text))
            main = Selection(anchor=caret, active=caret)

        self._state = DocumentState(text=text, selections=(main,))

    def replace_selections(self, replacement: str) -> None:
        """Replace every selection with `replacement`, leaving carets after it."""
        state = self._state
        text = state.text
        spans = [(offset_at(text, s.start), offset_at(text, s.end)) for s in state.selections]
        order = sorted(range(len(spans)), key=lambda i: spans[i])

        pieces: list[str] = []
        length = cursor = 0
        carets: dict[int, int] = {}

        for i in order:
            start, end = spans[i]
            start = max(start, cursor)  # overlapping selections merge
            end = max(end, start)
            chunk = text[cursor:start] + replacement
            pieces.append(chunk)
            length += len(chunk)
            carets[i] = length
            cursor = end

        pieces.append(text[cursor:])
        new_text = "".join(pieces)
        selections = []
        for i in range(len(spans)):
            position = position_at(new_text, carets[i])
            selections.append(Selection(anchor=position, active=position))

        self._state = DocumentState(text=new_text, selections=tuple(selections))


class MemoryHost(Host):
    """Host whose editors are MemoryEditor instances sharing one command table."""

    def __init__(self, commands: dict[str, CommandHandler] | None = None):
        self.commands: dict[str, CommandHandler] = dict(commands or {})
        self.editors: list[MemoryEditor] = []

    def command(self, name: str) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator registering a handler for editors opened afterwards."""

        def decorator(handler: CommandHandler) -> CommandHandler:
            self.commands[name] = handler
            return handler

        return decorator

    async def open_editor(self) -> MemoryEditor:
        editor = MemoryEditor(commands=dict(self.commands))
        self.editors.append(editor)
        return editor
