"""Base host interface for statebook.

Generated suites only talk to the editor through this interface: open an
editor, put a document state into it, run commands, and read its state back.
Each editor integration implements it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from statebook.document import DocumentState


@dataclass(frozen=True)
class TextChange:
    """A text delta captured after a command ran.

    A change with `range_length == 0` inserts at the active position of the
    main selection; any other change replaces the main selection.
    """

    text: str
    range_length: int = 0


class Editor(ABC):
    """A live document with cursors that commands act on."""

    @abstractmethod
    async def execute_command(self, command: str, *args: Any) -> Any:
        """Run a named editor command.

        Args:
            command: Command identifier, e.g. "dance.select.left".
            args: Arguments passed through unchanged.

        Returns:
            Whatever the command returns.
        """
        ...

    @abstractmethod
    async def set_state(self, state: DocumentState) -> None:
        """Replace the document text and selections."""
        ...

    @abstractmethod
    def get_state(self) -> DocumentState:
        """Snapshot of the document text and selections."""
        ...

    async def close(self) -> None:
        """Release the editor. Override in subclass."""
        return None


class ReplayEditor(Editor):
    """An editor that can re-apply captured text changes."""

    @abstractmethod
    async def apply_changes(self, changes: Sequence[TextChange]) -> None:
        """Apply changes in order as a single edit."""
        ...


class Host(ABC):
    """Opens editors for generated suites."""

    @abstractmethod
    async def open_editor(self) -> Editor:
        """Open an editor on a fresh, empty document."""
        ...
