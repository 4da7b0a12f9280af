"""Repeat the last insert session.

Commands executed in an editor are recorded together with the text changes
that followed them. Repeating the last insert session re-runs the command that
switched to insert mode, then re-applies every change recorded from that
command up to the command that switched back to normal mode, `count` times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Flag, auto
from typing import Any, Sequence

from statebook.hosts.base import ReplayEditor, TextChange

logger = logging.getLogger(__name__)


class CommandFlags(Flag):
    """What a recorded command does to the editor."""

    NONE = 0
    EDIT = auto()
    SWITCH_TO_INSERT_BEFORE = auto()
    SWITCH_TO_NORMAL = auto()


@dataclass
class RecordedCommand:
    """A command as it was executed, and the changes typed after it."""

    command: str
    args: tuple[Any, ...] = ()
    flags: CommandFlags = CommandFlags.NONE
    following_changes: list[TextChange] | None = None


@dataclass
class CommandHistory:
    """Commands executed in one editor, oldest first."""

    commands: list[RecordedCommand] = field(default_factory=list)

    def record(self, command: str, *args: Any, flags: CommandFlags = CommandFlags.NONE) -> RecordedCommand:
        recorded = RecordedCommand(command=command, args=args, flags=flags)
        self.commands.append(recorded)
        return recorded

    def record_change(self, change: TextChange) -> None:
        """Attach a text change to the most recent command."""
        if not self.commands:
            return
        last = self.commands[-1]
        if last.following_changes is None:
            last.following_changes = []
        last.following_changes.append(change)

    def last_insert_session(self) -> tuple[int, int] | None:
        """Indices of the last insert switch and the normal switch after it."""
        start = None
        for i in range(len(self.commands) - 1, -1, -1):
            if self.commands[i].flags & CommandFlags.SWITCH_TO_INSERT_BEFORE:
                start = i
                break
        if start is None:
            return None

        for end in range(start + 1, len(self.commands)):
            if self.commands[end].flags & CommandFlags.SWITCH_TO_NORMAL:
                return start, end
        return None


async def repeat_insert(editor: ReplayEditor, history: CommandHistory, count: int | None = None) -> bool:
    """Replay the last complete insert session `count` times (at least once).

    Returns:
        False if there is no complete insert session to repeat.
    """
    session = history.last_insert_session()
    if session is None:
        logger.debug("no complete insert session to repeat")
        return False

    start, end = session
    opening = history.commands[start]
    await editor.execute_command(opening.command, *opening.args)

    changes = collect_changes(history.commands[start : end + 1])
    await editor.apply_changes(changes * (count or 1))
    return True


def collect_changes(commands: Sequence[RecordedCommand]) -> list[TextChange]:
    """All changes recorded after the given commands, in order."""
    return [change for recorded in commands for change in recorded.following_changes or ()]
