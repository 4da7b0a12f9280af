"""Document states: text plus cursors, as written in fenced spec blocks.

Markers inside a fenced block:

    |        caret (empty selection)
    [abc|    forward selection, anchor at "[" and active end at "|"
    |abc]    backward selection, active end at "|" and anchor at "]"
    \\| \\[ \\] \\\\   literal characters

A "]" belongs to the "|" right before it (no other marker in between), so a
marker placement always decodes to exactly one state, and rendering a state
reproduces the placement it was decoded from.

Characters are counted in code points.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from statebook.diagnostics import DocumentMismatchError, MarkerError

if TYPE_CHECKING:
    from statebook.hosts.base import Editor

SPECIAL_CHARACTERS = "\\|[]"


class Position(BaseModel):
    """A zero-based (line, character) position."""

    model_config = ConfigDict(frozen=True)

    line: int
    character: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.line, self.character)

    def __str__(self) -> str:
        return f"{self.line}:{self.character}"


class Selection(BaseModel):
    """A selection; anchor == active is a caret."""

    model_config = ConfigDict(frozen=True)

    anchor: Position
    active: Position

    @classmethod
    def caret(cls, line: int, character: int) -> Selection:
        position = Position(line=line, character=character)
        return cls(anchor=position, active=position)

    @classmethod
    def span(cls, anchor_line: int, anchor_character: int, active_line: int, active_character: int) -> Selection:
        return cls(
            anchor=Position(line=anchor_line, character=anchor_character),
            active=Position(line=active_line, character=active_character),
        )

    @property
    def is_empty(self) -> bool:
        return self.anchor == self.active

    @property
    def is_reversed(self) -> bool:
        return self.active.key < self.anchor.key

    @property
    def start(self) -> Position:
        return self.active if self.is_reversed else self.anchor

    @property
    def end(self) -> Position:
        return self.anchor if self.is_reversed else self.active

    def to_python(self) -> str:
        """Expression that rebuilds this selection."""
        if self.is_empty:
            return f"Selection.caret({self.active.line}, {self.active.character})"
        return (
            f"Selection.span({self.anchor.line}, {self.anchor.character}, "
            f"{self.active.line}, {self.active.character})"
        )


class DocumentState(BaseModel):
    """Canonical, comparable form of a fenced block.

    Selections are kept in textual order, so two states with the same cursors
    compare equal whatever order a host reports them in.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    selections: tuple[Selection, ...] = ()

    @field_validator("selections")
    @classmethod
    def textual_order(cls, v: tuple[Selection, ...]) -> tuple[Selection, ...]:
        return tuple(sorted(v, key=lambda s: (s.start.key, s.end.key)))

    # =========================================================================
    # Encoding
    # =========================================================================

    @classmethod
    def parse(cls, raw: str) -> DocumentState:
        """Decode the content of a fenced block.

        The final line terminator belongs to the fence, not to the document.

        Raises:
            MarkerError: If the markers are unbalanced or ambiguous.
        """
        if raw.endswith("\n"):
            raw = raw[:-1]

        text: list[str] = []
        selections: list[Selection] = []
        line = character = 0
        anchor: Position | None = None  # Open "[" waiting for its "|"
        caret: Position | None = None  # "|" that a "]" may still close

        i = 0
        while i < len(raw):
            ch = raw[i]
            here = Position(line=line, character=character)

            if ch == "\\" and i + 1 < len(raw) and raw[i + 1] in SPECIAL_CHARACTERS:
                i += 1
                ch = raw[i]
            elif ch == "[":
                if caret is not None:
                    selections.append(Selection(anchor=caret, active=caret))
                    caret = None
                if anchor is not None:
                    raise MarkerError(f"nested '[' at {here} (previous '[' at {anchor})")
                anchor = here
                i += 1
                continue
            elif ch == "|":
                if caret is not None:
                    selections.append(Selection(anchor=caret, active=caret))
                    caret = None
                if anchor is not None:
                    if anchor == here:
                        raise MarkerError(f"empty selection '[|' at {here}, write a single '|'")
                    selections.append(Selection(anchor=anchor, active=here))
                    anchor = None
                else:
                    caret = here
                i += 1
                continue
            elif ch == "]":
                if caret is None:
                    raise MarkerError(f"']' at {here} does not follow a '|'")
                if caret == here:
                    raise MarkerError(f"empty selection '|]' at {here}, write a single '|'")
                selections.append(Selection(anchor=here, active=caret))
                caret = None
                i += 1
                continue

            text.append(ch)
            if ch == "\n":
                line += 1
                character = 0
            else:
                character += 1
            i += 1

        if anchor is not None:
            raise MarkerError(f"'[' at {anchor} is never closed by a '|'")
        if caret is not None:
            selections.append(Selection(anchor=caret, active=caret))

        return cls(text="".join(text), selections=tuple(selections))

    def render(self) -> str:
        """Render back to the marker convention."""
        markers: list[tuple[tuple[int, int], int, str]] = []
        for selection in self.selections:
            if selection.is_empty:
                markers.append((selection.active.key, len(markers), "|"))
            elif selection.is_reversed:
                markers.append((selection.active.key, len(markers), "|"))
                markers.append((selection.anchor.key, len(markers), "]"))
            else:
                markers.append((selection.anchor.key, len(markers), "["))
                markers.append((selection.active.key, len(markers), "|"))
        markers.sort()

        # Interleave text and markers as ("m" | "t", character) tokens
        tokens: list[tuple[str, str]] = []
        pending = iter(markers)
        marker = next(pending, None)
        line = character = 0

        for ch in self.text:
            while marker is not None and marker[0] <= (line, character):
                tokens.append(("m", marker[2]))
                marker = next(pending, None)
            tokens.append(("t", ch))
            if ch == "\n":
                line += 1
                character = 0
            else:
                character += 1

        while marker is not None:
            tokens.append(("m", marker[2]))
            marker = next(pending, None)

        out: list[str] = []
        for index, (kind, ch) in enumerate(tokens):
            if kind == "m":
                out.append(ch)
            elif ch in "|[]":
                out.append("\\" + ch)
            elif ch == "\\" and index + 1 < len(tokens):
                following_kind, following = tokens[index + 1]
                escape = following_kind == "m" or following in SPECIAL_CHARACTERS
                out.append("\\\\" if escape else "\\")
            else:
                out.append(ch)
        return "".join(out)

    def to_python(self, indent: int = 0) -> str:
        """Python expression rebuilding this state.

        The first line is not indented; continuation lines are laid out for a
        statement that starts at `indent` columns.
        """
        pad = " " * (indent + 4)
        lines = ["DocumentState("]

        if "\n" in self.text:
            pieces = self.text.split("\n")
            lines.append(f"{pad}text=(")
            for i, piece in enumerate(pieces):
                if i < len(pieces) - 1:
                    piece += "\n"
                if piece:
                    lines.append(f"{pad}    {_quote(piece)}")
            lines.append(f"{pad}),")
        else:
            lines.append(f"{pad}text={_quote(self.text)},")

        if self.selections:
            lines.append(f"{pad}selections=(")
            for selection in self.selections:
                lines.append(f"{pad}    {selection.to_python()},")
            lines.append(f"{pad}),")

        lines.append(" " * indent + ")")
        return "\n".join(lines)

    # =========================================================================
    # Live documents
    # =========================================================================

    async def apply(self, editor: Editor) -> None:
        """Make the live document equal to this state."""
        await editor.set_state(self)

    def assert_equals(self, editor: Editor) -> None:
        """Raise DocumentMismatchError unless the live document equals this state."""
        actual = editor.get_state()
        if actual != self:
            raise DocumentMismatchError(self, actual)


def offset_at(text: str, position: Position) -> int:
    """Offset in `text` of a (line, character) position, clamped to the line."""
    offset = 0
    lines = text.split("\n")
    for line in lines[: position.line]:
        offset += len(line) + 1
    if position.line < len(lines):
        offset += min(position.character, len(lines[position.line]))
    return min(offset, len(text))


def position_at(text: str, offset: int) -> Position:
    """(line, character) position of an offset in `text`."""
    before = text[:offset]
    line = before.count("\n")
    return Position(line=line, character=offset - (before.rfind("\n") + 1))


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)
