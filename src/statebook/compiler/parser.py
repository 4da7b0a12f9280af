"""statebook parser - transforms spec files into IR.

Uses lark for the line structure and transforms the parse tree into Pydantic
IR models. Flags and operation kinds are decided here, once.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from statebook.diagnostics import (
    DiagnosticContext,
    InvalidOperationError,
    ParseError,
    StatebookError,
    UnrecognizedFlagError,
)

from .ir import (
    InitialState,
    Mode,
    Operation,
    OperationKind,
    SelectionBehavior,
    SelectionBehaviorFlag,
    SpecDocument,
    Transition,
)

logger = logging.getLogger(__name__)

# Load grammar from file adjacent to this module
GRAMMAR_PATH = Path(__file__).parent / "grammar.lark"

REFERENCE_RE = re.compile(r"^\[.+?\]\(#(.+?)\)$")
OPERATION_RE = re.compile(r"^- *(type:\S|[\w.:]+)(?: +(.+))?$")
TYPE_LINE_RE = re.compile(r"^- *type:")
FLAG_RE = re.compile(r"^(\w+)\.behavior <- (caret|character)$")
HEADER_PREFIX = "# "
TYPE_PREFIX = "type:"


def normalize_title(text: str) -> str:
    """Header text with whitespace runs collapsed to hyphens."""
    return re.sub(r"\s+", "-", text.strip())


def normalize_source(text: str) -> str:
    """Unix line endings and a final newline."""
    text = text.replace("\r\n", "\n")
    if text and not text.endswith("\n"):
        text += "\n"
    return text


def count_headers(text: str) -> int:
    """Number of lines that look like entry headers."""
    return sum(1 for line in text.split("\n") if line.startswith(HEADER_PREFIX))


@dataclass
class _Header:
    title: str
    line: int


@dataclass
class _Reference:
    comes_after: str
    line: int


@dataclass
class _OperationLine:
    command: str
    args: str | None
    line: int


@dataclass
class _FlagLine:
    text: str
    line: int


class SpecTransformer(Transformer[Token, Any]):
    """Transform lark parse tree into statebook IR models."""

    # =========================================================================
    # Document structure
    # =========================================================================

    def start(self, items: list[Any]) -> SpecDocument:
        """Root document - collect entries, ignore prose."""
        initial: list[InitialState] = []
        transitions: list[Transition] = []

        for item in items:
            if isinstance(item, InitialState):
                initial.append(item)
            elif isinstance(item, Transition):
                transitions.append(item)

        return SpecDocument(initial=initial, transitions=transitions)

    def entry(self, items: list[Any]) -> InitialState | Transition:
        """# title / [..](#after) / body / fenced block"""
        header: _Header = items[0]
        reference: _Reference | None = None
        operation_lines: list[_OperationLine] = []
        flag_lines: list[_FlagLine] = []
        unparsed_type_lines: list[Token] = []
        content: str | None = None  # Set by the FENCED token

        for item in items[1:]:
            if isinstance(item, _Reference):
                reference = item
            elif isinstance(item, _OperationLine):
                operation_lines.append(item)
            elif isinstance(item, _FlagLine):
                flag_lines.append(item)
            elif isinstance(item, Token) and item.type == "FENCED":
                content = str(item)[4:-4]
            elif isinstance(item, Token) and content is None and TYPE_LINE_RE.match(item):
                unparsed_type_lines.append(item)

        flags = [self._flag(header.title, flag) for flag in flag_lines]

        if reference is None:
            if operation_lines:
                logger.debug("ignoring %d operation(s) of initial state %r", len(operation_lines), header.title)
            return InitialState(title=header.title, flags=flags, content=content, line=header.line)

        if unparsed_type_lines:
            token = unparsed_type_lines[0]
            context = DiagnosticContext(title=header.title, line=token.line)
            context.add_suggestion("Write one non-space character right after 'type:', e.g. '- type:('")
            raise InvalidOperationError(f'cannot parse "{str(token).strip()}" in "{header.title}"', context)

        return Transition(
            title=header.title,
            comes_after=reference.comes_after,
            operations=[self._operation(header.title, op) for op in operation_lines],
            flags=flags,
            content=content,
            line=header.line,
        )

    def header(self, items: list[Any]) -> _Header:
        """# Title"""
        token: Token = items[0]
        return _Header(title=normalize_title(str(token)[len(HEADER_PREFIX) :]), line=token.line or 0)

    def reference(self, items: list[Any]) -> _Reference:
        """[link text](#Predecessor)"""
        token: Token = items[0]
        match = REFERENCE_RE.match(str(token).rstrip("\n"))
        assert match is not None  # guaranteed by the REFERENCE terminal
        return _Reference(comes_after=match.group(1), line=token.line or 0)

    def operation(self, items: list[Any]) -> _OperationLine:
        """- command [args]"""
        token: Token = items[0]
        match = OPERATION_RE.match(str(token).rstrip("\n"))
        assert match is not None  # guaranteed by the OPERATION terminal
        args = match.group(2)
        if args is not None:
            args = args.strip() or None
        return _OperationLine(command=match.group(1), args=args, line=token.line or 0)

    def flag(self, items: list[Any]) -> _FlagLine:
        """> flag"""
        token: Token = items[0]
        return _FlagLine(text=str(token)[1:].strip(), line=token.line or 0)

    # =========================================================================
    # Body lines
    # =========================================================================

    def _flag(self, title: str, flag: _FlagLine) -> SelectionBehaviorFlag:
        match = FLAG_RE.match(flag.text)
        modes = {mode.value for mode in Mode}

        if match is None or match.group(1) not in modes:
            context = DiagnosticContext(title=title, line=flag.line)
            context.add_suggestion(
                "Flags have the form '<mode>.behavior <- caret|character' "
                f"with <mode> one of: {', '.join(sorted(modes))}"
            )
            raise UnrecognizedFlagError(f'unrecognized flag "{flag.text}" in "{title}"', context)

        return SelectionBehaviorFlag(mode=Mode(match.group(1)), behavior=SelectionBehavior(match.group(2)))

    def _operation(self, title: str, op: _OperationLine) -> Operation:
        context = DiagnosticContext(title=title, line=op.line)

        if op.command.startswith(TYPE_PREFIX):
            text = op.command[len(TYPE_PREFIX) :]
            if len(text) != 1:
                raise InvalidOperationError(
                    f'"{op.command}" in "{title}" must type exactly one character', context
                )
            if op.args is not None:
                raise InvalidOperationError(f'"{op.command}" in "{title}" takes no arguments', context)
            return Operation(kind=OperationKind.TYPE, command=op.command, text=text, line=op.line)

        if op.args is not None:
            try:
                ast.parse(op.args, mode="eval")
            except SyntaxError as e:
                context.add_suggestion("Arguments are inserted verbatim and must be a Python expression")
                raise InvalidOperationError(
                    f'invalid arguments for "{op.command}" in "{title}": {e.msg}', context
                ) from None

        kind = OperationKind.NAMESPACED if op.command.startswith(".") else OperationKind.COMMAND
        return Operation(kind=kind, command=op.command, args=op.args, line=op.line)


class SpecParser:
    """Parser for spec files."""

    def __init__(self) -> None:
        """Initialize the parser with the grammar."""
        self._parser = Lark(
            GRAMMAR_PATH.read_text(),
            parser="lalr",
            lexer="contextual",
        )
        self._transformer = SpecTransformer()

    def parse(self, text: str) -> SpecDocument:
        """Parse spec source text into an IR document.

        Raises:
            ParseError: If the entry structure is malformed.
            ValidationError: If a flag or operation line is invalid.
        """
        text = normalize_source(text)

        try:
            tree = self._parser.parse(text)
        except UnexpectedInput as e:
            raise _parse_error(e) from None

        try:
            document: SpecDocument = self._transformer.transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, StatebookError):
                raise e.orig_exc from None
            raise

        document.header_count = count_headers(text)
        parsed = len(document.initial) + len(document.transitions)

        if document.header_count != parsed:
            context = DiagnosticContext()
            context.add_suggestion("Check that every entry ends with a closed ``` block")
            context.add_suggestion("Lines starting with '# ' are only allowed as entry headers")
            raise ParseError(
                f"not all entries were parsed: found {document.header_count} headers "
                f"but {parsed} entries",
                context,
            )

        logger.debug(
            "parsed %d initial state(s) and %d transition(s)", len(document.initial), len(document.transitions)
        )
        return document

    def parse_file(self, path: Path | str) -> SpecDocument:
        """Parse a spec file into an IR document."""
        path = Path(path)
        return self.parse(path.read_text(encoding="utf-8"))


def _parse_error(e: UnexpectedInput) -> ParseError:
    line = e.line if isinstance(e.line, int) and e.line > 0 else None
    column = e.column if isinstance(e.column, int) and e.column > 0 else None
    context = DiagnosticContext(line=line)
    token = getattr(e, "token", None)

    if token is not None and token.type == "$END":
        context.add_suggestion("Close the fenced block of the last entry with a ``` line")
        return ParseError("unexpected end of file: an entry has no closed fenced block", context, column)

    return ParseError("malformed spec structure", context, column)


# Module-level parser instance for convenience
_parser: SpecParser | None = None


def get_parser() -> SpecParser:
    """Get or create the module-level parser instance."""
    global _parser
    if _parser is None:
        _parser = SpecParser()
    return _parser


def parse(text: str) -> SpecDocument:
    """Parse spec source text into an IR document."""
    return get_parser().parse(text)


def parse_file(path: Path | str) -> SpecDocument:
    """Parse a spec file into an IR document."""
    return get_parser().parse_file(path)
