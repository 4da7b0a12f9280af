"""Diagnostics and error reporting for statebook.

Compile-time errors abort the compilation of a whole spec file; runtime errors
are raised by generated suites and the state graph they share.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass
class DiagnosticContext:
    """Accumulated context attached to an error message."""

    title: str | None = None  # Entry the error is about
    line: int | None = None  # 1-based line in the spec file
    suggestions: list[str] = field(default_factory=list)

    def add_suggestion(self, suggestion: str) -> None:
        """Add a suggested fix."""
        self.suggestions.append(suggestion)

    def format_error(self, summary: str) -> str:
        """Format a detailed error message.

        Args:
            summary: The main error message.

        Returns:
            Formatted error with location and suggestions.
        """
        lines = [summary]

        if self.line is not None:
            lines.append(f"  at line {self.line}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        return "\n".join(lines)


class StatebookError(Exception):
    """Base class for all compile-time errors."""

    def __init__(self, message: str, context: DiagnosticContext | None = None):
        self.context = context
        self.summary = message
        if context:
            message = context.format_error(message)
        super().__init__(message)

    @property
    def title(self) -> str | None:
        return self.context.title if self.context else None


# =============================================================================
# Parse errors
# =============================================================================


class ParseError(StatebookError):
    """Raised when the structure of a spec file is malformed."""

    def __init__(
        self,
        message: str,
        context: DiagnosticContext | None = None,
        column: int | None = None,
    ):
        self.column = column
        super().__init__(message, context)

    @property
    def line(self) -> int | None:
        return self.context.line if self.context else None


class MarkerError(ParseError):
    """Raised when cursor markers in a fenced block are malformed."""


# =============================================================================
# Validation errors
# =============================================================================


class ValidationError(StatebookError):
    """Raised when a well-formed spec violates an integrity rule."""


class DuplicateTitleError(ValidationError):
    """Two entries collapse to the same title."""


class UnknownDependencyError(ValidationError):
    """A transition comes after a title that is not declared before it."""

    def __init__(self, title: str, comes_after: str, context: DiagnosticContext | None = None):
        self.comes_after = comes_after
        super().__init__(f'test "{title}" depends on unknown test "{comes_after}"', context)


class UnrecognizedFlagError(ValidationError):
    """A `> ...` line is not a known flag."""


class InvalidOperationError(ValidationError):
    """An operation line cannot be turned into an executable step."""


# =============================================================================
# Runtime errors (raised by generated suites)
# =============================================================================


class DocumentMismatchError(AssertionError):
    """The live document does not match the expected document state."""

    def __init__(self, expected: Any, actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__("document does not match expected state\n" + format_document_diff(expected, actual))


class StateGraphError(Exception):
    """Base class for misuse of the runtime state graph."""


class UnknownStateError(StateGraphError, KeyError):
    """A title was never seeded or declared."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StateAlreadySettledError(StateGraphError):
    """A node was settled twice."""


class StateTimeoutError(StateGraphError):
    """Waiting on a node exceeded its timeout."""

    def __init__(self, title: str, timeout_ms: int):
        self.title = title
        self.timeout_ms = timeout_ms
        super().__init__(f'state "{title}" did not settle within {timeout_ms}ms')


class CommandNotFoundError(Exception):
    """An editor was asked to execute a command it does not know."""


# =============================================================================
# Formatting helpers
# =============================================================================


def format_value_diff(expected: Any, actual: Any, max_length: int = 100) -> str:
    """Format a diff between expected and actual values.

    Args:
        expected: The expected value.
        actual: The actual value.
        max_length: Max length for value repr before truncation.

    Returns:
        Formatted diff string.
    """
    expected_repr = _truncate_repr(expected, max_length)
    actual_repr = _truncate_repr(actual, max_length)

    return f"Expected: {expected_repr}\n  Actual: {actual_repr}"


def format_document_diff(expected: Any, actual: Any) -> str:
    """Unified diff of two document states in their marker rendering."""
    expected_text = expected.render() if hasattr(expected, "render") else str(expected)
    actual_text = actual.render() if hasattr(actual, "render") else str(actual)

    diff = difflib.unified_diff(
        expected_text.split("\n"),
        actual_text.split("\n"),
        fromfile="expected",
        tofile="actual",
        lineterm="",
    )
    lines = list(diff)
    if not lines:
        # Same rendering, different structure
        return format_value_diff(expected, actual, max_length=400)
    return "\n".join(lines)


def suggest_title(missing: str, known: Iterable[str]) -> str | None:
    """Suggest the closest known title for a misspelled reference."""
    matches = difflib.get_close_matches(missing, list(known), n=1, cutoff=0.6)
    if not matches:
        return None
    return f'Did you mean "{matches[0]}"?'


def _truncate_repr(value: Any, max_length: int) -> str:
    """Get repr of value, truncating if too long."""
    r = repr(value)
    if len(r) > max_length:
        return r[: max_length - 3] + "..."
    return r
