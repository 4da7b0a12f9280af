"""Intermediate Representation (IR) models for statebook.

The parser produces a SpecDocument, the resolver turns it into a ResolvedSpec,
and the sequencer turns each transition into a list of steps that the code
generator renders.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class Mode(str, Enum):
    """Editor mode a selection behavior applies to."""

    NORMAL = "normal"
    INSERT = "insert"


class SelectionBehavior(str, Enum):
    """How selections behave in a mode."""

    CARET = "caret"  # Selections sit between characters
    CHARACTER = "character"  # Selections cover the character under the cursor


class SelectionBehaviorFlag(BaseModel):
    """`> <mode>.behavior <- <behavior>`"""

    mode: Mode
    behavior: SelectionBehavior


class OperationKind(str, Enum):
    """Kind of an operation line, decided once by the parser."""

    COMMAND = "command"  # Invoked literally
    NAMESPACED = "namespaced"  # ".select.left" -> "<namespace>.select.left"
    TYPE = "type"  # "type:x" - typed while the previous operation runs


class Operation(BaseModel):
    """A `- <command> [args]` line."""

    kind: OperationKind = OperationKind.COMMAND
    command: str  # Command token as written
    args: str | None = None  # Python expression text, passed verbatim
    text: str | None = None  # Typed character for TYPE operations
    line: int | None = None  # 1-based line in the spec file


class InitialState(BaseModel):
    """An entry with no predecessor."""

    title: str
    flags: list[SelectionBehaviorFlag] = Field(default_factory=list)
    content: str  # Raw fenced content, markers included
    line: int | None = None


class Transition(BaseModel):
    """An entry reached from `comes_after` by performing `operations`."""

    title: str
    comes_after: str
    operations: list[Operation] = Field(default_factory=list)
    flags: list[SelectionBehaviorFlag] = Field(default_factory=list)
    content: str
    line: int | None = None


Entry = Union[InitialState, Transition]


class SpecDocument(BaseModel):
    """Everything parsed from one spec file, in declaration order."""

    initial: list[InitialState] = Field(default_factory=list)
    transitions: list[Transition] = Field(default_factory=list)
    header_count: int = 0  # Lines starting with "# " in the source


class ResolvedSpec(BaseModel):
    """Validated entries; `tests` are in execution order."""

    setups: list[InitialState] = Field(default_factory=list)
    tests: list[Transition] = Field(default_factory=list)

    def entry(self, title: str) -> Entry:
        """Look up an entry by title."""
        for setup in self.setups:
            if setup.title == title:
                return setup
        for test in self.tests:
            if test.title == title:
                return test
        raise KeyError(title)

    def predecessor(self, test: Transition) -> Entry:
        """The entry a transition starts from."""
        return self.entry(test.comes_after)


# =============================================================================
# Steps
# =============================================================================


class Invocation(BaseModel):
    """One command call, started `delay_ms` after its group."""

    command: str
    args: str | None = None  # Python expression text
    delay_ms: int = 0


class ConfigureStep(BaseModel):
    """Set the selection behavior of a mode."""

    kind: Literal["configure"] = "configure"
    mode: Mode
    behavior: SelectionBehavior


class InvokeStep(BaseModel):
    """Invocations started together and joined before the next step."""

    kind: Literal["invoke"] = "invoke"
    invocations: list[Invocation] = Field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return len(self.invocations) > 1


Step = Annotated[Union[ConfigureStep, InvokeStep], Field(discriminator="kind")]
