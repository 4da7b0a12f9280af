"""statebook compiler - transforms spec files into IR.

Code generation lives in statebook.compiler.codegen, which depends on the
configuration and is therefore not imported here.
"""

from statebook.compiler.ir import (
    ConfigureStep,
    InitialState,
    Invocation,
    InvokeStep,
    Mode,
    Operation,
    OperationKind,
    ResolvedSpec,
    SelectionBehavior,
    SelectionBehaviorFlag,
    SpecDocument,
    Step,
    Transition,
)
from statebook.compiler.parser import SpecParser, parse, parse_file
from statebook.compiler.resolver import resolve

__all__ = [
    # IR models
    "ConfigureStep",
    "InitialState",
    "Invocation",
    "InvokeStep",
    "Mode",
    "Operation",
    "OperationKind",
    "ResolvedSpec",
    "SelectionBehavior",
    "SelectionBehaviorFlag",
    "SpecDocument",
    "Step",
    "Transition",
    # Parser
    "SpecParser",
    "parse",
    "parse_file",
    "resolve",
]
