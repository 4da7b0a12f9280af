"""Turns a transition's flags and operations into executable steps."""

from __future__ import annotations

import json

from statebook.config import CommandsConfig
from statebook.diagnostics import DiagnosticContext, InvalidOperationError

from .ir import ConfigureStep, Invocation, InvokeStep, OperationKind, Step, Transition


def sequence(
    test: Transition,
    commands: CommandsConfig | None = None,
    type_stagger_ms: int = 20,
) -> list[Step]:
    """Build the steps of a transition.

    Flags come first, one configure step each. Every other operation invokes a
    command; `type:<char>` operations join the step of the operation before
    them, each starting `type_stagger_ms` later than the previous member, and
    the whole group is awaited before the next step.

    Raises:
        InvalidOperationError: If a `type:` operation has nothing to join.
    """
    commands = commands or CommandsConfig()
    steps: list[Step] = [ConfigureStep(mode=flag.mode, behavior=flag.behavior) for flag in test.flags]
    current: InvokeStep | None = None

    for operation in test.operations:
        if operation.kind is OperationKind.TYPE:
            if current is None:
                raise InvalidOperationError(
                    f'"{operation.command}" in "{test.title}" must follow another operation',
                    DiagnosticContext(title=test.title, line=operation.line),
                )
            current.invocations.append(
                Invocation(
                    command=commands.type,
                    args=f"{{\"text\": {json.dumps(operation.text, ensure_ascii=False)}}}",
                    delay_ms=len(current.invocations) * type_stagger_ms,
                )
            )
            continue

        command = operation.command
        if operation.kind is OperationKind.NAMESPACED:
            command = commands.namespace + command

        current = InvokeStep(invocations=[Invocation(command=command, args=operation.args)])
        steps.append(current)

    return steps
