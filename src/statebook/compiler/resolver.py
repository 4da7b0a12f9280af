"""Dependency resolution for parsed specs.

Entries must be declared before they are used: initial states first, then
transitions in declaration order, each of which may only come after a title
that is already known. A back-reference that would close a cycle is therefore
always an unknown reference, so no separate cycle check exists.
"""

from __future__ import annotations

import logging

from statebook.diagnostics import (
    DiagnosticContext,
    DuplicateTitleError,
    UnknownDependencyError,
    suggest_title,
)

from .ir import ResolvedSpec, SpecDocument

logger = logging.getLogger(__name__)


def resolve(document: SpecDocument) -> ResolvedSpec:
    """Validate references and return setups and tests in execution order.

    Raises:
        DuplicateTitleError: If two entries share a title.
        UnknownDependencyError: If a transition comes after a title that is
            not declared earlier.
    """
    known: set[str] = set()

    for setup in document.initial:
        if setup.title in known:
            raise DuplicateTitleError(
                f'initial document state "{setup.title}" is defined multiple times',
                DiagnosticContext(title=setup.title, line=setup.line),
            )
        known.add(setup.title)

    for test in document.transitions:
        if test.comes_after not in known:
            context = DiagnosticContext(title=test.title, line=test.line)
            all_titles = [e.title for e in document.initial] + [t.title for t in document.transitions]

            if test.comes_after == test.title:
                context.add_suggestion("A transition cannot come after itself")
            elif test.comes_after in all_titles:
                context.add_suggestion(f'Move "{test.comes_after}" before "{test.title}"')
            else:
                suggestion = suggest_title(test.comes_after, all_titles)
                if suggestion:
                    context.add_suggestion(suggestion)

            raise UnknownDependencyError(test.title, test.comes_after, context)

        if test.title in known:
            raise DuplicateTitleError(
                f'test "{test.title}" reuses a title that is already defined',
                DiagnosticContext(title=test.title, line=test.line),
            )
        known.add(test.title)

    logger.debug("resolved %d setup(s) and %d test(s)", len(document.initial), len(document.transitions))
    return ResolvedSpec(setups=list(document.initial), tests=list(document.transitions))
