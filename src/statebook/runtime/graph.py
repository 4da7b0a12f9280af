"""Settle-once document states shared by the tests of a generated suite.

Every spec entry is a node. Initial states start resolved; transitions start
pending and are settled exactly once by their own test: resolved with the
document they reached, failed, or skipped. Dependents wait on their
predecessor and only run when it resolved, so a failure turns its whole
dependency subtree into skips.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from statebook.diagnostics import StateAlreadySettledError, StateTimeoutError, UnknownStateError

if TYPE_CHECKING:
    from statebook.document import DocumentState

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    """Lifecycle of a node."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StateNode:
    """One entry of the graph."""

    title: str
    after: str | None = None  # None for initial states
    status: NodeStatus = NodeStatus.PENDING
    state: DocumentState | None = None
    settled: asyncio.Event = field(default_factory=asyncio.Event)

    def settle(self, status: NodeStatus, state: DocumentState | None = None) -> None:
        if self.status is not NodeStatus.PENDING:
            raise StateAlreadySettledError(f'state "{self.title}" is already {self.status.value}')
        self.status = status
        self.state = state
        self.settled.set()


class StateGraph:
    """Directed acyclic graph of document states, keyed by title."""

    def __init__(self) -> None:
        self.nodes: dict[str, StateNode] = {}

    def seed(self, title: str, state: DocumentState) -> StateNode:
        """Add an initial state, resolved immediately."""
        node = self._add(title, after=None)
        node.settle(NodeStatus.RESOLVED, state)
        return node

    def declare(self, title: str, after: str) -> StateNode:
        """Add a pending transition that comes after an existing node."""
        if after not in self.nodes:
            raise UnknownStateError(f'"{title}" comes after unknown state "{after}"')
        return self._add(title, after=after)

    def _add(self, title: str, after: str | None) -> StateNode:
        if title in self.nodes:
            raise ValueError(f'state "{title}" is declared twice')
        node = StateNode(title=title, after=after)
        self.nodes[title] = node
        return node

    def node(self, title: str) -> StateNode:
        try:
            return self.nodes[title]
        except KeyError:
            raise UnknownStateError(f'unknown state "{title}"') from None

    def status(self, title: str) -> NodeStatus:
        return self.node(title).status

    def dependents(self, title: str) -> list[str]:
        """Titles of the nodes that come directly after `title`."""
        return [node.title for node in self.nodes.values() if node.after == title]

    async def wait(self, title: str, timeout_ms: int | None = None) -> DocumentState | None:
        """Wait until a node settles.

        Returns:
            The resolved document, or None if the node failed or was skipped.

        Raises:
            StateTimeoutError: If `timeout_ms` elapses first.
        """
        node = self.node(title)

        if timeout_ms is None:
            await node.settled.wait()
        else:
            try:
                await asyncio.wait_for(node.settled.wait(), timeout=timeout_ms / 1000.0)
            except asyncio.TimeoutError:
                raise StateTimeoutError(title, timeout_ms) from None

        return node.state if node.status is NodeStatus.RESOLVED else None

    def resolve(self, title: str, state: DocumentState) -> None:
        """The transition reached `state`; dependents may run."""
        self.node(title).settle(NodeStatus.RESOLVED, state)

    def fail(self, title: str) -> None:
        """The transition's test failed; dependents will skip."""
        logger.debug("state %r failed", title)
        self.node(title).settle(NodeStatus.FAILED)

    def skip(self, title: str) -> None:
        """The transition's test was skipped; dependents will skip."""
        logger.debug("state %r skipped", title)
        self.node(title).settle(NodeStatus.SKIPPED)
