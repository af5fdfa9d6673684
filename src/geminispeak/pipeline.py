"""
Staged pipeline orchestrator.

A pipeline is a graph of :class:`Node` objects. Each node runs
``prep -> exec -> post`` in order; the action string returned by ``post``
selects the successor registered with :meth:`Node.next`. The run ends on a
terminal action ("finished" or "done"), on None, or on an action with no
registered edge. Errors raised by any phase propagate to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from geminispeak.constants import TERMINAL_ACTIONS
from geminispeak.exceptions import PipelineError

logger = logging.getLogger(__name__)

ContextT = TypeVar("ContextT")

DEFAULT_ACTION = "default"
DEFAULT_MAX_STEPS = 100


@dataclass
class ChatContext:
    """Mutable state threaded through a chat pipeline run."""

    available_parameters: Dict[str, Any] = field(default_factory=dict)
    prepared_request: Optional[Dict[str, Any]] = None
    model_response: Optional[Any] = None
    result: Optional[Any] = None


@dataclass
class EmbeddingsContext:
    """Mutable state threaded through an embeddings pipeline run."""

    available_parameters: Dict[str, Any] = field(default_factory=dict)
    prepared_request: Optional[Dict[str, Any]] = None
    model_response: Optional[Any] = None
    result: Optional[Any] = None


class Node(Generic[ContextT]):
    """One step of a pipeline. Subclasses override the three phases."""

    def __init__(self):
        self.successors: Dict[str, "Node[ContextT]"] = {}

    @property
    def name(self) -> str:
        return type(self).__name__

    def next(self, node: "Node[ContextT]", action: str = DEFAULT_ACTION) -> "Node[ContextT]":
        """Register ``node`` as the successor for ``action`` and return it."""
        if action in self.successors:
            logger.warning(f"Overwriting successor for action '{action}' on {self.name}")
        self.successors[action] = node
        return node

    def get_next(self, action: Optional[str]) -> Optional["Node[ContextT]"]:
        if action is None or action in TERMINAL_ACTIONS:
            return None
        successor = self.successors.get(action)
        if successor is None:
            logger.warning(
                f"Pipeline ended: action '{action}' has no successor on {self.name} "
                f"(known: {sorted(self.successors)})"
            )
        return successor

    async def prep(self, context: ContextT) -> Any:
        return None

    async def exec(self, prep_result: Any) -> Any:
        return None

    async def post(self, context: ContextT, prep_result: Any, exec_result: Any) -> Optional[str]:
        return None

    async def run(self, context: ContextT) -> Optional[str]:
        """Run this node's three phases once and return the chosen action."""
        prep_result = await self.prep(context)
        exec_result = await self.exec(prep_result)
        return await self.post(context, prep_result, exec_result)


class Flow(Generic[ContextT]):
    """Runs a node graph from ``start`` over a shared context."""

    def __init__(self, start: Node[ContextT], max_steps: int = DEFAULT_MAX_STEPS):
        self.start = start
        self.max_steps = max_steps

    async def run(self, context: ContextT) -> ContextT:
        node: Optional[Node[ContextT]] = self.start
        steps = 0
        while node is not None:
            if steps >= self.max_steps:
                raise PipelineError(
                    f"Pipeline exceeded {self.max_steps} steps (last node: {node.name})"
                )
            steps += 1
            action = await node.run(context)
            logger.debug(f"{node.name} -> {action!r}")
            node = node.get_next(action)
        return context
