"""Executor registry: node type tag -> executor.

Built once at process start, validated against the ``NodeType`` catalogue and
then only read, so one instance is shared by every concurrent run.
"""

from typing import Any, Awaitable, Dict, Iterable, Mapping, Optional, Protocol, TYPE_CHECKING

from nodeflow.constants import NodeType
from nodeflow.core.logging import get_logger
from .exceptions import RegistryError, UnknownNodeTypeError

if TYPE_CHECKING:
    from nodeflow.services.status_broadcaster import RunStatusPublisher
    from .steps import StepRunner

logger = get_logger(__name__)


def _tag(node_type) -> str:
    return node_type.value if isinstance(node_type, NodeType) else node_type


class NodeExecutor(Protocol):
    """Contract every node type implements.

    Returns the new execution context. Side effects belong inside exactly one
    ``step_runner.run`` call per logical action.
    """

    def __call__(self, *, data: Dict[str, Any], node_id: str, context: Dict[str, Any],
                 step_runner: "StepRunner",
                 publisher: "RunStatusPublisher") -> Awaitable[Dict[str, Any]]:
        ...


class ExecutorRegistry:
    """Closed mapping from node type tag to executor."""

    def __init__(self, executors: Optional[Mapping[str, NodeExecutor]] = None):
        self._executors: Dict[str, NodeExecutor] = {}
        for node_type, executor in (executors or {}).items():
            self.register(node_type, executor)

    def register(self, node_type: str, executor: NodeExecutor) -> None:
        """Register an executor; a tag can be registered only once."""
        key = _tag(node_type)
        if key in self._executors:
            raise RegistryError(f"Duplicate executor registration for node type: {key}")
        self._executors[key] = executor
        logger.debug("Registered executor", node_type=key)

    def validate(self, required: Iterable[str] = tuple(NodeType)) -> "ExecutorRegistry":
        """Fail fast if any required node type has no executor."""
        missing = sorted(
            _tag(t) for t in required if _tag(t) not in self._executors
        )
        if missing:
            raise RegistryError(f"Missing executors for node types: {', '.join(missing)}")
        logger.info("Executor registry validated", node_types=sorted(self._executors))
        return self

    def get_executor(self, node_type: Optional[str]) -> NodeExecutor:
        """Return the executor for ``node_type``.

        Raises:
            UnknownNodeTypeError: nothing is registered under this tag
        """
        executor = self._executors.get(_tag(node_type)) if node_type is not None else None
        if executor is None:
            raise UnknownNodeTypeError(node_type)
        return executor

    @property
    def node_types(self) -> frozenset:
        return frozenset(self._executors)

    def __contains__(self, node_type: str) -> bool:
        return _tag(node_type) in self._executors

    def __len__(self) -> int:
        return len(self._executors)
