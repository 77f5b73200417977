"""Execution engine package.

- Topological ordering of the node graph (Kahn, stable tie-break)
- Closed executor registry validated at startup
- Durable, memoized steps with in-step retry
- Sequential execution driver threading one context through the graph
"""

from .exceptions import (
    WorkflowExecutionError,
    NonRetriableError,
    RetriableError,
    InvalidTriggerError,
    WorkflowNotFoundError,
    InvalidWorkflowError,
    NodeConfigurationError,
    CycleError,
    UnknownNodeTypeError,
    RegistryError,
    HttpRequestError,
    TransientHttpError,
)
from .models import RetryPolicy, Step
from .cache import StepCache
from .steps import StepRunner
from .sorter import topological_sort
from .registry import ExecutorRegistry, NodeExecutor
from .driver import ExecutionDriver

__all__ = [
    # Errors
    "WorkflowExecutionError",
    "NonRetriableError",
    "RetriableError",
    "InvalidTriggerError",
    "WorkflowNotFoundError",
    "InvalidWorkflowError",
    "NodeConfigurationError",
    "CycleError",
    "UnknownNodeTypeError",
    "RegistryError",
    "HttpRequestError",
    "TransientHttpError",
    # Steps
    "RetryPolicy",
    "Step",
    "StepCache",
    "StepRunner",
    # Graph
    "topological_sort",
    # Dispatch
    "ExecutorRegistry",
    "NodeExecutor",
    # Driver
    "ExecutionDriver",
]
