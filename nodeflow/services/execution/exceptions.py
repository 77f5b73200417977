"""Engine error taxonomy.

Everything under ``NonRetriableError`` halts the run immediately and is never
retried by the step runner or by the durable substrate. ``RetriableError`` and
any exception outside this hierarchy restart the failed step.
"""

from typing import Any, Iterable, List, Optional


class WorkflowExecutionError(Exception):
    """Base class for all engine errors."""


class NonRetriableError(WorkflowExecutionError):
    """Fatal error: halts the run, never retried."""


class RetriableError(WorkflowExecutionError):
    """Transient error: the step runner may re-attempt the step."""


# =============================================================================
# VALIDATION
# =============================================================================

class InvalidTriggerError(NonRetriableError):
    """Trigger event is missing ``workflowId`` or ``userId``."""


class WorkflowNotFoundError(NonRetriableError):
    """Workflow does not exist or is not owned by the requesting user."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")


class InvalidWorkflowError(NonRetriableError):
    """Workflow definition cannot be executed as stored."""


class NodeConfigurationError(NonRetriableError):
    """Node data failed validation for its node type."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(message)


# =============================================================================
# STRUCTURE
# =============================================================================

class CycleError(NonRetriableError):
    """Connection graph contains a cycle."""

    def __init__(self, node_ids: Iterable[str]):
        self.node_ids: List[str] = list(node_ids)
        super().__init__(f"Workflow contains a cycle among nodes: {', '.join(self.node_ids)}")


class UnknownNodeTypeError(NonRetriableError):
    """No executor is registered for a node type."""

    def __init__(self, node_type: Optional[str]):
        self.node_type = node_type
        super().__init__(f"No executor found for node type: {node_type}")


class RegistryError(Exception):
    """Executor registry is inconsistent (raised at startup only)."""


# =============================================================================
# EXTERNAL CALLS
# =============================================================================

class HttpRequestError(NonRetriableError):
    """HTTP call failed: non-2xx response, timeout or network error."""

    def __init__(self, message: str, status: Optional[int] = None,
                 status_text: Optional[str] = None, body: Any = None):
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(message)


class TransientHttpError(RetriableError):
    """HTTP failure classified as transient (timeout, network, 5xx)."""

    def __init__(self, message: str, status: Optional[int] = None,
                 status_text: Optional[str] = None, body: Any = None):
        self.status = status
        self.status_text = status_text
        self.body = body
        super().__init__(message)
