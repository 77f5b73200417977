"""Workflow store read contract.

The engine only ever reads a snapshot of ``{nodes, connections}``; creation
and editing of workflows happens elsewhere. Ownership is enforced here: a
workflow that exists but belongs to another user is reported as not found.
"""

from typing import Any, Dict, Protocol, Union

from nodeflow.core.logging import get_logger
from nodeflow.models import Workflow
from nodeflow.services.execution.exceptions import WorkflowNotFoundError

logger = get_logger(__name__)


class WorkflowStore(Protocol):
    async def get_workflow(self, workflow_id: str, user_id: str) -> Workflow:
        """Return the workflow snapshot or raise ``WorkflowNotFoundError``."""
        ...


class InMemoryWorkflowStore:
    """Dictionary-backed store for local runs and tests."""

    def __init__(self):
        self._workflows: Dict[str, Workflow] = {}

    def save(self, workflow: Union[Workflow, Dict[str, Any]]) -> Workflow:
        if not isinstance(workflow, Workflow):
            workflow = Workflow.model_validate(workflow)
        self._workflows[workflow.id] = workflow.model_copy(deep=True)
        logger.debug("Workflow saved", workflow_id=workflow.id,
                     node_count=len(workflow.nodes),
                     connection_count=len(workflow.connections))
        return workflow

    def delete(self, workflow_id: str) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    async def get_workflow(self, workflow_id: str, user_id: str) -> Workflow:
        workflow = self._workflows.get(workflow_id)
        if workflow is None or workflow.user_id != user_id:
            raise WorkflowNotFoundError(workflow_id)
        return workflow.model_copy(deep=True)
