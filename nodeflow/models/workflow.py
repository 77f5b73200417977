"""Graph and run models.

Workflows are authored and stored elsewhere; the engine only reads them. Wire
names are camelCase (``userId``, ``sourceHandle``, ``initialData``) and the
models accept either spelling.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Node(_WireModel):
    """A unit of work in the graph.

    ``id`` and ``type`` are optional at parse time so that a malformed node can
    be dropped with a warning instead of failing the whole workflow load.
    """
    id: Optional[str] = None
    type: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    position: Optional[Dict[str, float]] = None

    @property
    def is_executable(self) -> bool:
        return bool(self.id) and bool(self.type)


class Connection(_WireModel):
    """Directed edge ``source -> target``."""
    id: Optional[str] = None
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")


class Workflow(_WireModel):
    """Immutable snapshot of a workflow as loaded for one run."""
    id: str
    user_id: Optional[str] = Field(default=None, alias="userId")
    name: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)


class TriggerEvent(_WireModel):
    """The sole external input that starts a run."""
    workflow_id: Optional[str] = Field(default=None, alias="workflowId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    data: Optional[Dict[str, Any]] = None
    initial_data: Optional[Dict[str, Any]] = Field(default=None, alias="initialData")

    def seed_context(self) -> Dict[str, Any]:
        """Initial execution context: ``initialData`` wins over ``data``."""
        if self.initial_data is not None:
            return dict(self.initial_data)
        return dict(self.data or {})


class RunStatus(str, Enum):
    """Run-level lifecycle published on the workflow channel."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunResult(_WireModel):
    """Terminal result returned to whoever issued the trigger."""
    workflow_id: str = Field(alias="workflowId")
    run_id: Optional[str] = Field(default=None, alias="runId")
    result: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
