"""Node status messages published to observers."""

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeStatus(str, Enum):
    """Per-node status. Transitions ``initial -> loading -> success | error``."""
    INITIAL = "initial"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class StatusMessage(BaseModel):
    """Message body on a status channel.

    ``nodeId`` is the key observers filter on; for run-level messages on the
    workflow channel it carries the workflow id.
    """
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId")
    status: str
    run_id: Optional[str] = Field(default=None, alias="runId")
    timestamp: float = Field(default_factory=time.time)
    data: Optional[Dict[str, Any]] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v):
        return v.value if isinstance(v, Enum) else v

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
