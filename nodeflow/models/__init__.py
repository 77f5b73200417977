from .workflow import Node, Connection, Workflow, TriggerEvent, RunResult, RunStatus
from .status import NodeStatus, StatusMessage
from .nodes import (
    BaseNodeParams,
    InitialParams,
    ManualTriggerParams,
    GoogleFormTriggerParams,
    StripeTriggerParams,
    HttpRequestParams,
    validate_node_params,
)

__all__ = [
    "Node",
    "Connection",
    "Workflow",
    "TriggerEvent",
    "RunResult",
    "RunStatus",
    "NodeStatus",
    "StatusMessage",
    "BaseNodeParams",
    "InitialParams",
    "ManualTriggerParams",
    "GoogleFormTriggerParams",
    "StripeTriggerParams",
    "HttpRequestParams",
    "validate_node_params",
]
