"""Temporal integration for durable run execution."""

from .activities import EXECUTE_RUN_ACTIVITY, RunActivities
from .executor import TemporalExecutor, connect_client
from .worker import TemporalWorkerManager, create_worker
from .workflow import TriggerWorkflow

__all__ = [
    "EXECUTE_RUN_ACTIVITY",
    "RunActivities",
    "TemporalExecutor",
    "TemporalWorkerManager",
    "TriggerWorkflow",
    "connect_client",
    "create_worker",
]
