"""Temporal executor - triggers runs through Temporal.

Same contract as ``ExecutionDriver.run`` but the run is scheduled as a
``TriggerWorkflow`` so a worker crash does not lose it.
"""

import time
import uuid
from typing import Any, Dict, Union

from temporalio.client import Client, WorkflowFailureError
from temporalio.runtime import Runtime, TelemetryConfig

from nodeflow.core.config import Settings
from nodeflow.core.logging import get_logger
from nodeflow.models import RunResult, TriggerEvent
from nodeflow.services.execution.exceptions import WorkflowExecutionError
from .workflow import TriggerWorkflow

logger = get_logger(__name__)


async def connect_client(settings: Settings) -> Client:
    """Connect to the Temporal server named in ``settings``.

    Runtime-level worker heartbeats are off; older servers reject them.
    """
    logger.info("Connecting to Temporal server",
                server_address=settings.temporal_server_address,
                namespace=settings.temporal_namespace)
    client = await Client.connect(
        settings.temporal_server_address,
        namespace=settings.temporal_namespace,
        runtime=Runtime(telemetry=TelemetryConfig(), worker_heartbeat_interval=None),
    )
    logger.info("Connected to Temporal server")
    return client


def _root_cause_message(error: BaseException) -> str:
    """Follow the exception chain down to the failure raised inside the activity."""
    while error.__cause__ is not None:
        error = error.__cause__
    return str(error)


class TemporalExecutor:
    """Run trigger that delegates to Temporal for durable execution."""

    def __init__(self, client: Client, task_queue: str = "nodeflow-runs",
                 max_attempts: int = 3):
        self.client = client
        self.task_queue = task_queue
        self.max_attempts = max_attempts

    @classmethod
    async def connect(cls, settings: Settings) -> "TemporalExecutor":
        """Connect a client and bind it to the configured task queue."""
        client = await connect_client(settings)
        return cls(client, task_queue=settings.temporal_task_queue,
                   max_attempts=settings.temporal_max_attempts)

    async def trigger(self, event: Union[TriggerEvent, Dict[str, Any]]) -> RunResult:
        if isinstance(event, TriggerEvent):
            event = event.model_dump(by_alias=True)

        run_id = f"run-{uuid.uuid4().hex}"
        start_time = time.time()
        logger.info("Starting Temporal run", workflow_id=event.get("workflowId"), run_id=run_id)

        try:
            result = await self.client.execute_workflow(
                TriggerWorkflow.run,
                args=[event, self.max_attempts],
                id=run_id,
                task_queue=self.task_queue,
            )
        except WorkflowFailureError as e:
            message = _root_cause_message(e)
            logger.error("Temporal run failed", run_id=run_id, error=message)
            raise WorkflowExecutionError(message) from e

        logger.info("Temporal run completed", run_id=run_id,
                    execution_time=time.time() - start_time)
        return RunResult.model_validate(result)
