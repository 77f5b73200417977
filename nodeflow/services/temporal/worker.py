"""Temporal worker for durable run execution.

The worker polls the task queue and executes:
- TriggerWorkflow: schedules one run activity per trigger event
- RunActivities: executes the run through the shared ExecutionDriver

Multiple workers can be started on different machines; the step memo in
Redis lets any of them resume a run another worker started.
"""

import asyncio
from typing import Optional

from temporalio.client import Client
from temporalio.worker import Worker

from nodeflow.core.logging import get_logger
from nodeflow.services.execution import ExecutionDriver
from .activities import RunActivities
from .executor import connect_client
from .workflow import TriggerWorkflow

logger = get_logger(__name__)


def create_worker(client: Client, driver: ExecutionDriver,
                  task_queue: str = "nodeflow-runs",
                  max_concurrent_activities: int = 100) -> Worker:
    """Create a worker instance (not started)."""
    activities = RunActivities(driver)
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[TriggerWorkflow],
        activities=[activities.execute_workflow_run],
        max_concurrent_activities=max_concurrent_activities,
        max_concurrent_workflow_tasks=10,
    )


class TemporalWorkerManager:
    """Manages the Temporal worker lifecycle inside the API process."""

    def __init__(self, client: Client, driver: ExecutionDriver,
                 task_queue: str = "nodeflow-runs"):
        self.client = client
        self.driver = driver
        self.task_queue = task_queue
        self._worker: Optional[Worker] = None
        self._worker_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def start(self) -> None:
        """Start the Temporal worker in the background."""
        if self.is_running:
            logger.warning("Temporal worker already running")
            return

        self._worker = create_worker(self.client, self.driver, self.task_queue)
        logger.info("Starting Temporal worker", task_queue=self.task_queue)
        self._worker_task = asyncio.create_task(self._run_worker(), name="temporal-worker")

    async def _run_worker(self) -> None:
        try:
            await self._worker.run()
        except asyncio.CancelledError:
            logger.info("Temporal worker cancelled")
        except Exception as e:
            logger.error("Temporal worker error", error=str(e))
            raise

    async def stop(self) -> None:
        """Stop the Temporal worker."""
        if not self.is_running:
            return

        logger.info("Stopping Temporal worker")
        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        self._worker_task = None
        self._worker = None
        logger.info("Temporal worker stopped")


async def run_standalone_worker() -> None:
    """Run the Temporal worker as a standalone process.

    Example:
        python -m nodeflow.services.temporal.worker
    """
    from nodeflow.core.container import container
    from nodeflow.core.logging import configure_logging

    settings = container.settings()
    configure_logging(settings)

    logger.info(
        "Starting standalone Temporal worker",
        server_address=settings.temporal_server_address,
        namespace=settings.temporal_namespace,
        task_queue=settings.temporal_task_queue,
    )

    cache = container.cache()
    await cache.startup()
    client = await connect_client(settings)

    try:
        worker = create_worker(client, container.driver(), settings.temporal_task_queue)
        logger.info("Worker running. Press Ctrl+C to stop.")
        await worker.run()
    finally:
        await cache.shutdown()


if __name__ == "__main__":
    asyncio.run(run_standalone_worker())
