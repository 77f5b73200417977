"""Temporal workflow - durable wrapper around one run.

The workflow only orchestrates: it schedules the run activity with the
workflow id as run id and returns the activity's result. All I/O happens in
the activity.
"""

from datetime import timedelta
from typing import Any, Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

from .activities import EXECUTE_RUN_ACTIVITY


@workflow.defn(name="TriggerWorkflow", sandboxed=False)
class TriggerWorkflow:
    """Run a stored workflow for one trigger event."""

    @workflow.run
    async def run(self, event: Dict[str, Any], max_attempts: int = 3) -> Dict[str, Any]:
        run_id = workflow.info().workflow_id
        workflow.logger.info(f"Starting run {run_id} for workflow {event.get('workflowId')}")

        return await workflow.execute_activity(
            EXECUTE_RUN_ACTIVITY,
            args=[event, run_id],
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(
                initial_interval=timedelta(seconds=1),
                maximum_interval=timedelta(seconds=30),
                maximum_attempts=max_attempts,
            ),
        )
