"""Temporal activity that executes one workflow run.

The activity calls the in-process ``ExecutionDriver`` with the Temporal
workflow id as run id. That id is stable across activity retries, so a retried
attempt finds the steps the previous attempt completed in the step memo and
skips their side effects.

Non-retriable engine errors become non-retryable ``ApplicationError``s; any
other exception is left to the activity retry policy.
"""

from typing import Any, Dict

from temporalio import activity
from temporalio.exceptions import ApplicationError

from nodeflow.core.logging import get_logger
from nodeflow.services.execution import ExecutionDriver, NonRetriableError

logger = get_logger(__name__)

EXECUTE_RUN_ACTIVITY = "execute_workflow_run"


class RunActivities:
    """Class-based activities sharing one driver (and its registry) per worker."""

    def __init__(self, driver: ExecutionDriver):
        self.driver = driver

    @activity.defn(name=EXECUTE_RUN_ACTIVITY)
    async def execute_workflow_run(self, event: Dict[str, Any], run_id: str) -> Dict[str, Any]:
        info = activity.info()
        logger.info("Executing run activity",
                    run_id=run_id,
                    workflow_id=event.get("workflowId"),
                    attempt=info.attempt)

        try:
            result = await self.driver.run(event, run_id=run_id)
        except NonRetriableError as e:
            raise ApplicationError(
                str(e),
                type=type(e).__name__,
                non_retryable=True,
            ) from e

        return result.to_wire()
