"""Step runner: the durability boundary for side effects inside a run.

A completed step's result is memoized under ``step:{run_id}:{name}``. When the
surrounding substrate re-runs the same run id after a crash or a transient
failure, completed steps return their memoized result without running their
work again; steps that never completed are attempted again.
"""

import asyncio
from collections import Counter
from typing import Any, Optional

from nodeflow.core.logging import get_logger
from .cache import StepCache
from .models import RetryPolicy, Step, StepWork

logger = get_logger(__name__)


class StepRunner:
    """Runs named steps for one run id."""

    def __init__(self, run_id: str, cache: StepCache,
                 retry_policy: Optional[RetryPolicy] = None):
        self.run_id = run_id
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy()
        self._invocations: Counter = Counter()

    async def run(self, step_name: str, work: StepWork) -> Any:
        """Run ``work`` once per ``(run_id, step_name)``.

        The same name used again within one run gets an ordinal suffix
        (``name:2``, ``name:3``), assigned in call order, so a re-run sees the
        same keys as long as the run executes the same sequence of steps.
        """
        self._invocations[step_name] += 1
        count = self._invocations[step_name]
        name = step_name if count == 1 else f"{step_name}:{count}"
        return await self.execute(Step(name=name, work=work))

    async def execute(self, step: Step) -> Any:
        key = step.key(self.run_id)

        hit, result = await self.cache.get_result(key)
        if hit:
            logger.info("Step memoized, skipping work", run_id=self.run_id, step=step.name)
            return result

        result = await self._attempt(step)
        await self.cache.set_result(key, result)
        logger.debug("Step completed", run_id=self.run_id, step=step.name)
        return result

    async def _attempt(self, step: Step) -> Any:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await step.work()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self.retry_policy.should_retry(e, attempt):
                    logger.warning("Step failed",
                                   run_id=self.run_id,
                                   step=step.name,
                                   attempt=attempt,
                                   error_type=type(e).__name__,
                                   error=str(e))
                    raise

                delay = self.retry_policy.calculate_delay(attempt - 1)
                logger.info("Retrying step after failure",
                            run_id=self.run_id,
                            step=step.name,
                            attempt=attempt,
                            max_attempts=self.retry_policy.max_attempts,
                            delay=delay,
                            error=str(e)[:200])
                await asyncio.sleep(delay)
