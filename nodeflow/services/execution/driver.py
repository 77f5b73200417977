"""Execution driver: trigger event in, run result out.

State machine:
    Loading Graph -> Sorting -> Executing[node_0 .. node_n-1] -> Completed | Aborted

Nodes run strictly one after another in topological order, threading a single
context mapping through every executor. The first exception aborts the run:
later nodes never start, and the exception propagates to the caller.

Per-run state is dropped when the run ends: node statuses always, the step
memo once the run can no longer be re-run (completed, or failed with a
non-retriable error).
"""

import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Union, TYPE_CHECKING

from pydantic import ValidationError

from nodeflow.constants import WORKFLOW_CHANNEL
from nodeflow.core.logging import get_logger, log_context, log_duration
from nodeflow.models import Node, RunResult, RunStatus, StatusMessage, TriggerEvent
from nodeflow.services.status_broadcaster import RunStatusPublisher, StatusBroadcaster
from .exceptions import InvalidTriggerError, InvalidWorkflowError, NonRetriableError
from .registry import ExecutorRegistry
from .sorter import topological_sort
from .steps import StepRunner

if TYPE_CHECKING:
    from nodeflow.services.workflow_store import WorkflowStore

logger = get_logger(__name__)

StepRunnerFactory = Callable[[str], StepRunner]


def parse_trigger_event(event: Union[TriggerEvent, Mapping[str, Any]]) -> TriggerEvent:
    """Validate a trigger event; every failure is an ``InvalidTriggerError``."""
    if not isinstance(event, TriggerEvent):
        try:
            event = TriggerEvent.model_validate(dict(event))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidTriggerError(f"Invalid trigger event: {problems}") from e
        except (TypeError, ValueError) as e:
            raise InvalidTriggerError(f"Trigger event must be a mapping: {e}") from e

    if not event.workflow_id:
        raise InvalidTriggerError("workflowId is required")
    if not event.user_id:
        raise InvalidTriggerError("userId is required")
    return event


class ExecutionDriver:
    """Runs one workflow per call to :meth:`run`.

    Holds no per-run state, so concurrent runs on one driver are independent:
    each gets its own context, step runner and publisher.
    """

    def __init__(self, store: "WorkflowStore", registry: ExecutorRegistry,
                 step_runner_factory: StepRunnerFactory,
                 broadcaster: StatusBroadcaster):
        self.store = store
        self.registry = registry
        self.step_runner_factory = step_runner_factory
        self.broadcaster = broadcaster

    async def run(self, event: Union[TriggerEvent, Mapping[str, Any]],
                  run_id: Optional[str] = None) -> RunResult:
        """Execute the workflow named by ``event``.

        Args:
            event: Trigger event (model or wire dict)
            run_id: Stable id of this run; reuse it when re-running after a
                failure so completed steps are not executed again

        Raises:
            NonRetriableError: validation, structural or fatal node errors
            Exception: anything a node raised after its step retries ran out
        """
        # Validate before any I/O
        event = parse_trigger_event(event)
        run_id = run_id or str(uuid.uuid4())

        with log_context(run_id=run_id, workflow_id=event.workflow_id):
            try:
                return await self._run(event, run_id)
            finally:
                self.broadcaster.clear_run(run_id)

    async def _run(self, event: TriggerEvent, run_id: str) -> RunResult:
        step_runner = self.step_runner_factory(run_id)

        await self._publish_run_status(event.workflow_id, run_id, RunStatus.RUNNING)
        logger.info("Starting workflow execution")

        try:
            with log_duration(logger, "workflow_run") as timing:
                nodes = await self._prepare(event)
                context = await self._execute_nodes(nodes, event.seed_context(),
                                                    step_runner, run_id)
                timing["nodes_executed"] = len(nodes)
        except Exception as e:
            logger.error("Workflow execution failed", error_type=type(e).__name__, error=str(e))
            await self._publish_run_status(event.workflow_id, run_id, RunStatus.FAILED,
                                           {"error": str(e)})
            if isinstance(e, NonRetriableError):
                await self._discard_steps(step_runner)
            raise

        await self._publish_run_status(event.workflow_id, run_id, RunStatus.COMPLETED)
        await self._discard_steps(step_runner)
        return RunResult(workflow_id=event.workflow_id, run_id=run_id, result=context)

    async def _prepare(self, event: TriggerEvent) -> List[Node]:
        """Load, sort and filter the graph."""
        workflow = await self.store.get_workflow(event.workflow_id, event.user_id)
        logger.debug("Workflow loaded", node_count=len(workflow.nodes),
                     connection_count=len(workflow.connections))

        ordered = topological_sort(workflow.nodes, workflow.connections)

        nodes = []
        for node in ordered:
            if not node.is_executable:
                logger.warning("Skipping node missing id or type",
                               node_id=node.id, node_type=node.type)
                continue
            nodes.append(node)

        if not nodes:
            raise InvalidWorkflowError("No valid nodes to execute")

        logger.info("Execution order computed", order=[n.id for n in nodes])
        return nodes

    async def _execute_nodes(self, nodes: List[Node], context: Dict[str, Any],
                             step_runner: StepRunner, run_id: str) -> Dict[str, Any]:
        publisher = RunStatusPublisher(self.broadcaster, run_id)

        for node in nodes:
            executor = self.registry.get_executor(node.type)

            with log_context(node_id=node.id, node_type=node.type):
                logger.info("Executing node")
                result = await executor(
                    data=node.data,
                    node_id=node.id,
                    context=context,
                    step_runner=step_runner,
                    publisher=publisher,
                )
                if not isinstance(result, Mapping):
                    raise InvalidWorkflowError(
                        f"Executor for node {node.id} ({node.type}) returned "
                        f"{type(result).__name__}, expected a mapping"
                    )
                context = dict(result)
                logger.debug("Node completed", context_keys=sorted(context))

        return context

    async def _discard_steps(self, step_runner: StepRunner) -> None:
        """Drop the run's step memo; entries left behind still expire by TTL."""
        try:
            await step_runner.cache.clear_run(step_runner.run_id)
        except Exception as e:
            logger.warning("Could not clear step memo", error=str(e))

    async def _publish_run_status(self, workflow_id: str, run_id: str, status: RunStatus,
                                  data: Optional[Dict[str, Any]] = None) -> None:
        await self.broadcaster.publish(WORKFLOW_CHANNEL, StatusMessage(
            node_id=workflow_id,
            status=status,
            run_id=run_id,
            data=data,
        ))
