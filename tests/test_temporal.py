"""Tests for the Temporal activity and executor.

The activity runs in temporalio's ``ActivityEnvironment``; the executor is
exercised against a stand-in client, so no Temporal server is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from temporalio.client import WorkflowFailureError
from temporalio.exceptions import ApplicationError
from temporalio.testing import ActivityEnvironment

from conftest import make_workflow
from nodeflow.services.execution import ExecutorRegistry, WorkflowExecutionError
from nodeflow.core.config import Settings
from nodeflow.services.temporal import RunActivities, TemporalExecutor, TriggerWorkflow
from nodeflow.services.temporal import executor as executor_module


def event():
    return {"workflowId": "wf-1", "userId": "user-1", "data": {"seed": 1}}


@pytest.fixture
def activities(store, make_driver):
    async def mark(*, data, node_id, context, step_runner, publisher):
        async def work():
            return {**context, node_id: "done"}
        return await step_runner.run(f"mark-{node_id}", work)

    store.save(make_workflow(nodes=[{"id": "n1", "type": "MARK"}]))
    return RunActivities(make_driver(registry=ExecutorRegistry({"MARK": mark})))


class TestRunActivity:
    async def test_returns_wire_result(self, activities):
        result = await ActivityEnvironment().run(activities.execute_workflow_run, event(), "run-1")
        assert result == {"workflowId": "wf-1", "runId": "run-1",
                          "result": {"seed": 1, "n1": "done"}}

    async def test_non_retriable_error_becomes_non_retryable(self, activities):
        missing = {"workflowId": "nope", "userId": "user-1"}
        with pytest.raises(ApplicationError) as exc_info:
            await ActivityEnvironment().run(activities.execute_workflow_run, missing, "run-1")
        assert exc_info.value.non_retryable is True
        assert exc_info.value.type == "WorkflowNotFoundError"

    async def test_malformed_event_is_non_retryable(self, activities):
        malformed = {"workflowId": "wf-1", "userId": "user-1", "initialData": "not-a-map"}
        with pytest.raises(ApplicationError) as exc_info:
            await ActivityEnvironment().run(activities.execute_workflow_run, malformed, "run-1")
        assert exc_info.value.non_retryable is True
        assert exc_info.value.type == "InvalidTriggerError"

    async def test_other_errors_left_to_retry_policy(self, store, make_driver):
        async def crash(*, data, node_id, context, step_runner, publisher):
            raise RuntimeError("worker lost")

        store.save(make_workflow(nodes=[{"id": "n1", "type": "CRASH"}]))
        activities = RunActivities(make_driver(registry=ExecutorRegistry({"CRASH": crash})))

        with pytest.raises(RuntimeError, match="worker lost"):
            await ActivityEnvironment().run(activities.execute_workflow_run, event(), "run-1")


class FakeClient:
    """Stand-in for ``temporalio.client.Client.execute_workflow``."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def execute_workflow(self, workflow, **kwargs):
        self.calls.append((workflow, kwargs))
        if self.error is not None:
            raise self.error
        return self.result


class TestTemporalExecutor:
    async def test_trigger_starts_workflow_and_parses_result(self):
        client = FakeClient(result={"workflowId": "wf-1", "runId": "run-abc", "result": {"a": 1}})
        executor = TemporalExecutor(client, task_queue="q", max_attempts=5)

        result = await executor.trigger(event())

        workflow, kwargs = client.calls[0]
        assert workflow == TriggerWorkflow.run
        assert kwargs["args"] == [event(), 5]
        assert kwargs["task_queue"] == "q"
        assert kwargs["id"].startswith("run-")
        assert result.run_id == "run-abc"
        assert result.result == {"a": 1}

    async def test_failure_unwrapped_to_activity_message(self):
        cause = ApplicationError("Workflow not found: wf-1", type="WorkflowNotFoundError",
                                 non_retryable=True)
        client = FakeClient(error=WorkflowFailureError(cause=cause))

        with pytest.raises(WorkflowExecutionError, match="Workflow not found: wf-1"):
            await TemporalExecutor(client).trigger(event())


async def test_connect_uses_configured_server(monkeypatch):
    client = FakeClient()
    connect = AsyncMock(return_value=client)
    monkeypatch.setattr(executor_module.Client, "connect", connect)
    monkeypatch.setattr(executor_module, "Runtime", MagicMock())
    settings = Settings(temporal_server_address="temporal:7233", temporal_namespace="runs",
                        temporal_task_queue="q-7", temporal_max_attempts=4)

    executor = await TemporalExecutor.connect(settings)

    assert executor.client is client
    assert executor.task_queue == "q-7"
    assert executor.max_attempts == 4
    args, kwargs = connect.call_args
    assert args == ("temporal:7233",)
    assert kwargs["namespace"] == "runs"
