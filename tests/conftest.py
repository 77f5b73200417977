# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the nodeflow test suite.

Provides settings with zero retry delays, the in-memory cache and step memo,
a status broadcaster with a recording helper, a workflow store and a factory
that wires them into an ``ExecutionDriver``.
"""

from typing import Any, Dict, List, Optional

import httpx
import pytest

from nodeflow.core.cache import CacheService
from nodeflow.core.config import Settings
from nodeflow.models import StatusMessage
from nodeflow.services.execution import (
    ExecutionDriver,
    ExecutorRegistry,
    RetryPolicy,
    StepCache,
    StepRunner,
)
from nodeflow.services.handlers import build_default_registry
from nodeflow.services.status_broadcaster import RunStatusPublisher, StatusBroadcaster
from nodeflow.services.workflow_store import InMemoryWorkflowStore


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment, with no backoff delay."""
    return Settings(
        _env_file=None,
        redis_enabled=False,
        step_initial_delay=0.0,
        step_max_delay=0.0,
        http_timeout=5.0,
    )


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay=0.0, max_delay=0.0)


# =============================================================================
# Cache and Step Fixtures
# =============================================================================


@pytest.fixture
async def cache_service(settings: Settings):
    """Memory-backed cache service, started and shut down around the test."""
    service = CacheService(settings)
    await service.startup()
    yield service
    await service.shutdown()


@pytest.fixture
def step_cache(cache_service: CacheService) -> StepCache:
    return StepCache(cache_service, ttl=3600)


@pytest.fixture
def make_step_runner(step_cache: StepCache, retry_policy: RetryPolicy):
    """Factory for step runners sharing one memo, like re-runs of one run id."""
    def factory(run_id: str) -> StepRunner:
        return StepRunner(run_id, cache=step_cache, retry_policy=retry_policy)
    return factory


# =============================================================================
# Status Fixtures
# =============================================================================


class RecordingBroadcaster(StatusBroadcaster):
    """Broadcaster that also keeps every published message in order."""

    def __init__(self):
        super().__init__(queue_size=100)
        self.messages: List[Dict[str, Any]] = []

    async def publish(self, channel: str, message: StatusMessage) -> None:
        self.messages.append({"channel": channel, **message.to_wire()})
        await super().publish(channel, message)

    def statuses(self, channel: Optional[str] = None, node_id: Optional[str] = None) -> List[str]:
        return [
            m["status"] for m in self.messages
            if (channel is None or m["channel"] == channel)
            and (node_id is None or m["nodeId"] == node_id)
        ]


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def publisher(broadcaster: RecordingBroadcaster) -> RunStatusPublisher:
    return RunStatusPublisher(broadcaster, "run-test")


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def http_handler():
    """Mutable request handler for the mock HTTP transport.

    Tests replace ``http_handler.respond`` to script responses; every request
    seen is appended to ``http_handler.requests``.
    """
    class Handler:
        def __init__(self):
            self.requests: List[httpx.Request] = []
            self.respond = lambda request: httpx.Response(200, json={"ok": True})

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.respond(request)

    return Handler()


@pytest.fixture
def registry(settings: Settings, http_handler) -> ExecutorRegistry:
    return build_default_registry(settings, transport=httpx.MockTransport(http_handler))


@pytest.fixture
def make_driver(store, registry, make_step_runner, broadcaster):
    """Build an ``ExecutionDriver``; any collaborator can be swapped per test."""
    def factory(**overrides) -> ExecutionDriver:
        return ExecutionDriver(
            store=overrides.get("store", store),
            registry=overrides.get("registry", registry),
            step_runner_factory=overrides.get("step_runner_factory", make_step_runner),
            broadcaster=overrides.get("broadcaster", broadcaster),
        )
    return factory


def make_workflow(workflow_id: str = "wf-1", user_id: str = "user-1",
                  nodes: Optional[List[Dict[str, Any]]] = None,
                  connections: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "id": workflow_id,
        "userId": user_id,
        "nodes": nodes or [],
        "connections": connections or [],
    }


def chain(*node_ids: str) -> List[Dict[str, Any]]:
    """Connections linking ``node_ids`` in order."""
    return [
        {"id": f"e-{a}-{b}", "source": a, "target": b}
        for a, b in zip(node_ids, node_ids[1:])
    ]
