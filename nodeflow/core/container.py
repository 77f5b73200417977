"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from nodeflow.core.config import Settings
from nodeflow.core.cache import CacheService
from nodeflow.services.execution import ExecutionDriver, RetryPolicy, StepCache, StepRunner
from nodeflow.services.handlers import build_default_registry
from nodeflow.services.status_broadcaster import StatusBroadcaster
from nodeflow.services.workflow_store import InMemoryWorkflowStore


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Cache service (uses Redis when enabled, memory otherwise)
    cache = providers.Singleton(
        CacheService,
        settings=settings
    )

    step_cache = providers.Singleton(
        StepCache,
        cache_service=cache,
        ttl=settings.provided.step_cache_ttl
    )

    retry_policy = providers.Singleton(
        RetryPolicy.from_settings,
        settings=settings
    )

    broadcaster = providers.Singleton(
        StatusBroadcaster,
        queue_size=settings.provided.status_queue_size
    )

    workflow_store = providers.Singleton(
        InMemoryWorkflowStore
    )

    registry = providers.Singleton(
        build_default_registry,
        settings=settings
    )

    # One runner per run id
    step_runner = providers.Factory(
        StepRunner,
        cache=step_cache,
        retry_policy=retry_policy
    )

    driver = providers.Singleton(
        ExecutionDriver,
        store=workflow_store,
        registry=registry,
        step_runner_factory=step_runner.provider,
        broadcaster=broadcaster
    )


# Global container instance
container = Container()
