"""Node handlers and the default executor registry."""

from typing import Optional

import httpx

from nodeflow.constants import HTTP_REQUEST_CHANNEL, WEBHOOK_CHANNEL, NodeType
from nodeflow.core.config import Settings
from nodeflow.services.execution.registry import ExecutorRegistry
from .http import HttpRequestExecutor
from .triggers import (
    handle_google_form_trigger,
    handle_initial,
    handle_manual_trigger,
    handle_stripe_trigger,
)


def build_default_registry(settings: Settings,
                           transport: Optional[httpx.AsyncBaseTransport] = None) -> ExecutorRegistry:
    """Registry with one executor per ``NodeType``, validated before return."""
    registry = ExecutorRegistry()
    registry.register(NodeType.INITIAL, handle_initial)
    registry.register(NodeType.MANUAL_TRIGGER, handle_manual_trigger)
    registry.register(NodeType.GOOGLE_FORM_TRIGGER, handle_google_form_trigger)
    registry.register(NodeType.STRIPE_TRIGGER, handle_stripe_trigger)
    registry.register(NodeType.HTTP_REQUEST, HttpRequestExecutor(
        NodeType.HTTP_REQUEST,
        channel=HTTP_REQUEST_CHANNEL,
        timeout=settings.http_timeout,
        retry_transient=settings.http_retry_transient,
        transport=transport,
    ))
    registry.register(NodeType.WEBHOOK, HttpRequestExecutor(
        NodeType.WEBHOOK,
        channel=WEBHOOK_CHANNEL,
        timeout=settings.http_timeout,
        retry_transient=settings.http_retry_transient,
        transport=transport,
    ))
    return registry.validate()


__all__ = [
    "build_default_registry",
    "HttpRequestExecutor",
    "handle_initial",
    "handle_manual_trigger",
    "handle_google_form_trigger",
    "handle_stripe_trigger",
]
