"""Centralized constants for node types and status channels.

Single source of truth for node type tags and the status channel each node
family publishes on.
"""

from enum import Enum
from typing import Dict, FrozenSet


class NodeType(str, Enum):
    """Closed enumeration of node type tags understood by the engine."""
    INITIAL = "INITIAL"
    MANUAL_TRIGGER = "MANUAL_TRIGGER"
    HTTP_REQUEST = "HTTP_REQUEST"
    WEBHOOK = "WEBHOOK"
    GOOGLE_FORM_TRIGGER = "GOOGLE_FORM_TRIGGER"
    STRIPE_TRIGGER = "STRIPE_TRIGGER"


# =============================================================================
# STATUS CHANNELS
# =============================================================================

MANUAL_TRIGGER_CHANNEL = "manual-trigger-execution"
HTTP_REQUEST_CHANNEL = "http-request-execution"
WEBHOOK_CHANNEL = "webhook-execution"
GOOGLE_FORM_TRIGGER_CHANNEL = "google-form-trigger-execution"
STRIPE_TRIGGER_CHANNEL = "stripe-trigger-execution"

# Run-level lifecycle (running/completed/failed)
WORKFLOW_CHANNEL = "workflow-execution"

NODE_STATUS_CHANNELS: Dict[str, str] = {
    NodeType.MANUAL_TRIGGER.value: MANUAL_TRIGGER_CHANNEL,
    NodeType.HTTP_REQUEST.value: HTTP_REQUEST_CHANNEL,
    NodeType.WEBHOOK.value: WEBHOOK_CHANNEL,
    NodeType.GOOGLE_FORM_TRIGGER.value: GOOGLE_FORM_TRIGGER_CHANNEL,
    NodeType.STRIPE_TRIGGER.value: STRIPE_TRIGGER_CHANNEL,
}

ALL_STATUS_CHANNELS: FrozenSet[str] = frozenset(NODE_STATUS_CHANNELS.values()) | {WORKFLOW_CHANNEL}

# =============================================================================
# HTTP
# =============================================================================

HTTP_METHODS: FrozenSet[str] = frozenset([
    "GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS",
])

HTTP_BODY_METHODS: FrozenSet[str] = frozenset(["POST", "PUT", "PATCH"])
