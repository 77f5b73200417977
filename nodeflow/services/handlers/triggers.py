"""Trigger node handlers - Initial placeholder, Manual, Google Form and Stripe triggers."""

from typing import Any, Dict

from nodeflow.constants import (
    GOOGLE_FORM_TRIGGER_CHANNEL,
    MANUAL_TRIGGER_CHANNEL,
    STRIPE_TRIGGER_CHANNEL,
    NodeType,
)
from nodeflow.core.logging import get_logger
from nodeflow.services.status_broadcaster import RunStatusPublisher, track_status
from nodeflow.services.execution.steps import StepRunner
from .base import parse_node_params

logger = get_logger(__name__)


async def handle_initial(
    *,
    data: Dict[str, Any],
    node_id: str,
    context: Dict[str, Any],
    step_runner: StepRunner,
    publisher: RunStatusPublisher,
) -> Dict[str, Any]:
    """Placeholder for a graph with no trigger configured yet: returns context unchanged."""
    logger.debug("Initial node, nothing to do", node_id=node_id)
    return context


async def handle_manual_trigger(
    *,
    data: Dict[str, Any],
    node_id: str,
    context: Dict[str, Any],
    step_runner: StepRunner,
    publisher: RunStatusPublisher,
) -> Dict[str, Any]:
    """Handle manual trigger node execution.

    Entry point of a manually started run. Passes the context through inside a
    named step so the run has a durable checkpoint at the trigger.
    """
    async with track_status(publisher, MANUAL_TRIGGER_CHANNEL, node_id):
        async def passthrough() -> Dict[str, Any]:
            return context

        result = await step_runner.run("manual-trigger", passthrough)

    logger.info("[Manual Trigger] Fired", node_id=node_id)
    return result


async def handle_google_form_trigger(
    *,
    data: Dict[str, Any],
    node_id: str,
    context: Dict[str, Any],
    step_runner: StepRunner,
    publisher: RunStatusPublisher,
) -> Dict[str, Any]:
    """Handle Google Form trigger node execution.

    The form submission route seeds ``googleFormPayload`` into the initial
    context; this node exposes it to later nodes as
    ``context[<variables or "googleForm">]["payload"]``.
    """
    async with track_status(publisher, GOOGLE_FORM_TRIGGER_CHANNEL, node_id):
        params = parse_node_params(NodeType.GOOGLE_FORM_TRIGGER, data, node_id)
        variable_name = params.variable_name or "googleForm"

        async def extract_payload() -> Dict[str, Any]:
            return {
                **context,
                variable_name: {
                    "payload": context.get("googleFormPayload") or {},
                },
            }

        result = await step_runner.run("google-form-trigger", extract_payload)

    logger.info("[Google Form Trigger] Payload extracted", node_id=node_id,
                variable=variable_name)
    return result


async def handle_stripe_trigger(
    *,
    data: Dict[str, Any],
    node_id: str,
    context: Dict[str, Any],
    step_runner: StepRunner,
    publisher: RunStatusPublisher,
) -> Dict[str, Any]:
    """Handle Stripe trigger node execution.

    The Stripe webhook route seeds ``stripePayload`` into the initial context.
    Later nodes read ``context["stripe"]``: the raw payload plus its event type
    and data, taken from the top level or from a nested ``event`` object.
    """
    async with track_status(publisher, STRIPE_TRIGGER_CHANNEL, node_id):
        parse_node_params(NodeType.STRIPE_TRIGGER, data, node_id)

        async def extract_event() -> Dict[str, Any]:
            payload = context.get("stripePayload") or {}
            nested = payload.get("event") or {}
            return {
                **context,
                "stripe": {
                    "payload": payload,
                    "event": payload.get("type") or nested.get("type"),
                    "data": payload.get("data") or nested.get("data"),
                },
            }

        result = await step_runner.run("stripe-trigger", extract_event)

    logger.info("[Stripe Trigger] Event extracted", node_id=node_id,
                stripe_event=result["stripe"]["event"])
    return result
