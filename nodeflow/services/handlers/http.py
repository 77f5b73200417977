"""HTTP node handler - shared by HTTP_REQUEST and WEBHOOK nodes."""

import asyncio
import json
from typing import Any, Dict, Optional

import httpx

from nodeflow.constants import HTTP_BODY_METHODS, NodeType
from nodeflow.core.logging import get_logger
from nodeflow.models import HttpRequestParams
from nodeflow.services.execution.exceptions import (
    HttpRequestError,
    NodeConfigurationError,
    TransientHttpError,
)
from nodeflow.services.execution.steps import StepRunner
from nodeflow.services.status_broadcaster import RunStatusPublisher, track_status
from .base import parse_node_params

logger = get_logger(__name__)


def _build_body(body: Any) -> Dict[str, Any]:
    """Request kwargs for a body: JSON when it parses, raw text otherwise."""
    if isinstance(body, (dict, list)):
        return {"json": body}
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return {
            "content": body,
            "headers": {"Content-Type": "text/plain; charset=utf-8"},
        }
    if parsed is None:
        # httpx sends no body for json=None
        return {"content": b"null", "headers": {"Content-Type": "application/json"}}
    return {"json": parsed}


def _extract_response_data(response: httpx.Response) -> Any:
    """Parse the body as JSON when the content type says so, else text."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            logger.warning("[HTTP Request] Response declared JSON but did not parse",
                           url=str(response.url))
    return response.text


class HttpRequestExecutor:
    """Handle HTTP request node execution.

    Issues one HTTP call inside one step and merges
    ``{"httpResponse": {"status", "statusText", "data"}}`` into the context
    (nested under ``variables`` when the node sets it).

    Failures are fatal by default. With ``retry_transient`` set, timeouts,
    network errors and 5xx responses raise ``TransientHttpError`` so the step
    runner attempts the call again.
    """

    def __init__(self, node_type: NodeType, channel: str, timeout: float = 30.0,
                 retry_transient: bool = False,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.node_type = node_type
        self.channel = channel
        self.timeout = timeout
        self.retry_transient = retry_transient
        self.transport = transport

    async def __call__(
        self,
        *,
        data: Dict[str, Any],
        node_id: str,
        context: Dict[str, Any],
        step_runner: StepRunner,
        publisher: RunStatusPublisher,
    ) -> Dict[str, Any]:
        async with track_status(publisher, self.channel, node_id):
            params: HttpRequestParams = parse_node_params(self.node_type, data, node_id)
            if not params.endpoint:
                raise NodeConfigurationError(node_id, "HTTP endpoint is not configured")

            async def request() -> Dict[str, Any]:
                http_response = await self._send(node_id, params)
                if params.variable_name:
                    return {**context, params.variable_name: {"httpResponse": http_response}}
                return {**context, "httpResponse": http_response}

            return await step_runner.run(f"http-request-{node_id}", request)

    async def _send(self, node_id: str, params: HttpRequestParams) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"method": params.method, "url": params.endpoint}
        if params.method in HTTP_BODY_METHODS and params.body not in (None, ""):
            kwargs.update(_build_body(params.body))

        logger.info("[HTTP Request] Executing", node_id=node_id,
                    method=params.method, url=params.endpoint)

        try:
            # httpx timeouts bound each phase; the deadline bounds the whole call
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.request(**kwargs)
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.error("HTTP request timed out", node_id=node_id, url=params.endpoint)
            self._fail(f"HTTP request timed out after {self.timeout} seconds: {str(e) or type(e).__name__}",
                       transient=True)
        except httpx.HTTPError as e:
            logger.error("HTTP request failed", node_id=node_id, error=str(e))
            self._fail(f"HTTP request failed: {str(e) or type(e).__name__}", transient=True)

        response_data = _extract_response_data(response)

        if not response.is_success:
            logger.error("HTTP request returned error status", node_id=node_id,
                         status=response.status_code, url=params.endpoint)
            self._fail(
                f"HTTP request failed: {response.status_code} {response.reason_phrase}. "
                f"{json.dumps(response_data, default=str)}",
                transient=response.status_code >= 500,
                status=response.status_code,
                status_text=response.reason_phrase,
                body=response_data,
            )

        return {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "data": response_data,
        }

    def _fail(self, message: str, transient: bool, **details) -> None:
        if transient and self.retry_transient:
            raise TransientHttpError(message, **details)
        raise HttpRequestError(message, **details)
