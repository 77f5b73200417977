"""Tests for the HTTP_REQUEST / WEBHOOK executor against a mock transport."""

import asyncio
import json

import httpx
import pytest

from nodeflow.constants import HTTP_REQUEST_CHANNEL, WEBHOOK_CHANNEL, NodeType
from nodeflow.services.execution import (
    HttpRequestError,
    NodeConfigurationError,
    TransientHttpError,
)
from nodeflow.services.handlers import HttpRequestExecutor


@pytest.fixture
def runner(make_step_runner):
    return make_step_runner("run-http")


def executor_for(handler, node_type=NodeType.HTTP_REQUEST, channel=HTTP_REQUEST_CHANNEL,
                 **kwargs):
    return HttpRequestExecutor(node_type, channel, transport=httpx.MockTransport(handler), **kwargs)


async def call(executor, data, runner, publisher, context=None, node_id="http-1"):
    return await executor(
        data=data,
        node_id=node_id,
        context=context if context is not None else {"seed": True},
        step_runner=runner,
        publisher=publisher,
    )


class TestSuccess:
    async def test_json_response_merged_into_context(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(200, json={"id": 7})

        result = await call(executor_for(http_handler),
                            {"endpoint": "https://api.example.com/x", "method": "GET"},
                            runner, publisher)

        assert result == {
            "seed": True,
            "httpResponse": {"status": 200, "statusText": "OK", "data": {"id": 7}},
        }
        assert http_handler.requests[0].method == "GET"
        assert str(http_handler.requests[0].url) == "https://api.example.com/x"

    async def test_text_response_kept_as_text(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(200, text="plain body")
        result = await call(executor_for(http_handler), {"endpoint": "https://e.x"}, runner, publisher)
        assert result["httpResponse"]["data"] == "plain body"

    async def test_method_defaults_to_get_and_is_upper_cased(self, http_handler, runner, publisher):
        await call(executor_for(http_handler), {"endpoint": "https://e.x"}, runner, publisher,
                   node_id="a")
        await call(executor_for(http_handler), {"endpoint": "https://e.x", "method": "delete"},
                   runner, publisher, node_id="b")
        assert [r.method for r in http_handler.requests] == ["GET", "DELETE"]

    async def test_json_string_body_sent_as_json(self, http_handler, runner, publisher):
        await call(executor_for(http_handler),
                   {"endpoint": "https://e.x", "method": "POST", "body": '{"name": "ada"}'},
                   runner, publisher)
        request = http_handler.requests[0]
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"name": "ada"}

    async def test_json_null_body_sent_as_literal_null(self, http_handler, runner, publisher):
        await call(executor_for(http_handler),
                   {"endpoint": "https://e.x", "method": "POST", "body": "null"},
                   runner, publisher)
        request = http_handler.requests[0]
        assert request.content == b"null"
        assert request.headers["content-type"] == "application/json"

    async def test_mapping_body_sent_as_json(self, http_handler, runner, publisher):
        await call(executor_for(http_handler),
                   {"endpoint": "https://e.x", "method": "PUT", "body": {"n": 1}},
                   runner, publisher)
        assert json.loads(http_handler.requests[0].content) == {"n": 1}

    async def test_non_json_body_sent_as_text(self, http_handler, runner, publisher):
        await call(executor_for(http_handler),
                   {"endpoint": "https://e.x", "method": "POST", "body": "hello {name"},
                   runner, publisher)
        request = http_handler.requests[0]
        assert request.content == b"hello {name"
        assert request.headers["content-type"].startswith("text/plain")

    async def test_body_ignored_for_get(self, http_handler, runner, publisher):
        await call(executor_for(http_handler),
                   {"endpoint": "https://e.x", "method": "GET", "body": '{"a": 1}'},
                   runner, publisher)
        assert http_handler.requests[0].content == b""

    async def test_variables_nests_response(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(201, json={"ok": 1})
        result = await call(executor_for(http_handler),
                            {"endpoint": "https://e.x", "variables": "created"},
                            runner, publisher)
        assert "httpResponse" not in result
        assert result["created"]["httpResponse"]["status"] == 201

    async def test_status_published_on_node_family_channel(self, http_handler, runner,
                                                           publisher, broadcaster):
        await call(executor_for(http_handler, NodeType.WEBHOOK, WEBHOOK_CHANNEL),
                   {"endpoint": "https://e.x"}, runner, publisher)
        assert broadcaster.statuses(WEBHOOK_CHANNEL, "http-1") == ["loading", "success"]
        assert broadcaster.statuses(HTTP_REQUEST_CHANNEL) == []


class TestFailure:
    async def test_error_status_is_fatal(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(500, json={"error": "boom"})

        with pytest.raises(HttpRequestError) as exc_info:
            await call(executor_for(http_handler), {"endpoint": "https://e.x"}, runner, publisher)

        message = str(exc_info.value)
        assert "500" in message
        assert "boom" in message
        assert exc_info.value.status == 500
        assert exc_info.value.body == {"error": "boom"}
        assert len(http_handler.requests) == 1

    async def test_missing_endpoint_makes_no_request(self, http_handler, runner, publisher,
                                                     broadcaster):
        with pytest.raises(NodeConfigurationError, match="endpoint"):
            await call(executor_for(http_handler), {"method": "GET"}, runner, publisher)
        assert http_handler.requests == []
        assert broadcaster.statuses(HTTP_REQUEST_CHANNEL) == ["loading", "error"]

    async def test_blank_endpoint_treated_as_missing(self, http_handler, runner, publisher):
        with pytest.raises(NodeConfigurationError):
            await call(executor_for(http_handler), {"endpoint": "   "}, runner, publisher)

    async def test_unsupported_method_rejected(self, http_handler, runner, publisher):
        with pytest.raises(NodeConfigurationError, match="method"):
            await call(executor_for(http_handler), {"endpoint": "https://e.x", "method": "BREW"},
                       runner, publisher)
        assert http_handler.requests == []

    async def test_timeout_is_fatal_by_default(self, runner, publisher):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(HttpRequestError, match="timed out"):
            await call(executor_for(handler), {"endpoint": "https://e.x"}, runner, publisher)

    async def test_slow_response_bounded_by_timeout(self, runner, publisher):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        with pytest.raises(HttpRequestError, match="timed out after 0.05 seconds"):
            await call(executor_for(handler, timeout=0.05), {"endpoint": "https://e.x"},
                       runner, publisher)

    async def test_network_error_is_fatal_by_default(self, runner, publisher):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(HttpRequestError, match="connection refused"):
            await call(executor_for(handler), {"endpoint": "https://e.x"}, runner, publisher)


class TestRetryTransient:
    async def test_server_error_retried_when_enabled(self, http_handler, runner, publisher):
        responses = iter([httpx.Response(503), httpx.Response(200, json={"id": 1})])
        http_handler.respond = lambda request: next(responses)

        result = await call(executor_for(http_handler, retry_transient=True),
                            {"endpoint": "https://e.x"}, runner, publisher)

        assert result["httpResponse"]["data"] == {"id": 1}
        assert len(http_handler.requests) == 2

    async def test_client_error_still_fatal_when_enabled(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(404, json={"error": "missing"})

        with pytest.raises(HttpRequestError):
            await call(executor_for(http_handler, retry_transient=True),
                       {"endpoint": "https://e.x"}, runner, publisher)
        assert len(http_handler.requests) == 1

    async def test_exhausted_retries_raise_transient_error(self, http_handler, runner, publisher):
        http_handler.respond = lambda request: httpx.Response(502)

        with pytest.raises(TransientHttpError):
            await call(executor_for(http_handler, retry_transient=True),
                       {"endpoint": "https://e.x"}, runner, publisher)
        assert len(http_handler.requests) == 3

    async def test_slow_response_retried_when_enabled(self, runner, publisher):
        calls = []

        async def handler(request):
            calls.append(request)
            await asyncio.sleep(1)
            return httpx.Response(200)

        with pytest.raises(TransientHttpError, match="timed out"):
            await call(executor_for(handler, timeout=0.05, retry_transient=True),
                       {"endpoint": "https://e.x"}, runner, publisher)
        assert len(calls) == 3
