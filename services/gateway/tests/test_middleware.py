import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import Request, Response

from services.common.core import request_context
from services.gateway.middleware import trace_propagation_middleware


def _request(headers=None) -> Request:
    request = MagicMock(spec=Request)
    request.headers = headers or {}
    request.method = "GET"
    request.url.path = "/test"
    request.client = MagicMock()
    request.client.host = "127.0.0.1"
    request.state = MagicMock()
    return request


@pytest.mark.asyncio
async def test_generates_trace_and_request_id():
    captured = {}

    async def call_next(req):
        captured["request_id"] = request_context.get_request_id()
        captured["trace_id"] = request_context.get_trace_id()
        return Response(status_code=200)

    request_context.clear_trace_id()
    response = await trace_propagation_middleware(_request(), call_next)

    assert str(uuid.UUID(captured["request_id"])) == captured["request_id"]
    assert response.headers["X-Amzn-Trace-Id"] == captured["trace_id"]
    assert captured["trace_id"].startswith("Root=1-")


@pytest.mark.asyncio
async def test_incoming_trace_id_is_kept():
    header = "Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1"

    async def call_next(req):
        return Response(status_code=200)

    response = await trace_propagation_middleware(
        _request({"X-Amzn-Trace-Id": header}), call_next
    )

    assert response.headers["X-Amzn-Trace-Id"] == header


@pytest.mark.asyncio
async def test_context_is_cleared_after_request():
    async def call_next(req):
        return Response(status_code=200)

    await trace_propagation_middleware(_request(), call_next)

    assert request_context.get_trace_id() is None
    assert request_context.get_request_id() is None


@pytest.mark.asyncio
async def test_context_is_cleared_when_handler_raises():
    async def call_next(req):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await trace_propagation_middleware(_request(), call_next)

    assert request_context.get_trace_id() is None
