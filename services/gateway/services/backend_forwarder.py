"""
Backend Forwarder

Relays a client request to an INSTANCE target over HTTP and returns the
backend's answer. Adds the X-Forwarded-* and X-Amzn-Trace-Id headers a load
balancer would add.
"""

import logging
from typing import List, Optional, Tuple

import httpx

from services.common.core.request_context import get_trace_id

from ..core.exceptions import BackendForwardError, BackendTimeoutError
from ..core.utils import strip_hop_by_hop
from ..models.http import GatewayRequest, GatewayResponse
from ..models.routing import TargetSpec

logger = logging.getLogger("gateway.forwarder")

# httpx hands back decoded content, so the framing headers no longer apply.
_RESPONSE_DROP_HEADERS = frozenset({"content-length", "content-encoding"})


def build_forward_headers(request: GatewayRequest, trace_id: Optional[str]) -> List[Tuple[str, str]]:
    headers = [
        (key, value)
        for key, value in strip_hop_by_hop(list(request.headers))
        if key not in ("x-forwarded-for", "x-forwarded-proto", "x-forwarded-port", "content-length")
    ]

    forwarded_for = request.header("x-forwarded-for")
    if request.client_ip:
        forwarded_for = f"{forwarded_for}, {request.client_ip}" if forwarded_for else request.client_ip
    if forwarded_for:
        headers.append(("x-forwarded-for", forwarded_for))
    headers.append(("x-forwarded-proto", request.scheme))
    headers.append(("x-forwarded-port", str(request.port)))

    if trace_id:
        headers = [(k, v) for k, v in headers if k != "x-amzn-trace-id"]
        headers.append(("x-amzn-trace-id", trace_id))
    return headers


class BackendForwarder:
    def __init__(self, client: httpx.AsyncClient, timeout: float = 60.0):
        """
        Args:
            client: Shared httpx.AsyncClient
            timeout: per-request timeout (seconds)
        """
        self.client = client
        self.timeout = timeout

    async def forward(self, request: GatewayRequest, target: TargetSpec) -> GatewayResponse:
        """
        Forward a request to a target.

        Raises:
            BackendTimeoutError: the target did not answer in time
            BackendForwardError: connection or protocol failure
        """
        url = f"{target.endpoint}{request.path}"
        if request.query_string:
            url = f"{url}?{request.query_string}"

        try:
            response = await self.client.request(
                request.method,
                url,
                content=request.body or None,
                headers=build_forward_headers(request, get_trace_id()),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(
                f"Backend request timed out for target '{target.id}'",
                extra={
                    "target_id": target.id,
                    "target_url": url,
                    "timeout": self.timeout,
                    "error_type": type(e).__name__,
                },
            )
            raise BackendTimeoutError(target.id, e, self.timeout) from e
        except httpx.RequestError as e:
            logger.error(
                f"Backend request failed for target '{target.id}'",
                extra={
                    "target_id": target.id,
                    "target_url": url,
                    "error_type": type(e).__name__,
                    "error_detail": str(e),
                },
            )
            raise BackendForwardError(target.id, e) from e

        headers = [
            (key.lower(), value)
            for key, value in strip_hop_by_hop(list(response.headers.multi_items()))
            if key.lower() not in _RESPONSE_DROP_HEADERS
        ]
        return GatewayResponse(
            status_code=response.status_code,
            headers=headers,
            body=response.content,
        )
