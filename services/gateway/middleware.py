"""
Where: services/gateway/middleware.py
What: Trace header handling and the per-request access log.
Why: Every response, including fixed and fallback ones, carries X-Amzn-Trace-Id.
"""

import logging
import time
from typing import Optional

from fastapi import Request

from services.common.core.request_context import clear_trace_id, generate_request_id, set_trace_id
from services.common.core.trace import TraceId

logger = logging.getLogger("gateway.access")


def _adopt_trace_id(header: Optional[str]) -> str:
    """Bind the caller's trace id to this request, or start a new trace."""
    if header:
        try:
            return set_trace_id(header)
        except ValueError as exc:
            logger.warning(f"Ignoring malformed X-Amzn-Trace-Id {header!r}: {exc}")
    return set_trace_id(str(TraceId.generate()))


async def trace_propagation_middleware(request: Request, call_next):
    started = time.perf_counter()
    trace_id = _adopt_trace_id(request.headers.get("X-Amzn-Trace-Id"))
    request_id = generate_request_id()

    try:
        response = await call_next(request)
        response.headers["X-Amzn-Trace-Id"] = trace_id

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "trace_id": trace_id,
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                # Set by the catch-all route; absent for admin endpoints.
                "rule_priority": getattr(request.state, "rule_priority", None),
                "user_agent": request.headers.get("user-agent"),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
    finally:
        clear_trace_id()
