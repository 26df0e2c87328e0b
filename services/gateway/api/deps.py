"""
Dependency Injection for Gateway API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..models.http import GatewayRequest
from ..services.health_tracker import TargetHealthTracker
from ..services.router import Router


# ==========================================
# 1. Service Accessors
# ==========================================


def get_router(request: Request) -> Router:
    return request.app.state.router


def get_health_tracker(request: Request) -> TargetHealthTracker:
    return request.app.state.health_tracker


RouterDep = Annotated[Router, Depends(get_router)]
HealthTrackerDep = Annotated[TargetHealthTracker, Depends(get_health_tracker)]


# ==========================================
# 2. Request Conversion
# ==========================================


async def build_gateway_request(request: Request) -> GatewayRequest:
    """
    Snapshot the inbound FastAPI request into an immutable GatewayRequest.
    """
    body = await request.body()
    return GatewayRequest(
        method=request.method,
        path=request.url.path,
        query_string=request.url.query,
        headers=tuple((key.lower(), value) for key, value in request.headers.items()),
        body=body,
        client_ip=request.client.host if request.client else "",
        scheme=request.url.scheme,
        port=request.url.port or (443 if request.url.scheme == "https" else 80),
    )


GatewayRequestDep = Annotated[GatewayRequest, Depends(build_gateway_request)]
