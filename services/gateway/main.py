"""
Failover Gateway

Layer-7 gateway that forwards client requests to a primary fleet according to
routing.yml, and serves a fallback "service unavailable" page from object
storage when the fleet cannot take the request.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .api.deps import GatewayRequestDep, HealthTrackerDep, RouterDep
from .config import GatewayConfig, config
from .core.logging_config import setup_logging
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import trace_propagation_middleware
from .models.http import GatewayResponse

logger = logging.getLogger("gateway.main")

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def to_starlette_response(result: GatewayResponse) -> Response:
    """Write a GatewayResponse out, letting Starlette compute the framing."""
    response = Response(content=result.body, status_code=result.status_code)
    for key, value in result.headers:
        if key.lower() == "content-length":
            continue
        response.headers.append(key, value)
    return response


def register_admin_routes(app: FastAPI, prefix: str) -> None:
    @app.get(f"{prefix}/health")
    async def health_check():
        """Gateway liveness."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get(f"{prefix}/targets")
    async def describe_target_health(tracker: HealthTrackerDep, target_group: Optional[str] = None):
        """Health of every INSTANCE target."""
        return {"targets": tracker.describe(target_group)}


def create_app(gateway_config: Optional[GatewayConfig] = None) -> FastAPI:
    gateway_config = gateway_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manage_lifespan(app, gateway_config):
            yield

    app = FastAPI(
        title="Failover Gateway",
        version="1.0.0",
        lifespan=lifespan,
        root_path=gateway_config.root_path,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.middleware("http")(trace_propagation_middleware)
    register_exception_handlers(app)

    prefix = gateway_config.ADMIN_PATH_PREFIX.rstrip("/")
    if prefix:
        register_admin_routes(app, prefix)

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def gateway_handler(request: Request, gateway_request: GatewayRequestDep, router: RouterDep):
        """
        Catch-all route: evaluate the routing table and answer from the chosen
        target, the fallback responder or a fixed response.
        """
        result = await router.handle(gateway_request)
        request.state.rule_priority = result.rule_priority
        return to_starlette_response(result)

    return app


setup_logging(config)
app = create_app()

