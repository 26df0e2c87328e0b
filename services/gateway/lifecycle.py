"""
Where: services/gateway/lifecycle.py
What: Builds the routing table, health tracker and router; owns the HTTP clients.
Why: An invalid routing table must stop the process before it accepts traffic.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from services.common.core.http_client import HttpClientFactory

from .config import GatewayConfig
from .models.routing import FallbackContent
from .services.backend_forwarder import BackendForwarder
from .services.content_store import ContentStore, LocalContentStore, S3ContentStore
from .services.fallback_responder import FallbackResponder
from .services.health_probe import HttpHealthProbe
from .services.health_tracker import TargetHealthTracker
from .services.router import Router
from .services.routing_table import RoutingTable

logger = logging.getLogger("gateway.main")


def create_content_store(gateway_config: GatewayConfig) -> ContentStore:
    if gateway_config.CONTENT_STORE_BACKEND == "local":
        logger.info("Using local content store at %s", gateway_config.LOCAL_CONTENT_ROOT)
        return LocalContentStore(gateway_config.LOCAL_CONTENT_ROOT)
    return S3ContentStore(
        region=gateway_config.AWS_REGION,
        endpoint_url=gateway_config.S3_ENDPOINT,
        timeout=gateway_config.STORAGE_READ_TIMEOUT,
    )


def default_fallback_content(gateway_config: GatewayConfig) -> Optional[FallbackContent]:
    """Fallback page named by S3_BUCKET_NAME / HTML_FILE_KEY, if both are set."""
    if gateway_config.S3_BUCKET_NAME and gateway_config.HTML_FILE_KEY:
        return FallbackContent(
            container_id=gateway_config.S3_BUCKET_NAME,
            object_key=gateway_config.HTML_FILE_KEY,
        )
    return None


@asynccontextmanager
async def manage_lifespan(app: FastAPI, gateway_config: GatewayConfig) -> AsyncIterator[None]:
    """
    Manage application lifecycle.

    A ConfigurationError escapes from here, so the server never starts
    accepting traffic with an invalid routing table.
    """
    table = RoutingTable.from_file(gateway_config.ROUTING_CONFIG_PATH)

    factory = HttpClientFactory(gateway_config)
    factory.configure_global_settings()
    forward_client = factory.create_forward_client(gateway_config.BACKEND_FORWARD_TIMEOUT)
    probe_client = factory.create_probe_client()

    tracker: Optional[TargetHealthTracker] = None
    try:
        tracker = TargetHealthTracker(HttpHealthProbe(probe_client))
        router = Router(
            table=table,
            tracker=tracker,
            forwarder=BackendForwarder(forward_client, gateway_config.BACKEND_FORWARD_TIMEOUT),
            fallback=FallbackResponder(
                create_content_store(gateway_config), gateway_config.STORAGE_READ_TIMEOUT
            ),
            default_content=default_fallback_content(gateway_config),
        )
        router.register_targets()
        await tracker.start()

        app.state.router = router
        app.state.health_tracker = tracker

        logger.info(
            "Gateway initialized with shared resources.",
            extra={"listener_port": gateway_config.LISTENER_PORT},
        )
        yield
    finally:
        if tracker:
            await tracker.stop()

        logger.info("Gateway shutting down, closing http clients.")
        await forward_client.aclose()
        await probe_client.aclose()
