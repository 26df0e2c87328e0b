"""
Gateway configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Literal

from pydantic import Field
from services.common.core.config import BaseAppConfig


class GatewayConfig(BaseAppConfig):
    """
    Configuration management for the Gateway service.
    """

    # Listener
    LISTENER_HOST: str = Field(default="0.0.0.0", description="Listen address")
    LISTENER_PORT: int = Field(default=80, ge=1, le=65535, description="Listen port")
    UVICORN_WORKERS: int = Field(default=1, ge=1, description="Number of worker processes")

    # Routing definition (rules + target groups)
    ROUTING_CONFIG_PATH: str = Field(
        default="/app/config/routing.yml", description="Routing definition file path"
    )

    # Per-call timeouts
    BACKEND_FORWARD_TIMEOUT: float = Field(
        default=60.0, gt=0, description="Timeout for a forwarded backend request (seconds)"
    )
    STORAGE_READ_TIMEOUT: float = Field(
        default=5.0, gt=0, description="Timeout for a fallback page read (seconds)"
    )

    # Fallback content store
    CONTENT_STORE_BACKEND: Literal["s3", "local"] = Field(
        default="s3", description="Where fallback pages are read from"
    )
    LOCAL_CONTENT_ROOT: str = Field(
        default="/app/content", description="Root directory for the local content store"
    )
    S3_BUCKET_NAME: str = Field(default="", description="Default fallback page bucket")
    HTML_FILE_KEY: str = Field(default="", description="Default fallback page object key")
    S3_ENDPOINT: str = Field(default="", description="S3-compatible endpoint URL (empty: AWS)")
    AWS_REGION: str = Field(default="ap-northeast-1", description="Region for the S3 client")

    # Admin endpoints (empty prefix disables them)
    ADMIN_PATH_PREFIX: str = Field(default="/_gateway", description="Admin endpoint prefix")

    # FastAPI settings
    root_path: str = Field(default="", description="API root path (for proxy)")

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = GatewayConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
