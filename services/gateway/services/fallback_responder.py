"""
Fallback Responder

The always-available FUNCTION target. Reads the fallback page from the content
store on every invocation and returns it with status 503. When the read fails
it answers 500, since at that point the gateway has no other way left to
inform the client.
"""

import asyncio
import logging
from typing import Any, Dict

from ..core.exceptions import StorageReadError, StorageTimeoutError
from ..models.routing import FallbackContent
from .content_store import ContentStore

logger = logging.getLogger("gateway.fallback")


class FallbackResponder:
    def __init__(self, store: ContentStore, timeout: float = 5.0):
        """
        Args:
            store: ContentStore implementation (blocking reads)
            timeout: upper bound for a single read (seconds)
        """
        self.store = store
        self.timeout = timeout

    async def _read(self, content: FallbackContent) -> bytes:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.store.get, content.container_id, content.object_key),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StorageTimeoutError(
                f"Read of {content.object_key} timed out after {self.timeout}s",
                content.container_id,
                content.object_key,
            ) from e

    async def invoke(self, event: Dict[str, Any], content: FallbackContent) -> Dict[str, Any]:
        """
        Serve the fallback page.

        Args:
            event: ALB target event for the request being answered
            content: where the page lives

        Returns:
            Response envelope ({statusCode, headers, body})
        """
        try:
            html_bytes = await self._read(content)
        except StorageReadError as e:
            logger.error(
                "Fallback page could not be retrieved; serving error response",
                extra={
                    "container_id": content.container_id,
                    "object_key": content.object_key,
                    "error_type": type(e).__name__,
                    "error_detail": e.message,
                    "path": event.get("path"),
                },
            )
            return {
                "statusCode": 500,
                "body": f"Error retrieving HTML file: {e.message}",
            }

        return {
            "statusCode": 503,
            "statusDescription": "503 Service Unavailable",
            "headers": {"Content-Type": "text/html"},
            "body": html_bytes.decode("utf-8", errors="replace"),
            "isBase64Encoded": False,
        }
