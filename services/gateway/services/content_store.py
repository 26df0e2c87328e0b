"""
Content store clients.

Read fallback page bytes from durable storage. Implementations raise the
StorageReadError family so callers never depend on a storage SDK's errors.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol

import boto3
import botocore.config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.exceptions import (
    AccessDeniedError,
    ObjectNotFoundError,
    StorageReadError,
    TransientStorageError,
)

logger = logging.getLogger("gateway.content_store")

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})
_ACCESS_DENIED_CODES = frozenset({"AccessDenied", "AllAccessDisabled", "Forbidden", "403"})


class ContentStore(Protocol):
    """Protocol for blocking object reads."""

    def get(self, container_id: str, object_key: str) -> bytes:
        """
        Raises:
            ObjectNotFoundError, AccessDeniedError, TransientStorageError
        """
        ...


class S3ContentStore:
    """
    S3 (or S3-compatible) object reader built on boto3.

    The client makes exactly one attempt per read; callers decide whether to
    try again on a later request.
    """

    def __init__(
        self,
        region: str,
        endpoint_url: Optional[str] = None,
        timeout: float = 5.0,
        client=None,
    ):
        self.region = region
        self.endpoint_url = endpoint_url or None
        self.timeout = timeout
        self.client = client or self._create_client()

    def _create_client(self):
        s3_config = {"addressing_style": "path"} if self.endpoint_url else {}
        client = boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            config=botocore.config.Config(
                connect_timeout=self.timeout,
                read_timeout=self.timeout,
                retries={"total_max_attempts": 1},
                signature_version="s3v4",
                s3=s3_config,
            ),
        )
        logger.info(f"S3 client initialized (region: {self.region}, endpoint: {self.endpoint_url})")
        return client

    def get(self, container_id: str, object_key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=container_id, Key=object_key)
            return response["Body"].read()
        except ClientError as e:
            raise self._translate(e, container_id, object_key) from e
        except BotoCoreError as e:
            raise TransientStorageError(str(e), container_id, object_key) from e

    @staticmethod
    def _translate(error: ClientError, container_id: str, object_key: str) -> StorageReadError:
        details = error.response.get("Error", {})
        code = str(details.get("Code", ""))
        message = details.get("Message") or str(error)
        if code in _NOT_FOUND_CODES:
            return ObjectNotFoundError(message, container_id, object_key)
        if code in _ACCESS_DENIED_CODES:
            return AccessDeniedError(message, container_id, object_key)
        return TransientStorageError(message, container_id, object_key)


class LocalContentStore:
    """
    Filesystem reader: <root>/<container_id>/<object_key>.

    Used for local runs without object storage.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def get(self, container_id: str, object_key: str) -> bytes:
        container = (self.root / container_id).resolve()
        path = (container / object_key).resolve()
        if not path.is_relative_to(container) or not container.is_relative_to(self.root):
            raise AccessDeniedError(
                f"Object key escapes the content root: {object_key}", container_id, object_key
            )
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise ObjectNotFoundError(
                "The specified key does not exist.", container_id, object_key
            ) from e
        except PermissionError as e:
            raise AccessDeniedError("Access Denied", container_id, object_key) from e
        except OSError as e:
            raise TransientStorageError(str(e), container_id, object_key) from e
