import logging

import httpx
import urllib3

from .config import BaseAppConfig

logger = logging.getLogger(__name__)


class HttpClientFactory:
    """
    HTTP Client Factory for centralized SSL verification handling.

    The gateway keeps two clients: one for forwarding client traffic and one
    for health probes, so probe connections never compete with request traffic
    for pooled connections.
    """

    def __init__(self, config: BaseAppConfig):
        self.config = config

    def configure_global_settings(self):
        """
        Configure global settings like urllib3 warnings.
        """
        if not self.config.VERIFY_SSL:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            logger.debug("InsecureRequestWarning disabled (VERIFY_SSL=False)")

    def create_async_client(self, **kwargs) -> httpx.AsyncClient:
        """
        Create an httpx.AsyncClient with configured SSL verification.

        Args:
            **kwargs: Additional arguments for httpx.AsyncClient
        """
        verify = kwargs.pop("verify", None)
        if verify is None:
            verify = self.config.VERIFY_SSL

        if "limits" not in kwargs:
            kwargs["limits"] = httpx.Limits(max_keepalive_connections=20, max_connections=100)
        # Backends live on the internal network; host proxy settings must not apply.
        kwargs.setdefault("trust_env", False)

        return httpx.AsyncClient(verify=verify, **kwargs)

    def create_forward_client(self, timeout: float) -> httpx.AsyncClient:
        """Client used to relay client requests to backend targets."""
        # Redirects are relayed to the client untouched.
        return self.create_async_client(timeout=timeout, follow_redirects=False)

    def create_probe_client(self) -> httpx.AsyncClient:
        """Client used by health probes. Per-probe timeouts are passed on each call."""
        return self.create_async_client(
            limits=httpx.Limits(max_keepalive_connections=0, max_connections=50),
            follow_redirects=False,
        )
