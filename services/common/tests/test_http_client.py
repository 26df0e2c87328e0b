from unittest.mock import patch

import httpx

from services.common.core.config import BaseAppConfig
from services.common.core.http_client import HttpClientFactory


class TestHttpClientFactory:
    @patch("httpx.AsyncClient")
    def test_create_async_client_verify_false(self, mock_client):
        """VERIFY_SSL=False should produce client with verify=False"""
        factory = HttpClientFactory(BaseAppConfig(VERIFY_SSL=False))
        factory.create_async_client()

        mock_client.assert_called_once()
        _, kwargs = mock_client.call_args
        assert kwargs["verify"] is False
        assert kwargs["trust_env"] is False

    @patch("httpx.AsyncClient")
    def test_create_async_client_verify_true(self, mock_client):
        factory = HttpClientFactory(BaseAppConfig(VERIFY_SSL=True))
        factory.create_async_client()

        _, kwargs = mock_client.call_args
        assert kwargs["verify"] is True

    @patch("httpx.AsyncClient")
    def test_default_and_override_limits(self, mock_client):
        factory = HttpClientFactory(BaseAppConfig(VERIFY_SSL=True))

        factory.create_async_client()
        limits = mock_client.call_args.kwargs["limits"]
        assert limits.max_keepalive_connections == 20
        assert limits.max_connections == 100

        custom_limits = httpx.Limits(max_connections=500)
        factory.create_async_client(limits=custom_limits)
        assert mock_client.call_args.kwargs["limits"] == custom_limits

    @patch("httpx.AsyncClient")
    def test_forward_client_does_not_follow_redirects(self, mock_client):
        HttpClientFactory(BaseAppConfig()).create_forward_client(12.5)

        kwargs = mock_client.call_args.kwargs
        assert kwargs["timeout"] == 12.5
        assert kwargs["follow_redirects"] is False

    @patch("httpx.AsyncClient")
    def test_probe_client_keeps_no_idle_connections(self, mock_client):
        HttpClientFactory(BaseAppConfig()).create_probe_client()

        limits = mock_client.call_args.kwargs["limits"]
        assert limits.max_keepalive_connections == 0
        assert limits.max_connections == 50

    @patch("urllib3.disable_warnings")
    def test_configure_global_settings_disable_warnings(self, mock_disable):
        HttpClientFactory(BaseAppConfig(VERIFY_SSL=False)).configure_global_settings()

        mock_disable.assert_called_once()

    @patch("urllib3.disable_warnings")
    def test_configure_global_settings_no_disable_warnings(self, mock_disable):
        HttpClientFactory(BaseAppConfig(VERIFY_SSL=True)).configure_global_settings()

        mock_disable.assert_not_called()
