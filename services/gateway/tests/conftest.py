import os
import copy
from unittest.mock import Mock

import pytest

# Config is initialized at import time, so set the environment at top level.
os.environ.setdefault("LOG_CONFIG_PATH", "/tmp/failover-gateway-missing-logging.yml")
os.environ.setdefault("ROUTING_CONFIG_PATH", "/tmp/failover-gateway-missing-routing.yml")
os.environ.setdefault("CONTENT_STORE_BACKEND", "local")

WEB_ENDPOINT = "http://web-1.internal"
SORRY_HTML = "<html><body><h1>Sorry, we are down for maintenance</h1></body></html>"

BASE_ROUTING = {
    "target_groups": [
        {
            "id": "web",
            "target_type": "instance",
            "health_check": {
                "path": "/",
                "interval": 30,
                "timeout": 5,
                "healthy_threshold": 2,
                "unhealthy_threshold": 2,
            },
            "targets": [{"id": "web-1", "endpoint": WEB_ENDPOINT}],
        },
        {
            "id": "sorry",
            "target_type": "function",
            "targets": [
                {
                    "id": "sorry-fn",
                    "content": {"container_id": "sorry-bucket", "object_key": "index.html"},
                }
            ],
        },
    ],
    "rules": [
        {
            "priority": 1,
            "path_patterns": ["/*"],
            "action": {"type": "forward", "target_group": "web"},
        },
        {
            "priority": 2,
            "path_patterns": ["/*"],
            "action": {"type": "forward", "target_group": "sorry"},
        },
        {
            "action": {
                "type": "fixed_response",
                "status_code": 404,
                "content_type": "text/plain",
                "message_body": "Not Found",
            }
        },
    ],
}


@pytest.fixture
def routing_doc():
    """A fresh copy of the two-group failover routing document."""
    return copy.deepcopy(BASE_ROUTING)


@pytest.fixture
def sorry_store():
    """Content store mock holding the fallback page."""
    store = Mock()
    store.get.return_value = SORRY_HTML.encode("utf-8")
    return store


@pytest.fixture
def sorry_html():
    return SORRY_HTML


@pytest.fixture
def web_endpoint():
    return WEB_ENDPOINT
