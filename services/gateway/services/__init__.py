"""
Services package.

Provides routing, health tracking and the integrations with backends and storage.
"""

from .backend_forwarder import BackendForwarder
from .content_store import ContentStore, LocalContentStore, S3ContentStore
from .fallback_responder import FallbackResponder
from .health_probe import HttpHealthProbe
from .health_tracker import TargetHealthTracker
from .router import Router
from .routing_table import RouteDecision, RoutingTable

__all__ = [
    "BackendForwarder",
    "ContentStore",
    "LocalContentStore",
    "S3ContentStore",
    "FallbackResponder",
    "HttpHealthProbe",
    "TargetHealthTracker",
    "Router",
    "RouteDecision",
    "RoutingTable",
]
