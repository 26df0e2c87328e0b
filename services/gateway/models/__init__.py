"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .alb import ALBTargetEvent, ALBTargetResponse
from .http import GatewayRequest, GatewayResponse
from .routing import (
    FallbackContent,
    FixedResponseAction,
    ForwardAction,
    HealthCheckSpec,
    RoutingConfig,
    RuleSpec,
    TargetGroupSpec,
    TargetSpec,
    TargetType,
    UnavailablePolicy,
)
from .target_health import HealthReason, TargetHealth, TargetState

__all__ = [
    "ALBTargetEvent",
    "ALBTargetResponse",
    "GatewayRequest",
    "GatewayResponse",
    "FallbackContent",
    "FixedResponseAction",
    "ForwardAction",
    "HealthCheckSpec",
    "RoutingConfig",
    "RuleSpec",
    "TargetGroupSpec",
    "TargetSpec",
    "TargetType",
    "UnavailablePolicy",
    "HealthReason",
    "TargetHealth",
    "TargetState",
]
