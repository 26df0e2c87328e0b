"""
Routing domain models.

Defines the structure of routing.yml (rules and target groups) as Pydantic
models. Cross-object invariants (unique priorities, a single default rule,
references between rules and groups) are checked by the RoutingTable loader;
the models here validate each object on its own.
"""

import enum
import re
from typing import Annotated, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_PRIORITY = 1
MAX_PRIORITY = 50000
MAX_PATH_PATTERN_LENGTH = 128

_SUCCESS_CODE_TOKEN = re.compile(r"^(\d{3})(?:-(\d{3}))?$")


class TargetType(str, enum.Enum):
    INSTANCE = "instance"
    FUNCTION = "function"


class UnavailablePolicy(str, enum.Enum):
    """What a forward rule does when its group has no HEALTHY target."""

    # Skip to the next matching rule (usually the fallback function group).
    NEXT_RULE = "next_rule"
    # Forward to a registered target regardless of its health.
    FAIL_OPEN = "fail_open"
    # Answer 502 immediately.
    REJECT = "reject"


class FallbackContent(BaseModel):
    """Location of the fallback page in the content store."""

    model_config = ConfigDict(frozen=True)

    container_id: str = Field(..., min_length=1, description="Bucket name")
    object_key: str = Field(..., min_length=1, description="Object key")


class HealthCheckSpec(BaseModel):
    """Health check settings for an INSTANCE target group."""

    model_config = ConfigDict(frozen=True)

    path: str = "/"
    interval: float = Field(default=30.0, gt=0)
    timeout: float = Field(default=5.0, gt=0)
    healthy_threshold: int = Field(default=5, ge=1)
    unhealthy_threshold: int = Field(default=2, ge=1)
    success_codes: str = "200"

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("health check path must start with '/'")
        return value

    @field_validator("success_codes")
    @classmethod
    def _success_codes_parse(cls, value: str) -> str:
        parse_success_codes(value)
        return value

    @model_validator(mode="after")
    def _timeout_below_interval(self) -> "HealthCheckSpec":
        if self.timeout >= self.interval:
            raise ValueError("health check timeout must be shorter than the interval")
        return self

    def accepts(self, status_code: int) -> bool:
        return status_code in parse_success_codes(self.success_codes)


def parse_success_codes(value: str) -> FrozenSet[int]:
    """
    Parse a success code matcher.

    Accepts "200", "200,302" and "200-299" (or a mix of them).

    Raises:
        ValueError: on a malformed token or a code outside 100..599
    """
    codes = set()
    for token in value.split(","):
        token = token.strip()
        match = _SUCCESS_CODE_TOKEN.match(token)
        if not match:
            raise ValueError(f"invalid success code token: {token!r}")
        start = int(match.group(1))
        end = int(match.group(2) or start)
        if not 100 <= start <= end <= 599:
            raise ValueError(f"invalid success code range: {token!r}")
        codes.update(range(start, end + 1))
    return frozenset(codes)


class TargetSpec(BaseModel):
    """
    A single target.

    INSTANCE targets carry an endpoint (base URL); the FUNCTION target may
    carry the fallback content location.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    endpoint: Optional[str] = None
    content: Optional[FallbackContent] = None

    @field_validator("endpoint")
    @classmethod
    def _endpoint_is_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not value.startswith(("http://", "https://")):
            raise ValueError("endpoint must start with http:// or https://")
        return value.rstrip("/")


class TargetGroupSpec(BaseModel):
    """A named set of targets sharing a type and a health check."""

    id: str = Field(..., min_length=1)
    target_type: TargetType = TargetType.INSTANCE
    targets: List[TargetSpec] = Field(default_factory=list)
    health_check: Optional[HealthCheckSpec] = None

    @model_validator(mode="after")
    def _check_variant(self) -> "TargetGroupSpec":
        if self.target_type is TargetType.FUNCTION:
            if len(self.targets) != 1:
                raise ValueError("a function target group must have exactly one target")
            if self.health_check is not None:
                raise ValueError("function target groups are not health checked")
        else:
            if self.health_check is None:
                self.health_check = HealthCheckSpec()
            for target in self.targets:
                if target.endpoint is None:
                    raise ValueError(f"instance target {target.id} has no endpoint")
        return self


class ForwardAction(BaseModel):
    type: Literal["forward"] = "forward"
    target_group: str = Field(..., min_length=1)
    on_unavailable: UnavailablePolicy = UnavailablePolicy.NEXT_RULE


class FixedResponseAction(BaseModel):
    type: Literal["fixed_response"] = "fixed_response"
    status_code: int = Field(..., ge=200, le=599)
    content_type: str = "text/plain"
    message_body: str = ""


RuleAction = Annotated[Union[ForwardAction, FixedResponseAction], Field(discriminator="type")]


class RuleSpec(BaseModel):
    """
    A routing rule.

    A rule without path_patterns is the default rule.
    """

    priority: Optional[int] = Field(default=None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    path_patterns: Optional[List[str]] = None
    action: RuleAction

    @field_validator("path_patterns")
    @classmethod
    def _patterns_not_empty(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        if not value:
            raise ValueError("path_patterns must not be empty; omit it for the default rule")
        for pattern in value:
            if not pattern or len(pattern) > MAX_PATH_PATTERN_LENGTH:
                raise ValueError(
                    f"path pattern must be 1..{MAX_PATH_PATTERN_LENGTH} characters: {pattern!r}"
                )
        return value

    @property
    def is_default(self) -> bool:
        return self.path_patterns is None


class RoutingConfig(BaseModel):
    """Top level of routing.yml."""

    target_groups: List[TargetGroupSpec] = Field(default_factory=list)
    rules: List[RuleSpec] = Field(default_factory=list)
