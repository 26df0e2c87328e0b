"""
Target health models.

TargetHealth is an immutable snapshot. The tracker replaces a target's snapshot
as a whole on every probe result, so a reader always sees a consistent set of
counters.
"""

import enum
from dataclasses import dataclass, replace
from typing import Optional

from .routing import HealthCheckSpec


class TargetState(str, enum.Enum):
    INITIAL = "initial"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthReason(str, enum.Enum):
    INITIAL_HEALTH_CHECKING = "Elb.InitialHealthChecking"
    RESPONSE_CODE_MISMATCH = "Target.ResponseCodeMismatch"
    TIMEOUT = "Target.Timeout"
    FAILED_HEALTH_CHECKS = "Target.FailedHealthChecks"


@dataclass(frozen=True)
class TargetHealth:
    state: TargetState = TargetState.INITIAL
    consecutive_successes: int = 0
    consecutive_failures: int = 0
    reason: Optional[HealthReason] = HealthReason.INITIAL_HEALTH_CHECKING
    last_checked_at: float = 0.0

    def advance(
        self,
        success: bool,
        spec: HealthCheckSpec,
        checked_at: float,
        reason: Optional[HealthReason] = None,
    ) -> "TargetHealth":
        """
        Return the snapshot that follows one probe result.

        A streak in one direction resets the other to zero. The state flips
        once the streak reaches the threshold for the opposite state.
        """
        if success:
            successes = self.consecutive_successes + 1
            state = self.state
            if state is not TargetState.HEALTHY and successes >= spec.healthy_threshold:
                state = TargetState.HEALTHY
            return replace(
                self,
                state=state,
                consecutive_successes=successes,
                consecutive_failures=0,
                reason=None if state is TargetState.HEALTHY else self.reason,
                last_checked_at=checked_at,
            )

        failures = self.consecutive_failures + 1
        state = self.state
        if state is not TargetState.UNHEALTHY and failures >= spec.unhealthy_threshold:
            state = TargetState.UNHEALTHY
        if state is TargetState.HEALTHY:
            next_reason = None
        elif state is TargetState.INITIAL:
            next_reason = self.reason
        else:
            next_reason = reason or HealthReason.FAILED_HEALTH_CHECKS
        return replace(
            self,
            state=state,
            consecutive_successes=0,
            consecutive_failures=failures,
            reason=next_reason,
            last_checked_at=checked_at,
        )
