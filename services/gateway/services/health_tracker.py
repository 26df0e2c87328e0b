"""
TargetHealthTracker - per-target liveness for INSTANCE target groups.

Each registered target gets its own probe task that runs every
health_check.interval seconds until the target is deregistered. Request
handling only ever reads the last stored snapshot.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from ..models.routing import HealthCheckSpec, TargetSpec
from ..models.target_health import HealthReason, TargetHealth, TargetState
from .health_probe import ProbeResult

logger = logging.getLogger("gateway.health")

Probe = Callable[[TargetSpec, HealthCheckSpec], Awaitable[ProbeResult]]


@dataclass
class _Registration:
    group_id: str
    target: TargetSpec
    health_check: HealthCheckSpec
    health: TargetHealth = field(default_factory=TargetHealth)
    task: Optional[asyncio.Task] = None


class TargetHealthTracker:
    """
    Health state machine per target, plus live-target selection per group.
    """

    def __init__(self, probe: Probe, clock: Callable[[], float] = time.time):
        self.probe = probe
        self.clock = clock
        self._targets: Dict[str, _Registration] = {}
        # Member ids per group, in registration order.
        self._groups: Dict[str, List[str]] = {}
        self._cursors: Dict[str, Iterator[int]] = {}
        self._running = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, group_id: str, target: TargetSpec, health_check: HealthCheckSpec) -> None:
        """Register a target in INITIAL state; starts probing if the tracker runs."""
        if target.id in self._targets:
            raise ValueError(f"Target already registered: {target.id}")

        registration = _Registration(group_id=group_id, target=target, health_check=health_check)
        self._targets[target.id] = registration
        self._groups.setdefault(group_id, []).append(target.id)
        self._cursors.setdefault(group_id, itertools.count())
        logger.info(
            f"Registered target {target.id} in {group_id}",
            extra={"target_id": target.id, "target_group": group_id, "endpoint": target.endpoint},
        )

        if self._running:
            self._start_probe(registration)

    async def deregister(self, target_id: str) -> None:
        """Stop probing a target and forget its health state."""
        registration = self._targets.pop(target_id, None)
        if registration is None:
            return
        self._groups[registration.group_id].remove(target_id)

        await self._cancel(registration)
        logger.info(
            f"Deregistered target {target_id}",
            extra={"target_id": target_id, "target_group": registration.group_id},
        )

    # ------------------------------------------------------------------
    # Probe loop
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start one probe loop per registered target."""
        self._running = True
        for registration in self._targets.values():
            self._start_probe(registration)
        logger.info(f"Target health tracker started ({len(self._targets)} targets)")

    async def stop(self) -> None:
        """Cancel every probe loop."""
        self._running = False
        for registration in list(self._targets.values()):
            await self._cancel(registration)
        logger.info("Target health tracker stopped")

    def _start_probe(self, registration: _Registration) -> None:
        registration.task = asyncio.create_task(
            self._probe_loop(registration.target.id),
            name=f"health-probe:{registration.target.id}",
        )

    async def _cancel(self, registration: _Registration) -> None:
        task = registration.task
        registration.task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _probe_loop(self, target_id: str) -> None:
        """Periodic execution loop for a single target."""
        while target_id in self._targets:
            registration = self._targets[target_id]
            try:
                await self.probe_target(target_id)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(
                    f"Health probe for {target_id} failed unexpectedly: {e}",
                    extra={"target_id": target_id},
                )
            try:
                await asyncio.sleep(registration.health_check.interval)
            except asyncio.CancelledError:
                break

    async def probe_target(self, target_id: str) -> Optional[TargetHealth]:
        """Run one probe against a target and record its result."""
        registration = self._targets.get(target_id)
        if registration is None:
            return None

        result = await self.probe(registration.target, registration.health_check)
        if self._targets.get(target_id) is not registration:
            # Deregistered (or replaced) while the probe was in flight.
            return None
        if result.detail and not result.success:
            logger.debug(
                f"Health probe failed for {target_id}: {result.detail}",
                extra={"target_id": target_id, "status_code": result.status_code},
            )
        return self.record_probe_result(target_id, result.success, result.reason)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def record_probe_result(
        self, target_id: str, success: bool, reason: Optional[HealthReason] = None
    ) -> Optional[TargetHealth]:
        """
        Apply one probe result to a target's state machine.

        Returns:
            The new snapshot, or None when the target is not registered
        """
        registration = self._targets.get(target_id)
        if registration is None:
            return None

        previous = registration.health
        current = previous.advance(success, registration.health_check, self.clock(), reason)
        registration.health = current

        if current.state is not previous.state:
            log = logger.info if current.state is TargetState.HEALTHY else logger.warning
            log(
                f"Target {target_id} is now {current.state.value}",
                extra={
                    "target_id": target_id,
                    "target_group": registration.group_id,
                    "previous_state": previous.state.value,
                    "state": current.state.value,
                    "reason": current.reason.value if current.reason else None,
                },
            )
        return current

    def get_health(self, target_id: str) -> Optional[TargetHealth]:
        registration = self._targets.get(target_id)
        return registration.health if registration else None

    def members(self, group_id: str) -> List[TargetSpec]:
        return [self._targets[tid].target for tid in self._groups.get(group_id, [])]

    def pick_live(self, group_id: str) -> Optional[TargetSpec]:
        """
        Round-robin over the HEALTHY members of a group.

        Returns:
            A HEALTHY target, or None when the group has none
        """
        healthy = [
            self._targets[tid].target
            for tid in self._groups.get(group_id, [])
            if self._targets[tid].health.state is TargetState.HEALTHY
        ]
        if not healthy:
            return None
        return healthy[next(self._cursors[group_id]) % len(healthy)]

    def pick_any(self, group_id: str) -> Optional[TargetSpec]:
        """Round-robin over every member regardless of health (fail-open)."""
        members = self.members(group_id)
        if not members:
            return None
        return members[next(self._cursors[group_id]) % len(members)]

    def describe(self, group_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Health of every target, optionally limited to one group."""
        rows = []
        for target_id, registration in self._targets.items():
            if group_id is not None and registration.group_id != group_id:
                continue
            health = registration.health
            rows.append(
                {
                    "target_group": registration.group_id,
                    "target_id": target_id,
                    "endpoint": registration.target.endpoint,
                    "state": health.state.value,
                    "reason": health.reason.value if health.reason else None,
                    "consecutive_successes": health.consecutive_successes,
                    "consecutive_failures": health.consecutive_failures,
                    "last_checked_at": health.last_checked_at or None,
                }
            )
        return rows
