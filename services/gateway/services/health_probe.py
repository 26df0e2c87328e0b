"""
HTTP health probe.

Sends GET <endpoint><health_check.path> and classifies the outcome.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..models.routing import HealthCheckSpec, TargetSpec
from ..models.target_health import HealthReason

logger = logging.getLogger("gateway.health")


@dataclass(frozen=True)
class ProbeResult:
    success: bool
    reason: Optional[HealthReason] = None
    status_code: Optional[int] = None
    detail: str = ""


class HttpHealthProbe:
    def __init__(self, client: httpx.AsyncClient):
        """
        Args:
            client: Shared httpx.AsyncClient reserved for probes
        """
        self.client = client

    async def __call__(self, target: TargetSpec, spec: HealthCheckSpec) -> ProbeResult:
        url = f"{target.endpoint}{spec.path}"
        try:
            response = await self.client.get(url, timeout=spec.timeout)
        except httpx.TimeoutException as e:
            return ProbeResult(False, HealthReason.TIMEOUT, detail=f"{type(e).__name__}: {e}")
        except httpx.RequestError as e:
            # Unreachable targets are probed again at the next interval, never sooner.
            return ProbeResult(
                False, HealthReason.FAILED_HEALTH_CHECKS, detail=f"{type(e).__name__}: {e}"
            )

        if spec.accepts(response.status_code):
            return ProbeResult(True, status_code=response.status_code)
        return ProbeResult(
            False,
            HealthReason.RESPONSE_CODE_MISMATCH,
            status_code=response.status_code,
            detail=f"Health checks failed with these codes: [{response.status_code}]",
        )
