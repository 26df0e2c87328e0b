"""
Router

Executes the rule selected for a request: a fixed response, a forward to a
live INSTANCE target, or an invocation of the FUNCTION target (the fallback
responder). Exactly one action answers each request.
"""

import logging
from typing import Dict, Optional

from ..core.event_builder import ALBEventBuilder
from ..core.exceptions import (
    BackendForwardError,
    BackendTimeoutError,
    BackendUnavailableError,
    ConfigurationError,
)
from ..core.utils import parse_function_response
from ..models.http import GatewayRequest, GatewayResponse
from ..models.routing import (
    FallbackContent,
    FixedResponseAction,
    ForwardAction,
    RuleSpec,
    TargetGroupSpec,
    TargetType,
    UnavailablePolicy,
)
from .backend_forwarder import BackendForwarder
from .fallback_responder import FallbackResponder
from .health_tracker import TargetHealthTracker
from .routing_table import RoutingTable

logger = logging.getLogger("gateway.router")


class Router:
    def __init__(
        self,
        table: RoutingTable,
        tracker: TargetHealthTracker,
        forwarder: BackendForwarder,
        fallback: FallbackResponder,
        event_builder: Optional[ALBEventBuilder] = None,
        default_content: Optional[FallbackContent] = None,
    ):
        """
        Args:
            table: validated routing table
            tracker: health state for INSTANCE targets
            forwarder: HTTP relay to INSTANCE targets
            fallback: responder behind FUNCTION target groups
            event_builder: builds events for FUNCTION targets
            default_content: fallback page location for FUNCTION targets without one
        """
        self.table = table
        self.tracker = tracker
        self.forwarder = forwarder
        self.fallback = fallback
        self.event_builder = event_builder or ALBEventBuilder()
        self.default_content = default_content
        self._check_fallback_content()

    def _check_fallback_content(self) -> None:
        for group in self.table.target_groups.values():
            if group.target_type is not TargetType.FUNCTION:
                continue
            target = group.targets[0]
            if target.content is None and self.default_content is None:
                raise ConfigurationError(
                    f"function target {target.id} has no content and no default page is set",
                    source=self.table.source,
                )

    def register_targets(self) -> None:
        """Hand every INSTANCE target of the table to the health tracker."""
        for group in self.table.target_groups.values():
            if group.target_type is not TargetType.INSTANCE:
                continue
            for target in group.targets:
                self.tracker.register(group.id, target, group.health_check)

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """
        Route a request and produce its response. Never raises for backend
        or storage failures; those become 5xx responses.
        """
        skipped: Dict[str, str] = {}
        for rule in self.table.matching_rules(request.path):
            response = await self._execute(rule, request, skipped)
            if response is not None:
                response.rule_priority = rule.priority
                return response

        # The default rule runs only when no forward rule matched at all.
        if not skipped:
            response = await self._execute(self.table.default_rule, request, skipped)
            if response is not None:
                return response

        logger.error(
            f"No rule could serve {request.method} {request.path}",
            extra={"path": request.path, "unavailable_groups": list(skipped)},
        )
        return GatewayResponse.text(502, "Bad Gateway")

    async def _execute(
        self, rule: RuleSpec, request: GatewayRequest, skipped: Dict[str, str]
    ) -> Optional[GatewayResponse]:
        """
        Run a rule's action.

        Returns:
            The response, or None when the rule yields to the next matching rule
        """
        action = rule.action
        if isinstance(action, FixedResponseAction):
            return GatewayResponse.text(
                action.status_code, action.message_body, content_type=action.content_type
            )

        decision = self.table.decide(rule)
        group = decision.target_group
        if group.target_type is TargetType.FUNCTION:
            return await self._invoke_function(group, request)

        try:
            return await self._forward(group, action, request)
        except BackendUnavailableError as e:
            if action.on_unavailable is UnavailablePolicy.NEXT_RULE:
                logger.warning(
                    f"{e}; trying next rule",
                    extra={"target_group": group.id, "rule_priority": rule.priority},
                )
                skipped[group.id] = str(e)
                return None
            logger.error(str(e), extra={"target_group": group.id, "rule_priority": rule.priority})
            return GatewayResponse.text(502, "Bad Gateway")

    async def _forward(
        self, group: TargetGroupSpec, action: ForwardAction, request: GatewayRequest
    ) -> GatewayResponse:
        target = self.tracker.pick_live(group.id)
        if target is None and action.on_unavailable is UnavailablePolicy.FAIL_OPEN:
            target = self.tracker.pick_any(group.id)
            if target is not None:
                logger.warning(
                    f"No healthy targets in {group.id}; failing open to {target.id}",
                    extra={"target_group": group.id, "target_id": target.id},
                )
        if target is None:
            raise BackendUnavailableError(group.id)

        try:
            return await self.forwarder.forward(request, target)
        except BackendTimeoutError:
            return GatewayResponse.text(504, "Gateway Timeout")
        except BackendForwardError:
            return GatewayResponse.text(502, "Bad Gateway")

    async def _invoke_function(
        self, group: TargetGroupSpec, request: GatewayRequest
    ) -> GatewayResponse:
        target = group.targets[0]
        content = target.content or self.default_content
        event = self.event_builder.build(request, group.id)
        result = await self.fallback.invoke(event, content)
        return parse_function_response(result)
