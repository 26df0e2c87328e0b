"""
Routing table.

Loads routing.yml, validates it and resolves the rule that handles a request.

Note:
    Rules are evaluated by ascending priority and the first rule whose path
    patterns accept the request path wins. The default rule (no path
    patterns) is always evaluated last.
"""

import logging
import os
import string
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..core.exceptions import ConfigurationError
from ..core.path_pattern import any_path_matches, compile_path_pattern
from ..models.http import GatewayRequest
from ..models.routing import (
    FixedResponseAction,
    ForwardAction,
    RoutingConfig,
    RuleSpec,
    TargetGroupSpec,
)

logger = logging.getLogger("gateway.routing_table")


@dataclass(frozen=True)
class RouteDecision:
    """The rule selected for a request, and its target group for forward actions."""

    rule: RuleSpec
    target_group: Optional[TargetGroupSpec] = None

    @property
    def action(self) -> ForwardAction | FixedResponseAction:
        return self.rule.action


def load_routing_config(config_path: str) -> RoutingConfig:
    """
    Read routing.yml, substituting ${VAR} references from the environment.

    Raises:
        ConfigurationError: the file is missing, is not YAML or does not fit the schema
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            template = string.Template(f.read())
    except OSError as e:
        raise ConfigurationError(f"cannot read routing config: {e}", source=config_path) from e

    content = template.safe_substitute(os.environ)
    try:
        raw = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML parse error: {e}", source=config_path) from e

    return parse_routing_config(raw, source=config_path)


def parse_routing_config(raw: Dict[str, Any], source: str = "") -> RoutingConfig:
    """Validate a routing document already loaded into Python objects."""
    if not isinstance(raw, dict):
        raise ConfigurationError("top level must be a mapping", source=source)
    try:
        return RoutingConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(str(e), source=source) from e


class RoutingTable:
    """
    Immutable, validated rule list plus the target groups it refers to.
    """

    def __init__(self, routing_config: RoutingConfig, source: str = ""):
        self.source = source
        self.target_groups: Dict[str, TargetGroupSpec] = {}
        self._rules: Tuple[RuleSpec, ...] = ()
        self._default_rule: Optional[RuleSpec] = None
        self._build(routing_config)

    @classmethod
    def from_file(cls, config_path: str) -> "RoutingTable":
        table = cls(load_routing_config(config_path), source=config_path)
        logger.info(
            f"Loaded {len(table.rules)} rules and {len(table.target_groups)} target groups "
            f"from {config_path}"
        )
        return table

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RoutingTable":
        return cls(parse_routing_config(raw))

    def _fail(self, detail: str) -> ConfigurationError:
        return ConfigurationError(detail, source=self.source)

    def _build(self, routing_config: RoutingConfig) -> None:
        seen_targets: Dict[str, str] = {}
        for group in routing_config.target_groups:
            if group.id in self.target_groups:
                raise self._fail(f"duplicate target group id: {group.id}")
            for target in group.targets:
                owner = seen_targets.get(target.id)
                if owner is not None:
                    raise self._fail(
                        f"target {target.id} is registered in both {owner} and {group.id}"
                    )
                seen_targets[target.id] = group.id
            self.target_groups[group.id] = group

        defaults = [rule for rule in routing_config.rules if rule.is_default]
        if not defaults:
            raise self._fail("no default rule (a rule without path_patterns) is configured")
        if len(defaults) > 1:
            raise self._fail(f"{len(defaults)} default rules configured; exactly one is allowed")
        default_rule = defaults[0]

        rules = [rule for rule in routing_config.rules if not rule.is_default]
        priorities: Dict[int, RuleSpec] = {}
        for rule in rules:
            if rule.priority is None:
                raise self._fail(f"rule {rule.path_patterns} has no priority")
            if rule.priority in priorities:
                raise self._fail(f"duplicate rule priority: {rule.priority}")
            priorities[rule.priority] = rule
            for pattern in rule.path_patterns or []:
                compile_path_pattern(pattern)

        if default_rule.priority is not None and any(
            default_rule.priority <= p for p in priorities
        ):
            raise self._fail(
                f"default rule priority {default_rule.priority} must be evaluated last"
            )

        for rule in routing_config.rules:
            action = rule.action
            if isinstance(action, ForwardAction) and action.target_group not in self.target_groups:
                raise self._fail(
                    f"rule {rule.priority} forwards to unknown target group {action.target_group}"
                )

        self._rules = tuple(sorted(rules, key=lambda r: r.priority))
        self._default_rule = default_rule

    @property
    def rules(self) -> List[RuleSpec]:
        """All rules in evaluation order, the default rule last."""
        return [*self._rules, self._default_rule]

    @property
    def default_rule(self) -> RuleSpec:
        return self._default_rule

    def matching_rules(self, path: str) -> Iterator[RuleSpec]:
        """Non-default rules whose patterns accept the path, in priority order."""
        for rule in self._rules:
            if any_path_matches(rule.path_patterns, path):
                yield rule

    def decide(self, rule: RuleSpec) -> RouteDecision:
        action = rule.action
        if isinstance(action, ForwardAction):
            return RouteDecision(rule=rule, target_group=self.target_groups[action.target_group])
        return RouteDecision(rule=rule)

    def route(self, request: GatewayRequest) -> RouteDecision:
        """
        Resolve the rule for a request.

        Args:
            request: the inbound request (only the path is consulted)

        Returns:
            RouteDecision for the first matching rule, or for the default rule
        """
        for rule in self.matching_rules(request.path):
            return self.decide(rule)
        return self.decide(self._default_rule)
