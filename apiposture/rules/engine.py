"""Runs the rule set over classified endpoints."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..models import Endpoint, Finding
from .base import Rule
from .builtin import BUILTIN_RULES

logger = logging.getLogger("apiposture.rules")


class RuleEngine:
    """
    Evaluates every enabled rule against every endpoint.

    ``enabled_rules`` of None enables all rules. Findings come out in
    endpoint order, then rule registration order.
    """

    def __init__(self, enabled_rules: Optional[Iterable[str]] = None,
                 rules: Optional[Sequence[Rule]] = None):
        self.rules: List[Rule] = list(rules) if rules is not None else [cls() for cls in BUILTIN_RULES]
        self.enabled_rules = set(enabled_rules) if enabled_rules is not None else None

    def is_enabled(self, rule_id: str) -> bool:
        return self.enabled_rules is None or rule_id in self.enabled_rules

    @property
    def active_rules(self) -> List[Rule]:
        return [r for r in self.rules if self.is_enabled(r.rule_id)]

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        findings: List[Finding] = []
        for rule in self.active_rules:
            findings.extend(rule.evaluate(endpoint))
        return findings

    def evaluate_all(self, endpoints: Iterable[Endpoint]) -> List[Finding]:
        findings: List[Finding] = []
        for endpoint in endpoints:
            findings.extend(self.evaluate(endpoint))
        logger.debug(f"Rule engine produced {len(findings)} findings")
        return findings
