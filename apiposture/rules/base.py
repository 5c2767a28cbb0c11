"""Rule base class."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List

from ..models import AuthorizationInfo, Endpoint, Finding, Severity


class Rule(ABC):
    """
    A stateless security rule.

    evaluate() returns zero or more findings for one classified endpoint and
    never looks at other endpoints or other rules.
    """
    rule_id: str = ""
    name: str = ""
    severity: Severity = Severity.INFO
    description: str = ""

    @abstractmethod
    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        pass

    def finding(self, endpoint: Endpoint, message: str, recommendation: str) -> Finding:
        return Finding(
            rule_id=self.rule_id,
            rule_name=self.name,
            severity=self.severity,
            message=message,
            endpoint=endpoint,
            recommendation=recommendation,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.rule_id,
            "name": self.name,
            "severity": self.severity.value,
            "description": self.description,
        }


def has_no_auth(auth: AuthorizationInfo) -> bool:
    """No auth flag, dependency or specific requirement at all."""
    return not auth.has_auth_signal
