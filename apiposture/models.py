"""
Shared data models for ApiPosture.

All detectors, the authorization layer, the rule engine and the output
formatters import from this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class HTTPMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @property
    def is_write(self) -> bool:
        """True if the method modifies state."""
        return self in WRITE_METHODS

    @classmethod
    def parse(cls, value: str) -> Optional["HTTPMethod"]:
        """Case-insensitive lookup; None for anything that is not a canonical verb."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


WRITE_METHODS = frozenset({HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.DELETE, HTTPMethod.PATCH})

# Canonical order, also the expansion of the "all verbs" route shapes
ALL_METHODS: Tuple[HTTPMethod, ...] = tuple(HTTPMethod)


class Framework(Enum):
    GIN = "gin"
    ECHO = "echo"
    CHI = "chi"
    FIBER = "fiber"
    NET_HTTP = "net/http"
    UNKNOWN = "unknown"


class SecurityClassification(Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ROLE_RESTRICTED = "role_restricted"
    POLICY_RESTRICTED = "policy_restricted"


class Severity(Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def order(self) -> int:
        return _SEVERITY_ORDER[self]

    def at_least(self, other: "Severity") -> bool:
        return self.order >= other.order

    @classmethod
    def parse(cls, value: Optional[str]) -> "Severity":
        """Unknown or empty values parse as INFO."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.INFO


_SEVERITY_ORDER = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class AuthSource(Enum):
    NONE = ""
    MIDDLEWARE = "middleware"
    ROUTER = "router"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

def merge_unique(*sequences: Iterable[str]) -> List[str]:
    """Concatenate sequences keeping first-seen order and dropping duplicates."""
    seen: Set[str] = set()
    result: List[str] = []
    for seq in sequences:
        for item in seq:
            if item not in seen:
                seen.add(item)
                result.append(item)
    return result


@dataclass
class AuthorizationInfo:
    """
    Authorization facts for one endpoint (or one group scope).

    ``allows_anonymous`` and ``requires_auth`` may both be set; the
    classifier resolves that conflict, not this record.
    """
    requires_auth: bool = False
    allows_anonymous: bool = False
    roles: List[str] = field(default_factory=list)
    scopes: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)
    policies: List[str] = field(default_factory=list)
    auth_dependencies: List[str] = field(default_factory=list)
    inherited: bool = False
    source: AuthSource = AuthSource.NONE

    def add(self, attr: str, *values: str) -> None:
        """Append values to one of the list fields, keeping it duplicate-free."""
        setattr(self, attr, merge_unique(getattr(self, attr), values))

    @property
    def has_specific_requirements(self) -> bool:
        return bool(self.roles or self.scopes or self.permissions or self.policies)

    @property
    def has_any_config(self) -> bool:
        """True if anything at all was configured on this record."""
        return (
            self.requires_auth
            or self.allows_anonymous
            or bool(self.auth_dependencies)
            or self.has_specific_requirements
        )

    @property
    def has_auth_signal(self) -> bool:
        """Some requirement is present, ignoring the anonymous marker."""
        return self.requires_auth or bool(self.auth_dependencies) or self.has_specific_requirements

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requires_auth": self.requires_auth,
            "allows_anonymous": self.allows_anonymous,
            "roles": list(self.roles),
            "scopes": list(self.scopes),
            "permissions": list(self.permissions),
            "policies": list(self.policies),
            "auth_dependencies": list(self.auth_dependencies),
            "inherited": self.inherited,
            "source": self.source.value,
        }


@dataclass(eq=False)
class Endpoint:
    """
    One statically discovered route-to-handler binding.

    Two endpoints are equal when route, method set, file and line match,
    whatever pass discovered them.
    """
    route: str
    methods: List[HTTPMethod]
    file_path: str
    line_number: int
    framework: Framework = Framework.UNKNOWN
    handler_name: str = ""
    router_prefix: str = ""
    middleware: List[str] = field(default_factory=list)
    authorization: AuthorizationInfo = field(default_factory=AuthorizationInfo)
    classification: SecurityClassification = SecurityClassification.PUBLIC

    def full_route(self) -> str:
        if not self.router_prefix:
            return self.route
        route = self.route if self.route.startswith("/") else "/" + self.route
        return self.router_prefix.rstrip("/") + route

    @property
    def identity(self) -> Tuple[str, frozenset, str, int]:
        return (self.route, frozenset(self.methods), self.file_path, self.line_number)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Endpoint):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    @property
    def is_write(self) -> bool:
        return any(m.is_write for m in self.methods)

    def display_methods(self) -> str:
        return ", ".join(m.value for m in self.methods)

    def location(self) -> str:
        return f"{self.file_path}:{self.line_number}"

    def short_location(self) -> str:
        return f"{Path(self.file_path).name}:{self.line_number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": self.full_route(),
            "methods": [m.value for m in self.methods],
            "file_path": self.file_path,
            "line_number": self.line_number,
            "framework": self.framework.value,
            "classification": self.classification.value,
            "handler_name": self.handler_name,
            "router_prefix": self.router_prefix,
            "middleware": list(self.middleware),
            "authorization": self.authorization.to_dict(),
        }


@dataclass(frozen=True)
class Finding:
    """
    A single rule violation tied to one endpoint.

    Findings are immutable; suppression produces a marked copy.
    """
    rule_id: str
    rule_name: str
    severity: Severity
    message: str
    endpoint: Endpoint
    recommendation: str = ""
    suppressed: bool = False
    suppression_reason: str = ""

    def suppress(self, reason: str) -> "Finding":
        return replace(self, suppressed=True, suppression_reason=reason)

    def location(self) -> str:
        return self.endpoint.location()

    def route(self) -> str:
        return self.endpoint.full_route()

    def to_dict(self) -> Dict[str, Any]:
        ep = self.endpoint
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "severity": self.severity.value,
            "message": self.message,
            "recommendation": self.recommendation,
            "suppressed": self.suppressed,
            "suppression_reason": self.suppression_reason,
            "endpoint": {
                "route": ep.full_route(),
                "methods": [m.value for m in ep.methods],
                "file_path": ep.file_path,
                "line_number": ep.line_number,
                "framework": ep.framework.value,
                "handler_name": ep.handler_name,
                "classification": ep.classification.value,
            },
        }


@dataclass
class ScanResult:
    """Aggregate result of scanning a project."""
    scan_path: str
    endpoints: List[Endpoint] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    files_scanned: List[str] = field(default_factory=list)
    parse_errors: Dict[str, str] = field(default_factory=dict)
    frameworks_detected: Set[Framework] = field(default_factory=set)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration_ms(self) -> int:
        if self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    @property
    def active_findings(self) -> List[Finding]:
        return [f for f in self.findings if not f.suppressed]

    @property
    def suppressed_findings(self) -> List[Finding]:
        return [f for f in self.findings if f.suppressed]

    def findings_at_or_above(self, severity: Severity) -> List[Finding]:
        return [f for f in self.active_findings if f.severity.at_least(severity)]

    @property
    def has_critical(self) -> bool:
        return any(f.severity == Severity.CRITICAL for f in self.active_findings)

    def severity_summary(self) -> Dict[Severity, int]:
        summary = {sev: 0 for sev in Severity}
        for f in self.active_findings:
            summary[f.severity] += 1
        return summary

    def frameworks_list(self) -> List[Framework]:
        return sorted(self.frameworks_detected, key=lambda f: f.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_path": self.scan_path,
            "files_scanned": len(self.files_scanned),
            "parse_errors": dict(self.parse_errors),
            "frameworks_detected": [f.value for f in self.frameworks_list()],
            "duration_ms": self.duration_ms,
            "summary": {
                "total_endpoints": len(self.endpoints),
                "total_findings": len(self.active_findings),
                "suppressed_findings": len(self.suppressed_findings),
                "severity_counts": {sev.value: n for sev, n in self.severity_summary().items()},
            },
            "endpoints": [e.to_dict() for e in self.endpoints],
            "findings": [f.to_dict() for f in self.findings],
        }
