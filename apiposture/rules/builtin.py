"""The AP001-AP008 rule set."""
from __future__ import annotations

from typing import Iterable, List

from ..models import Endpoint, Finding, Framework, SecurityClassification, Severity
from .base import Rule, has_no_auth

PUBLIC = SecurityClassification.PUBLIC

MAX_ROLES = 3

WEAK_ROLE_NAMES = frozenset({
    "user", "users",
    "admin", "admins",
    "guest", "guests",
    "member", "members",
    "default", "basic", "standard", "normal", "regular",
})

SENSITIVE_KEYWORDS = (
    "admin", "debug", "export", "import", "internal",
    "config", "settings", "secret", "private",
    "management", "manage", "system",
    "backup", "restore", "migrate", "database", "db",
    "console", "shell", "exec", "execute", "eval",
    "log", "logs", "trace", "metrics",
    "health", "status", "info", "actuator",
)

FRAMEWORK_AUTH_ADVICE = {
    Framework.GIN: "Add authentication middleware: use gin-jwt, gin-session, or custom auth middleware",
    Framework.ECHO: "Add authentication middleware: use echo-jwt, echo middleware, or custom auth handler",
    Framework.CHI: "Add authentication middleware: use chi middleware with jwtauth or custom auth handler",
    Framework.FIBER: "Add authentication middleware: use fiber-jwt, fiber-session, or custom auth middleware",
    Framework.NET_HTTP: "Add authentication: wrap handler with auth middleware or check auth in handler",
}
DEFAULT_AUTH_ADVICE = "Add authentication middleware to protect this endpoint"


class PublicWithoutIntent(Rule):
    rule_id = "AP001"
    name = "Public without explicit intent"
    severity = Severity.HIGH
    description = ("Public endpoint without explicit authorization intent. "
                   "Endpoints should explicitly declare their authorization requirements.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        auth = endpoint.authorization
        if endpoint.classification is not PUBLIC or auth.allows_anonymous or not has_no_auth(auth):
            return []
        return [self.finding(
            endpoint,
            f"Endpoint '{endpoint.full_route()}' is public without explicit authorization intent",
            "Add explicit authorization middleware or mark as intentionally public",
        )]


class AnonymousOnWrite(Rule):
    rule_id = "AP002"
    name = "Anonymous access on write endpoint"
    severity = Severity.HIGH
    description = ("Write endpoints (POST, PUT, DELETE, PATCH) with explicit anonymous access. "
                   "This can allow unauthorized data modification.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        if not endpoint.is_write or not endpoint.authorization.allows_anonymous:
            return []
        return [self.finding(
            endpoint,
            f"Write endpoint '{endpoint.full_route()}' [{endpoint.display_methods()}] "
            f"explicitly allows anonymous access",
            "Remove anonymous access from write endpoints, or add rate limiting and "
            "validation if public access is required",
        )]


class AuthConflict(Rule):
    rule_id = "AP003"
    name = "Group/route authorization conflict"
    severity = Severity.MEDIUM
    description = ("Route-level anonymous access overrides group-level authentication. "
                   "This may indicate a configuration mistake.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        auth = endpoint.authorization
        if not (auth.allows_anonymous and auth.inherited):
            return []
        return [self.finding(
            endpoint,
            f"Route '{endpoint.full_route()}' allows anonymous access, overriding group-level authentication",
            "Verify this override is intentional. If the route should be public, "
            "consider documenting why with a comment",
        )]


class MissingAuthOnWrite(Rule):
    rule_id = "AP004"
    name = "Missing authentication on write endpoint"
    severity = Severity.CRITICAL
    description = ("Write endpoints (POST, PUT, DELETE, PATCH) without any authentication. "
                   "This is a critical security risk allowing unauthorized data modification.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        auth = endpoint.authorization
        if not endpoint.is_write or endpoint.classification is not PUBLIC:
            return []
        # explicit anonymous access is AP002's concern
        if auth.allows_anonymous or not has_no_auth(auth):
            return []
        return [self.finding(
            endpoint,
            f"Write endpoint '{endpoint.full_route()}' [{endpoint.display_methods()}] has no authentication",
            "Add authentication middleware to protect this write endpoint",
        )]


class ExcessiveRoles(Rule):
    rule_id = "AP005"
    name = "Excessive role access"
    severity = Severity.LOW
    description = (f"Endpoint allows access to more than {MAX_ROLES} roles. "
                   "Consider using broader permission categories.")

    def __init__(self, max_roles: int = MAX_ROLES):
        self.max_roles = max_roles
        self.description = (f"Endpoint allows access to more than {max_roles} roles. "
                            "Consider using broader permission categories.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        roles = endpoint.authorization.roles
        if len(roles) <= self.max_roles:
            return []
        return [self.finding(
            endpoint,
            f"Endpoint '{endpoint.full_route()}' allows access to {len(roles)} roles: {', '.join(roles)}",
            "Consider grouping roles into broader permission categories or using policies",
        )]


class WeakRoleNaming(Rule):
    rule_id = "AP006"
    name = "Weak role naming"
    severity = Severity.LOW
    description = ("Role names are too generic. "
                   "Consider using more descriptive names that indicate specific permissions.")

    def __init__(self, weak_names: Iterable[str] = WEAK_ROLE_NAMES):
        self.weak_names = frozenset(n.lower() for n in weak_names)

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        weak = [r for r in endpoint.authorization.roles if r.lower() in self.weak_names]
        if not weak:
            return []
        return [self.finding(
            endpoint,
            f"Endpoint '{endpoint.full_route()}' uses generic role names: {', '.join(weak)}",
            "Use more descriptive role names that indicate permissions, e.g., "
            "'billing_admin', 'content_editor', 'report_viewer'",
        )]


class SensitiveKeywords(Rule):
    rule_id = "AP007"
    name = "Sensitive keyword in public route"
    severity = Severity.MEDIUM
    description = ("Public route contains sensitive keywords suggesting it should be protected. "
                   "Routes with admin, debug, export, or internal keywords often require authentication.")

    def __init__(self, keywords: Iterable[str] = SENSITIVE_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        if endpoint.classification is not PUBLIC or endpoint.authorization.allows_anonymous:
            return []
        route = endpoint.full_route().lower()
        found = [k for k in self.keywords if k in route]
        if not found:
            return []
        return [self.finding(
            endpoint,
            f"Public route '{endpoint.full_route()}' contains sensitive keywords: {', '.join(found)}",
            "Consider adding authentication to this endpoint or marking it as intentionally public",
        )]


class EndpointWithoutAuth(Rule):
    rule_id = "AP008"
    name = "Endpoint without authentication"
    severity = Severity.HIGH
    description = ("Endpoint has no authentication configuration. "
                   "Consider adding authentication middleware.")

    def evaluate(self, endpoint: Endpoint) -> List[Finding]:
        auth = endpoint.authorization
        if endpoint.classification is not PUBLIC or auth.allows_anonymous or not has_no_auth(auth):
            return []
        return [self.finding(
            endpoint,
            f"Endpoint '{endpoint.full_route()}' has no authentication configuration",
            FRAMEWORK_AUTH_ADVICE.get(endpoint.framework, DEFAULT_AUTH_ADVICE),
        )]


BUILTIN_RULES = (
    PublicWithoutIntent,
    AnonymousOnWrite,
    AuthConflict,
    MissingAuthOnWrite,
    ExcessiveRoles,
    WeakRoleNaming,
    SensitiveKeywords,
    EndpointWithoutAuth,
)
