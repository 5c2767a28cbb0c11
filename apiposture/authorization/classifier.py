"""
Keyword heuristics that label middleware identifiers.

Matching is case-folded substring containment, so ``AdminRoleGuard``
counts as both auth-indicating and role-bearing.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple


AUTH_KEYWORDS: Tuple[str, ...] = (
    "auth",
    "jwt",
    "oauth",
    "session",
    "token",
    "bearer",
    "apikey",
    "api_key",
    "authenticate",
    "authorized",
    "requireauth",
    "require_auth",
    "protected",
    "secure",
    "guard",
    "permission",
    "role",
    "acl",
    "casbin",
)

ANONYMOUS_KEYWORDS: Tuple[str, ...] = (
    "allowanonymous",
    "allow_anonymous",
    "public",
    "noauth",
    "no_auth",
    "skipauth",
    "skip_auth",
    "permitall",
    "permit_all",
)

ROLE_KEYWORDS: Tuple[str, ...] = ("role",)
PERMISSION_KEYWORDS: Tuple[str, ...] = ("permission",)
SCOPE_KEYWORDS: Tuple[str, ...] = ("scope",)
POLICY_KEYWORDS: Tuple[str, ...] = ("policy", "policies")


def _contains_any(name: str, keywords: Iterable[str]) -> bool:
    lower = name.lower()
    return any(k in lower for k in keywords)


@dataclass(frozen=True)
class AuthVocabulary:
    """Keyword dictionaries used to classify middleware names."""
    auth: Tuple[str, ...] = AUTH_KEYWORDS
    anonymous: Tuple[str, ...] = ANONYMOUS_KEYWORDS
    roles: Tuple[str, ...] = ROLE_KEYWORDS
    permissions: Tuple[str, ...] = PERMISSION_KEYWORDS
    scopes: Tuple[str, ...] = SCOPE_KEYWORDS
    policies: Tuple[str, ...] = POLICY_KEYWORDS

    def is_auth(self, name: str) -> bool:
        return _contains_any(name, self.auth)

    def is_anonymous(self, name: str) -> bool:
        return _contains_any(name, self.anonymous)

    def requirement_field(self, name: str) -> Optional[str]:
        """
        AuthorizationInfo list field that literal arguments of this
        middleware belong to, or None.
        """
        if _contains_any(name, self.permissions):
            return "permissions"
        if _contains_any(name, self.scopes):
            return "scopes"
        if _contains_any(name, self.policies):
            return "policies"
        if _contains_any(name, self.roles):
            return "roles"
        return None

    def with_auth_patterns(self, patterns: Iterable[str]) -> "AuthVocabulary":
        """Copy with extra auth-indicating keywords appended."""
        extra = tuple(p.lower() for p in patterns if p and p.lower() not in self.auth)
        if not extra:
            return self
        return replace(self, auth=self.auth + extra)


DEFAULT_VOCABULARY = AuthVocabulary()
