"""Security rules and the rule engine."""
from .base import Rule
from .builtin import (
    BUILTIN_RULES,
    AnonymousOnWrite,
    AuthConflict,
    EndpointWithoutAuth,
    ExcessiveRoles,
    MissingAuthOnWrite,
    PublicWithoutIntent,
    SensitiveKeywords,
    WeakRoleNaming,
)
from .engine import RuleEngine

__all__ = [
    "AnonymousOnWrite",
    "AuthConflict",
    "BUILTIN_RULES",
    "EndpointWithoutAuth",
    "ExcessiveRoles",
    "MissingAuthOnWrite",
    "PublicWithoutIntent",
    "Rule",
    "RuleEngine",
    "SensitiveKeywords",
    "WeakRoleNaming",
]
