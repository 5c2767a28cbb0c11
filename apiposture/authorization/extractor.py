"""Builds AuthorizationInfo records from middleware chains."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..models import AuthorizationInfo, AuthSource
from .classifier import DEFAULT_VOCABULARY, AuthVocabulary


@dataclass(frozen=True)
class MiddlewareRef:
    """A middleware identifier plus any string literals passed to it."""
    name: str
    literals: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.name


class AuthorizationExtractor:
    """
    Turns a middleware chain into an AuthorizationInfo.

    When ``pass_literals`` is set, literal arguments of role, permission,
    scope or policy bearing middleware are recorded as concrete values.
    Otherwise a role requirement is noted only through the auth flag.
    """

    def __init__(self, vocabulary: Optional[AuthVocabulary] = None, pass_literals: bool = True):
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        self.pass_literals = pass_literals

    def extract(self, middleware: Sequence[MiddlewareRef]) -> AuthorizationInfo:
        auth = AuthorizationInfo()
        vocab = self.vocabulary

        for mw in middleware:
            if vocab.is_anonymous(mw.name):
                auth.allows_anonymous = True
                auth.source = AuthSource.MIDDLEWARE
                continue

            if vocab.is_auth(mw.name):
                auth.requires_auth = True
                auth.add("auth_dependencies", mw.name)
                auth.source = AuthSource.MIDDLEWARE

            if self.pass_literals and mw.literals:
                target = vocab.requirement_field(mw.name)
                if target:
                    auth.add(target, *mw.literals)
                    auth.source = AuthSource.MIDDLEWARE

        return auth

    def extract_group(self, middleware: Sequence[MiddlewareRef]) -> AuthorizationInfo:
        """Like extract(), tagged as coming from an enclosing group."""
        auth = self.extract(middleware)
        if auth.has_any_config:
            auth.source = AuthSource.ROUTER
        auth.inherited = auth.requires_auth
        return auth
