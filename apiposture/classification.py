"""Security classification of endpoints."""

from __future__ import annotations

from typing import Iterable

from .models import AuthorizationInfo, Endpoint, SecurityClassification


def classify(auth: AuthorizationInfo) -> SecurityClassification:
    """
    Map an authorization record to an exposure class.

    Order matters: an anonymous marker beats everything, and policy,
    permission or scope requirements beat bare roles.
    """
    if auth.allows_anonymous:
        return SecurityClassification.PUBLIC

    if not auth.requires_auth and not auth.has_specific_requirements:
        return SecurityClassification.PUBLIC

    if auth.policies or auth.permissions or auth.scopes:
        return SecurityClassification.POLICY_RESTRICTED

    if auth.roles:
        return SecurityClassification.ROLE_RESTRICTED

    if auth.requires_auth or auth.auth_dependencies:
        return SecurityClassification.AUTHENTICATED

    return SecurityClassification.PUBLIC


class SecurityClassifier:
    """Assigns a classification to each endpoint in place."""

    def classify(self, endpoint: Endpoint) -> SecurityClassification:
        endpoint.classification = classify(endpoint.authorization)
        return endpoint.classification

    def classify_all(self, endpoints: Iterable[Endpoint]) -> None:
        for endpoint in endpoints:
            self.classify(endpoint)
