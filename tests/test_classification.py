"""Tests for the security classifier."""

import pytest

from apiposture.classification import SecurityClassifier, classify
from apiposture.models import AuthorizationInfo, SecurityClassification

from .conftest import make_endpoint


class TestClassify:

    @pytest.mark.parametrize("auth,expected", [
        (AuthorizationInfo(), SecurityClassification.PUBLIC),
        (AuthorizationInfo(requires_auth=True), SecurityClassification.AUTHENTICATED),
        (AuthorizationInfo(auth_dependencies=["JWT"], requires_auth=True), SecurityClassification.AUTHENTICATED),
        (AuthorizationInfo(requires_auth=True, roles=["ops"]), SecurityClassification.ROLE_RESTRICTED),
        (AuthorizationInfo(roles=["ops"]), SecurityClassification.ROLE_RESTRICTED),
        (AuthorizationInfo(scopes=["read"]), SecurityClassification.POLICY_RESTRICTED),
        (AuthorizationInfo(permissions=["w"], roles=["ops"]), SecurityClassification.POLICY_RESTRICTED),
        (AuthorizationInfo(policies=["p"]), SecurityClassification.POLICY_RESTRICTED),
    ])
    def test_classification(self, auth, expected):
        assert classify(auth) is expected

    def test_anonymous_dominates_everything(self):
        auth = AuthorizationInfo(
            allows_anonymous=True, requires_auth=True, roles=["a"], scopes=["s"],
            permissions=["p"], policies=["x"], auth_dependencies=["Auth"],
        )
        assert classify(auth) is SecurityClassification.PUBLIC


class TestSecurityClassifier:

    def test_classify_all_sets_field(self):
        eps = [
            make_endpoint(auth=AuthorizationInfo(requires_auth=True)),
            make_endpoint(line_number=11),
        ]
        SecurityClassifier().classify_all(eps)
        assert eps[0].classification is SecurityClassification.AUTHENTICATED
        assert eps[1].classification is SecurityClassification.PUBLIC
