"""Tests for the shared data models."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

import pytest

from apiposture.models import (
    AuthorizationInfo,
    Finding,
    HTTPMethod,
    ScanResult,
    Severity,
    merge_unique,
)

from .conftest import make_endpoint


class TestHTTPMethod:

    def test_parse_is_case_insensitive(self):
        assert HTTPMethod.parse("get") is HTTPMethod.GET
        assert HTTPMethod.parse(" Patch ") is HTTPMethod.PATCH

    def test_parse_unknown_returns_none(self):
        assert HTTPMethod.parse("CONNECT") is None
        assert HTTPMethod.parse("") is None

    def test_write_methods(self):
        assert {m for m in HTTPMethod if m.is_write} == {
            HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.DELETE, HTTPMethod.PATCH,
        }


class TestSeverity:

    def test_ordering(self):
        assert Severity.CRITICAL.at_least(Severity.HIGH)
        assert Severity.HIGH.at_least(Severity.HIGH)
        assert not Severity.LOW.at_least(Severity.MEDIUM)

    def test_parse_unknown_is_info(self):
        assert Severity.parse("bogus") is Severity.INFO
        assert Severity.parse(None) is Severity.INFO
        assert Severity.parse("HIGH") is Severity.HIGH


class TestMergeUnique:

    def test_first_seen_order(self):
        assert merge_unique(["a", "b"], ["b", "c", "a"]) == ["a", "b", "c"]


class TestEndpoint:

    def test_full_route_joins_prefix(self):
        """Prefix "/api/" and route "users" give exactly "/api/users"."""
        ep = make_endpoint(route="users", router_prefix="/api/")
        assert ep.full_route() == "/api/users"

    def test_full_route_without_prefix_is_unchanged(self):
        assert make_endpoint(route="/users").full_route() == "/users"

    def test_equality_ignores_handler_and_framework(self):
        a = make_endpoint(handler_name="a", methods=[HTTPMethod.GET, HTTPMethod.POST])
        b = make_endpoint(handler_name="b", methods=[HTTPMethod.POST, HTTPMethod.GET])
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_different_line_is_different_endpoint(self):
        assert make_endpoint(line_number=1) != make_endpoint(line_number=2)

    def test_is_write(self):
        assert make_endpoint(methods=[HTTPMethod.GET, HTTPMethod.DELETE]).is_write
        assert not make_endpoint(methods=[HTTPMethod.GET]).is_write

    def test_to_dict(self):
        ep = make_endpoint(route="/x", router_prefix="/api")
        data = ep.to_dict()
        assert data["route"] == "/api/x"
        assert data["methods"] == ["GET"]
        assert data["framework"] == "gin"
        assert data["authorization"]["source"] == ""


class TestAuthorizationInfo:

    def test_add_deduplicates(self):
        auth = AuthorizationInfo()
        auth.add("roles", "admin", "ops")
        auth.add("roles", "admin")
        assert auth.roles == ["admin", "ops"]

    def test_has_any_config(self):
        assert not AuthorizationInfo().has_any_config
        assert AuthorizationInfo(allows_anonymous=True).has_any_config
        assert AuthorizationInfo(scopes=["read"]).has_any_config

    def test_has_auth_signal_ignores_anonymous(self):
        assert not AuthorizationInfo(allows_anonymous=True).has_auth_signal
        assert AuthorizationInfo(auth_dependencies=["JWT"]).has_auth_signal


class TestScanResult:

    def _result(self):
        ep = make_endpoint()
        findings = [
            Finding("AP004", "n", Severity.CRITICAL, "m", ep),
            Finding("AP001", "n", Severity.HIGH, "m", ep),
            Finding("AP006", "n", Severity.LOW, "m", ep, suppressed=True),
        ]
        return ScanResult(scan_path=".", endpoints=[ep], findings=findings)

    def test_active_and_suppressed(self):
        result = self._result()
        assert [f.rule_id for f in result.active_findings] == ["AP004", "AP001"]
        assert [f.rule_id for f in result.suppressed_findings] == ["AP006"]

    def test_findings_at_or_above_skips_suppressed(self):
        result = self._result()
        assert len(result.findings_at_or_above(Severity.HIGH)) == 2
        assert len(result.findings_at_or_above(Severity.INFO)) == 2
        assert result.has_critical

    def test_duration(self):
        start = datetime(2024, 1, 1)
        result = ScanResult(scan_path=".", start_time=start, end_time=start + timedelta(milliseconds=250))
        assert result.duration_ms == 250

    def test_to_dict_summary(self):
        summary = self._result().to_dict()["summary"]
        assert summary["total_endpoints"] == 1
        assert summary["total_findings"] == 2
        assert summary["suppressed_findings"] == 1
        assert summary["severity_counts"]["critical"] == 1
        assert summary["severity_counts"]["low"] == 0


class TestFinding:

    def test_is_immutable(self):
        finding = Finding("AP001", "n", Severity.HIGH, "m", make_endpoint())
        with pytest.raises(FrozenInstanceError):
            finding.message = "changed"

    def test_suppress_returns_marked_copy(self):
        finding = Finding("AP001", "n", Severity.HIGH, "m", make_endpoint())
        suppressed = finding.suppress("accepted risk")
        assert suppressed is not finding
        assert (suppressed.suppressed, suppressed.suppression_reason) == (True, "accepted risk")
        assert not finding.suppressed
        assert suppressed.endpoint is finding.endpoint
