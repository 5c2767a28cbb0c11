"""Tests for ScannerConfig loading and rule selection."""

import json

import pytest

from apiposture.config import DEFAULT_EXCLUDE, ScannerConfig, Suppression, find_config
from apiposture.errors import ConfigError
from apiposture.models import Severity

YAML_CONFIG = """
include:
  - "**/*.go"
exclude:
  - "**/generated/**"
rules:
  enabled: [AP001, AP004, AP008]
  disabled: [AP008]
suppressions:
  - rule: AP001
    route: "^/health"
    reason: load balancer probe
auth_patterns:
  - gatekeeper
min_severity: medium
parallel_workers: 8
"""


class TestDefaults:

    def test_defaults(self):
        config = ScannerConfig()
        assert config.include == ["**/*.go"]
        assert config.exclude == DEFAULT_EXCLUDE
        assert config.active_rules() is None
        assert config.severity_threshold is Severity.INFO

    def test_empty_include_falls_back(self):
        assert ScannerConfig(include=[]).include == ["**/*.go"]


class TestFromFile:

    def test_yaml(self, tmp_path):
        path = tmp_path / ".apiposture.yaml"
        path.write_text(YAML_CONFIG)
        config = ScannerConfig.from_file(str(path))
        assert config.exclude == ["**/generated/**"]
        assert config.active_rules() == ["AP001", "AP004"]
        assert config.suppressions == [Suppression("AP001", "^/health", "load balancer probe")]
        assert config.auth_patterns == ["gatekeeper"]
        assert config.severity_threshold is Severity.MEDIUM
        assert config.parallel_workers == 8

    def test_json(self, tmp_path):
        path = tmp_path / "apiposture.json"
        path.write_text(json.dumps({"rules": {"disabled": ["AP007"]}, "timeout_seconds": 5}))
        config = ScannerConfig.from_file(str(path))
        assert config.disabled_rules == ["AP007"]
        assert config.timeout_seconds == 5
        assert config.exclude == DEFAULT_EXCLUDE

    def test_empty_file_is_default(self, tmp_path):
        path = tmp_path / "apiposture.yml"
        path.write_text("")
        assert ScannerConfig.from_file(str(path)).to_dict() == ScannerConfig().to_dict()

    @pytest.mark.parametrize("content", [
        "rules: [AP001]",
        "suppressions:\n  - route: /x",
        "parallel_workers: many",
        "- just\n- a list",
        "include: {a: 1}",
        "rules: {enabled: [\n",
    ])
    def test_malformed(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            ScannerConfig.from_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ScannerConfig.from_file(str(tmp_path / "nope.yaml"))


class TestFromEnv:

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("APIPOSTURE_WORKERS", "2")
        monkeypatch.setenv("APIPOSTURE_DISABLED_RULES", "AP005, AP006")
        monkeypatch.setenv("APIPOSTURE_MIN_SEVERITY", "high")
        config = ScannerConfig.from_env()
        assert config.parallel_workers == 2
        assert config.disabled_rules == ["AP005", "AP006"]
        assert config.severity_threshold is Severity.HIGH

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("APIPOSTURE_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            ScannerConfig.from_env()


class TestRuleSelection:

    def test_is_rule_enabled(self):
        config = ScannerConfig(enabled_rules=["AP001", "AP002"], disabled_rules=["AP002"])
        assert config.is_rule_enabled("AP001")
        assert not config.is_rule_enabled("AP002")
        assert not config.is_rule_enabled("AP003")

    def test_wildcard_suppression(self):
        config = ScannerConfig(suppressions=[Suppression(rule="*", route="/internal/", reason="mesh only")])
        assert config.is_suppressed("AP007", "/internal/metrics") == (True, "mesh only")
        assert config.is_suppressed("AP007", "/public") == (False, "")

    def test_invalid_regex_falls_back_to_substring(self):
        suppression = Suppression(rule="AP001", route="/files/[")
        assert suppression.matches("AP001", "/files/[id]")
        assert not suppression.matches("AP002", "/files/[id]")

    def test_route_less_suppression_matches_everything(self):
        assert Suppression(rule="AP001").matches("AP001", "/anything")


class TestFindConfig:

    def test_walks_up(self, tmp_path):
        (tmp_path / ".apiposture.yml").write_text("min_severity: low\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(str(nested)) == str(tmp_path / ".apiposture.yml")

    def test_none_found(self, tmp_path):
        nested = tmp_path / "x"
        nested.mkdir()
        found = find_config(str(nested))
        assert found is None or not found.startswith(str(tmp_path))
