"""Tests for report formatters."""

import json

import pytest

from apiposture.analyzer import ProjectAnalyzer
from apiposture.config import ScannerConfig, Suppression
from apiposture.output import (
    JSONFormatter,
    MarkdownFormatter,
    SARIFFormatter,
    TerminalFormatter,
    get_formatter,
    group_findings,
)

from .conftest import GIN_E2E

UNPROTECTED_DELETE = '''package main

import "github.com/go-chi/chi/v5"

func main() {
	r := chi.NewRouter()
	r.Delete("/accounts/{id}", deleteAccount)
}
'''


@pytest.fixture
def result():
    config = ScannerConfig(suppressions=[Suppression(rule="AP001", reason="reviewed")])
    analyzer = ProjectAnalyzer(config)
    scanned = analyzer.analyze_content("svc/main.go", UNPROTECTED_DELETE)
    gin = analyzer.analyze_content("svc/gin.go", GIN_E2E)
    scanned.endpoints += gin.endpoints
    scanned.findings += gin.findings
    return scanned


def render(formatter, result):
    return formatter.format(result, result.endpoints, result.findings)


class TestJSONFormatter:

    def test_structure(self, result):
        data = json.loads(render(JSONFormatter(), result))
        assert data["tool"]["name"] == "apiposture"
        assert data["summary"]["total_endpoints"] == 3
        assert data["summary"]["suppressed_findings"] == 1
        assert {f["rule_id"] for f in data["findings"]} >= {"AP001", "AP002", "AP004"}

    def test_grouped(self, result):
        data = json.loads(render(JSONFormatter(group_by="framework"), result))
        assert set(data["grouped_findings"]) == {"chi", "gin"}


class TestSARIFFormatter:

    def test_rules_and_results(self, result):
        sarif = json.loads(render(SARIFFormatter(), result))
        run = sarif["runs"][0]
        assert sarif["version"] == "2.1.0"
        assert [r["id"] for r in run["tool"]["driver"]["rules"]] == [f"AP00{i}" for i in range(1, 9)]

        by_rule = {r["ruleId"]: r for r in run["results"]}
        assert by_rule["AP004"]["level"] == "error"
        assert by_rule["AP003"]["level"] == "warning"
        assert by_rule["AP004"]["locations"][0]["physicalLocation"]["region"]["startLine"] == 7
        assert by_rule["AP001"]["suppressions"][0]["justification"] == "reviewed"
        assert "suppressions" not in by_rule["AP004"]


class TestMarkdownFormatter:

    def test_sections(self, result):
        text = render(MarkdownFormatter(), result)
        assert text.startswith("# ApiPosture Security Scan Report")
        assert "### 🔴 Critical Severity" in text
        assert "`/accounts/{id}`" in text

    def test_grouping_by_rule(self, result):
        text = render(MarkdownFormatter(group_by="rule"), result)
        assert "### AP004: Missing authentication on write endpoint" in text


class TestTerminalFormatter:

    def test_plain_text(self, result):
        text = render(TerminalFormatter(), result)
        assert "ApiPosture Scan Results" in text
        assert "AP004" in text
        assert "/api/v1/users" in text

    def test_no_findings(self):
        empty = ProjectAnalyzer().analyze_content("x.go", "package main\n")
        assert "No security findings." in render(TerminalFormatter(), empty)


class TestHelpers:

    def test_group_findings_keeps_first_seen_order(self, result):
        groups = group_findings(result.findings, "file")
        assert list(groups) == ["svc/main.go", "svc/gin.go"]

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            get_formatter("xml")
