"""Tests for the command line interface."""

import json
import logging

import pytest

from apiposture import __version__
from apiposture.cli import build_parser, is_git_url, main, setup_logging

from .conftest import GIN_E2E

UNPROTECTED = '''package main

import "github.com/labstack/echo/v4"

func main() {
	e := echo.New()
	e.GET("/products", listProducts)
	e.DELETE("/products/:id", deleteProduct)
}
'''


@pytest.fixture
def project(write_project):
    return write_project({"main.go": UNPROTECTED, "api/gin.go": GIN_E2E})


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("apiposture")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


def scan_json(capsys, *args):
    code = main(["scan", *args, "-o", "json"])
    return code, json.loads(capsys.readouterr().out)


class TestScanCommand:

    def test_json_to_stdout(self, project, capsys):
        code, data = scan_json(capsys, str(project))
        assert code == 0
        assert data["summary"]["total_endpoints"] == 4
        assert len(data["endpoints"]) == 4

    def test_scan_is_default_command(self, project, capsys):
        code = main([str(project), "-o", "json"])
        assert code == 0
        assert json.loads(capsys.readouterr().out)["files_scanned"] == 2

    def test_terminal_report(self, project, capsys):
        assert main(["scan", str(project), "--no-color", "-q", "--group-by", "rule"]) == 0
        out = capsys.readouterr().out
        assert "ApiPosture Scan Results" in out
        assert "AP004" in out

    def test_report_file(self, project, tmp_path):
        out = tmp_path / "report.sarif"
        assert main(["scan", str(project), "-o", "sarif", "-f", str(out), "--no-color"]) == 0
        assert json.loads(out.read_text())["version"] == "2.1.0"

    def test_report_file_gets_format_extension(self, project, tmp_path):
        assert main(["scan", str(project), "-o", "json", "-f", str(tmp_path / "report"), "--no-color"]) == 0
        assert not (tmp_path / "report").exists()
        data = json.loads((tmp_path / "report.json").read_text())
        assert data["summary"]["total_endpoints"] == 4

    def test_fail_on(self, project, capsys):
        assert main(["scan", str(project), "-o", "json", "--fail-on", "critical"]) == 1

    def test_fail_on_not_reached(self, write_project, capsys):
        root = write_project({"main.go": GIN_E2E})
        assert main(["scan", str(root), "-o", "json", "--fail-on", "critical"]) == 0

    def test_missing_path(self, tmp_path, capsys):
        assert main(["scan", str(tmp_path / "missing"), "-o", "json"]) == 1

    def test_bad_config(self, project, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("rules: [nope]")
        assert main(["scan", str(project), "-c", str(bad), "-o", "json"]) == 1

    def test_config_file_is_applied(self, project, tmp_path, capsys):
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("rules:\n  enabled: [AP004]\n")
        _, data = scan_json(capsys, str(project), "-c", str(cfg))
        assert {f["rule_id"] for f in data["findings"]} == {"AP004"}


class TestFilters:

    def test_severity(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--severity", "critical")
        assert {f["rule_id"] for f in data["findings"]} == {"AP004"}

    def test_method(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--method", "delete")
        assert [e["route"] for e in data["endpoints"]] == ["/products/:id"]

    def test_classification(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--classification", "authenticated")
        assert [e["route"] for e in data["endpoints"]] == ["/api/v1/users"]
        assert data["findings"] == []

    def test_framework_and_route(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--framework", "gin", "--route-contains", "ITEMS")
        assert [e["route"] for e in data["endpoints"]] == ["/api/v1/items"]

    def test_rule(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--rule", "ap002")
        assert [f["rule_id"] for f in data["findings"]] == ["AP002"]

    def test_sort_by_route(self, project, capsys):
        _, data = scan_json(capsys, str(project), "--sort-by", "route", "--sort-dir", "asc")
        routes = [e["route"] for e in data["endpoints"]]
        assert routes == sorted(routes)

    def test_sort_by_severity(self, project, capsys):
        _, data = scan_json(capsys, str(project))
        order = {"critical": 4, "high": 3, "medium": 2, "low": 1, "info": 0}
        levels = [order[f["severity"]] for f in data["findings"]]
        assert levels == sorted(levels, reverse=True)


class TestOtherCommands:

    def test_rules(self, capsys):
        assert main(["rules"]) == 0
        out = capsys.readouterr().out
        for i in range(1, 9):
            assert f"AP00{i}" in out

    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out


class TestHelpers:

    def test_is_git_url(self):
        assert is_git_url("https://github.com/org/repo.git")
        assert is_git_url("git@github.com:org/repo.git")
        assert not is_git_url("./service")

    def test_parser_defaults(self):
        args = build_parser().parse_args(["scan"])
        assert args.path == "."
        assert args.output == "terminal"
        assert args.sort_by == "severity"

    def test_setup_logging_file(self, tmp_path):
        log_file = tmp_path / "scan.log"
        logger = setup_logging("DEBUG", str(log_file))
        logging.getLogger("apiposture.test").debug("hello")
        for handler in logger.handlers:
            handler.flush()
        assert '"message": "hello"' in log_file.read_text()
