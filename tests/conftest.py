"""Shared fixtures for ApiPosture tests."""

from typing import Dict, List, Optional

import pytest

from apiposture.analyzer import ProjectAnalyzer
from apiposture.config import ScannerConfig
from apiposture.models import AuthorizationInfo, Endpoint, Framework, HTTPMethod, ScanResult
from apiposture.source import SourceLoader


@pytest.fixture
def analyzer():
    return ProjectAnalyzer(ScannerConfig())


@pytest.fixture
def loader():
    return SourceLoader()


@pytest.fixture
def scan(analyzer):
    """Scan inline Go source and return the ScanResult."""
    def _scan(content: str, file_path: str = "main.go") -> ScanResult:
        return analyzer.analyze_content(file_path, content)
    return _scan


@pytest.fixture
def write_project(tmp_path):
    """Write {relative path: Go source} into tmp_path and return the root."""
    def _write(files: Dict[str, str]):
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path
    return _write


def make_endpoint(route: str = "/users", methods: Optional[List[HTTPMethod]] = None,
                  auth: Optional[AuthorizationInfo] = None, **kwargs) -> Endpoint:
    return Endpoint(
        route=route,
        methods=methods or [HTTPMethod.GET],
        file_path=kwargs.pop("file_path", "main.go"),
        line_number=kwargs.pop("line_number", 10),
        framework=kwargs.pop("framework", Framework.GIN),
        authorization=auth or AuthorizationInfo(),
        **kwargs,
    )


def by_route(result: ScanResult) -> Dict[str, Endpoint]:
    return {ep.full_route(): ep for ep in result.endpoints}


def rule_ids(findings) -> List[str]:
    return [f.rule_id for f in findings]


GIN_E2E = '''package main

import (
	"net/http"

	"github.com/gin-gonic/gin"
)

func main() {
	r := gin.Default()

	api := r.Group("/api/v1", AuthMiddleware())
	{
		api.GET("/users", listUsers)
		api.POST("/items", PublicMiddleware(), createItem)
	}

	r.Run(":8080")
}

func listUsers(c *gin.Context) {
	c.JSON(http.StatusOK, nil)
}
'''
