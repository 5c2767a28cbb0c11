"""
ApiPosture: static authorization posture scanner for Go HTTP APIs.

Discovers routes registered with Gin, Echo, Chi, Fiber and net/http,
resolves the authorization each one effectively carries, classifies it
and reports security findings.
"""

__version__ = "1.0.0"

from .analyzer import ProjectAnalyzer
from .config import ScannerConfig
from .models import (
    AuthorizationInfo,
    Endpoint,
    Finding,
    Framework,
    HTTPMethod,
    ScanResult,
    SecurityClassification,
    Severity,
)

__all__ = [
    "AuthorizationInfo",
    "Endpoint",
    "Finding",
    "Framework",
    "HTTPMethod",
    "ProjectAnalyzer",
    "ScanResult",
    "ScannerConfig",
    "SecurityClassification",
    "Severity",
    "__version__",
]
