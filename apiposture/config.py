"""
Scanner configuration.

Loaded from environment variables, a YAML/JSON file, or CLI arguments,
in that order of increasing precedence (the CLI applies its own overrides).
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigError
from .models import Severity

logger = logging.getLogger("apiposture.config")

DEFAULT_INCLUDE: List[str] = ["**/*.go"]

DEFAULT_EXCLUDE: List[str] = [
    "**/vendor/**",
    "**/*_test.go",
    "**/testdata/**",
    "**/.git/**",
    "**/node_modules/**",
]

CONFIG_FILE_NAMES = (".apiposture.yaml", ".apiposture.yml", "apiposture.yaml", "apiposture.yml")


@dataclass
class Suppression:
    """Silences one rule (or ``*`` for all) on routes matching a pattern."""
    rule: str
    route: str = ""
    reason: str = ""

    def matches(self, rule_id: str, route: str) -> bool:
        if self.rule != rule_id and self.rule != "*":
            return False
        if not self.route:
            return True
        try:
            return re.search(self.route, route) is not None
        except re.error:
            return route == self.route or self.route in route

    def to_dict(self) -> Dict[str, str]:
        return {"rule": self.rule, "route": self.route, "reason": self.reason}


def _split_env_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of strings")
    return [str(v) for v in value]


@dataclass
class ScannerConfig:
    """
    Scanner configuration with sensible defaults.
    Can be loaded from environment variables, config file, or CLI args.
    """
    # File selection
    include: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    max_file_size_mb: float = 10

    # Rules
    enabled_rules: List[str] = field(default_factory=list)
    disabled_rules: List[str] = field(default_factory=list)
    suppressions: List[Suppression] = field(default_factory=list)
    auth_patterns: List[str] = field(default_factory=list)
    min_severity: str = "info"

    # Execution
    parallel_workers: int = 4
    timeout_seconds: int = 30  # per file

    def __post_init__(self):
        if not self.include:
            self.include = list(DEFAULT_INCLUDE)

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """Load configuration from APIPOSTURE_* environment variables."""
        try:
            return cls(
                max_file_size_mb=float(os.getenv("APIPOSTURE_MAX_FILE_SIZE", 10)),
                parallel_workers=int(os.getenv("APIPOSTURE_WORKERS", 4)),
                timeout_seconds=int(os.getenv("APIPOSTURE_TIMEOUT", 30)),
                min_severity=os.getenv("APIPOSTURE_MIN_SEVERITY", "info"),
                enabled_rules=_split_env_list(os.getenv("APIPOSTURE_ENABLED_RULES")),
                disabled_rules=_split_env_list(os.getenv("APIPOSTURE_DISABLED_RULES")),
                auth_patterns=_split_env_list(os.getenv("APIPOSTURE_AUTH_PATTERNS")),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid APIPOSTURE_* environment value: {e}") from e

    @classmethod
    def from_file(cls, path: str) -> "ScannerConfig":
        """Load configuration from a JSON or YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Malformed config file {path}: {e}") from e

        config = cls.from_dict(data or {})
        logger.info(f"Loaded configuration from {path}")
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerConfig":
        if not isinstance(data, dict):
            raise ConfigError("Config root must be a mapping")

        rules = data.get("rules") or {}
        if not isinstance(rules, dict):
            raise ConfigError("'rules' must be a mapping with 'enabled' / 'disabled' lists")

        suppressions = []
        for entry in data.get("suppressions") or []:
            if not isinstance(entry, dict) or not entry.get("rule"):
                raise ConfigError(f"Invalid suppression entry: {entry!r}")
            suppressions.append(Suppression(
                rule=str(entry["rule"]),
                route=str(entry.get("route") or ""),
                reason=str(entry.get("reason") or ""),
            ))

        kwargs: Dict[str, Any] = {
            "include": _as_str_list(data, "include") or list(DEFAULT_INCLUDE),
            "enabled_rules": _as_str_list(rules, "enabled"),
            "disabled_rules": _as_str_list(rules, "disabled"),
            "suppressions": suppressions,
            "auth_patterns": _as_str_list(data, "auth_patterns"),
            "min_severity": str(data.get("min_severity") or "info"),
        }
        if "exclude" in data:
            kwargs["exclude"] = _as_str_list(data, "exclude")
        try:
            for key, cast in (("parallel_workers", int), ("timeout_seconds", int), ("max_file_size_mb", float)):
                if data.get(key) is not None:
                    kwargs[key] = cast(data[key])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e
        return cls(**kwargs)

    # -------------------------------------------------------------------------
    # Rule selection
    # -------------------------------------------------------------------------

    def active_rules(self) -> Optional[List[str]]:
        """Enabled minus disabled, or None when every rule is enabled."""
        if not self.enabled_rules:
            return None
        disabled = set(self.disabled_rules)
        return [r for r in self.enabled_rules if r not in disabled]

    def is_rule_enabled(self, rule_id: str) -> bool:
        if self.enabled_rules and rule_id not in self.enabled_rules:
            return False
        return rule_id not in self.disabled_rules

    def is_suppressed(self, rule_id: str, route: str) -> Tuple[bool, str]:
        for suppression in self.suppressions:
            if suppression.matches(rule_id, route):
                return True, suppression.reason
        return False, ""

    @property
    def severity_threshold(self) -> Severity:
        return Severity.parse(self.min_severity)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "include": list(self.include),
            "exclude": list(self.exclude),
            "rules": {"enabled": list(self.enabled_rules), "disabled": list(self.disabled_rules)},
            "suppressions": [s.to_dict() for s in self.suppressions],
            "auth_patterns": list(self.auth_patterns),
            "min_severity": self.min_severity,
            "parallel_workers": self.parallel_workers,
            "timeout_seconds": self.timeout_seconds,
            "max_file_size_mb": self.max_file_size_mb,
        }


def find_config(start_path: str) -> Optional[str]:
    """Walk up from start_path looking for a known config file name."""
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent
    for directory in [current, *current.parents]:
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return str(candidate)
    return None
