"""
Output formatters: rich terminal report, JSON, Markdown and SARIF 2.1.0.
"""

from __future__ import annotations

import io
import json
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .models import Endpoint, Finding, ScanResult, SecurityClassification, Severity
from .rules import BUILTIN_RULES

SEVERITY_ORDER_DESC = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)

GROUP_BY_CHOICES = ("file", "classification", "rule", "framework")


def group_key(finding: Finding, group_by: str) -> str:
    ep = finding.endpoint
    if group_by == "file":
        return ep.file_path
    if group_by == "classification":
        return ep.classification.value
    if group_by == "rule":
        return f"{finding.rule_id}: {finding.rule_name}"
    if group_by == "framework":
        return ep.framework.value
    return ""


def group_findings(findings: List[Finding], group_by: Optional[str]) -> "OrderedDict[str, List[Finding]]":
    """Group findings by a key, keeping first-seen group order."""
    groups: "OrderedDict[str, List[Finding]]" = OrderedDict()
    for f in findings:
        groups.setdefault(group_key(f, group_by) if group_by else "", []).append(f)
    return groups


def report_dict(result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> Dict[str, Any]:
    """ScanResult.to_dict() restricted to the given endpoints and findings."""
    data = result.to_dict()
    data["endpoints"] = [e.to_dict() for e in endpoints]
    data["findings"] = [f.to_dict() for f in findings]
    return data


class OutputFormatter(ABC):
    """Base class for output formatters."""

    def __init__(self, group_by: Optional[str] = None):
        self.group_by = group_by

    @abstractmethod
    def format(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> str:
        pass

    @abstractmethod
    def file_extension(self) -> str:
        pass


# =============================================================================
# TERMINAL (rich)
# =============================================================================

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

CLASSIFICATION_STYLES = {
    SecurityClassification.PUBLIC: "red",
    SecurityClassification.AUTHENTICATED: "green",
    SecurityClassification.ROLE_RESTRICTED: "blue",
    SecurityClassification.POLICY_RESTRICTED: "magenta",
}


def fmt_severity(s: Severity) -> str:
    style = SEVERITY_STYLES.get(s, "white")
    return f"[{style}]{s.value.upper()}[/{style}]"


def fmt_classification(c: SecurityClassification) -> str:
    style = CLASSIFICATION_STYLES.get(c, "white")
    return f"[{style}]{c.value}[/{style}]"


class TerminalFormatter(OutputFormatter):
    """Human-readable report built from rich panels and tables."""

    MAX_ROWS = 200

    def __init__(self, group_by: Optional[str] = None, width: int = 140):
        super().__init__(group_by)
        self.width = width

    def make_summary(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> Panel:
        counts = {sev: 0 for sev in Severity}
        for f in findings:
            if not f.suppressed:
                counts[f.severity] += 1
        frameworks = ", ".join(f.value for f in result.frameworks_list()) or "none"
        by_class: Dict[SecurityClassification, int] = {c: 0 for c in SecurityClassification}
        for ep in endpoints:
            by_class[ep.classification] += 1

        txt = (
            f"[bold]Scan Path:[/bold] {result.scan_path}\n"
            f"[bold]Files Scanned:[/bold] {len(result.files_scanned)}"
            f" | Parse Errors: {len(result.parse_errors)}\n"
            f"[bold]Frameworks:[/bold] {frameworks}\n"
            f"[bold]Endpoints:[/bold] {len(endpoints)}\n"
            f"[bold]Duration:[/bold] {result.duration_ms}ms\n\n"
            "[bold cyan]By Classification:[/bold cyan]\n"
            + "\n".join(f"   {fmt_classification(c)}: {n}" for c, n in by_class.items())
            + "\n\n[bold cyan]Findings:[/bold cyan]\n"
            + "\n".join(f"   {fmt_severity(s)}: {counts[s]}" for s in SEVERITY_ORDER_DESC)
        )
        suppressed = sum(1 for f in findings if f.suppressed)
        if suppressed:
            txt += f"\n   [dim]suppressed: {suppressed}[/dim]"
        return Panel(txt, title=" ApiPosture Scan Results", border_style="cyan")

    def make_findings_table(self, findings: List[Finding], title: str = " Security Findings") -> Table:
        t = Table(title=title, box=box.ROUNDED, header_style="bold magenta")
        t.add_column("Severity", width=10)
        t.add_column("Rule", style="cyan", width=7)
        t.add_column("Route", max_width=40)
        t.add_column("Methods", width=12)
        t.add_column("Message", max_width=60)
        t.add_column("File:Line", style="dim", max_width=30)

        for f in findings[:self.MAX_ROWS]:
            ep = f.endpoint
            message = f.message if not f.suppressed else f"[dim](suppressed) {f.message}[/dim]"
            t.add_row(
                fmt_severity(f.severity), f.rule_id, ep.full_route(),
                ep.display_methods(), message, ep.short_location(),
            )
        if len(findings) > self.MAX_ROWS:
            t.add_row("...", "...", f"... +{len(findings) - self.MAX_ROWS} more", "", "", "")
        return t

    def make_endpoints_table(self, endpoints: List[Endpoint]) -> Table:
        t = Table(title=" Discovered Endpoints", box=box.ROUNDED, header_style="bold magenta")
        t.add_column("#", style="dim", width=4)
        t.add_column("Framework", style="blue", width=9)
        t.add_column("Methods", width=12)
        t.add_column("Route", max_width=40)
        t.add_column("Classification", width=18)
        t.add_column("Handler", max_width=28)
        t.add_column("File:Line", style="dim", max_width=30)

        for i, ep in enumerate(endpoints[:self.MAX_ROWS], 1):
            t.add_row(
                str(i), ep.framework.value, ep.display_methods(), ep.full_route(),
                fmt_classification(ep.classification), ep.handler_name, ep.short_location(),
            )
        if len(endpoints) > self.MAX_ROWS:
            t.add_row("...", "...", "...", f"... +{len(endpoints) - self.MAX_ROWS} more", "", "", "")
        return t

    def render(self, console: Console, result: ScanResult,
               endpoints: List[Endpoint], findings: List[Finding]) -> None:
        console.print(self.make_summary(result, endpoints, findings))
        if endpoints:
            console.print(self.make_endpoints_table(endpoints))
        if findings:
            for key, group in group_findings(findings, self.group_by).items():
                title = f" Security Findings: {key}" if key else " Security Findings"
                console.print(self.make_findings_table(group, title))
        else:
            console.print("[green]No security findings.[/green]")
        for path, error in result.parse_errors.items():
            console.print(f"[yellow]Parse error[/yellow] {path}: {error}")

    def format(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> str:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, no_color=True, highlight=False)
        self.render(console, result, endpoints, findings)
        return buffer.getvalue()

    def file_extension(self) -> str:
        return ".txt"


# =============================================================================
# JSON
# =============================================================================

class JSONFormatter(OutputFormatter):

    def format(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> str:
        data = report_dict(result, endpoints, findings)
        data["tool"] = {"name": "apiposture", "version": __version__}
        if self.group_by:
            data["grouped_findings"] = {
                key: [f.to_dict() for f in group]
                for key, group in group_findings(findings, self.group_by).items()
            }
        return json.dumps(data, indent=2)

    def file_extension(self) -> str:
        return ".json"


# =============================================================================
# MARKDOWN
# =============================================================================

SEVERITY_EMOJI = {
    Severity.CRITICAL: "🔴",
    Severity.HIGH: "🟠",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🔵",
    Severity.INFO: "⚪",
}


class MarkdownFormatter(OutputFormatter):

    def format(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> str:
        active = [f for f in findings if not f.suppressed]
        lines = ["# ApiPosture Security Scan Report", ""]

        frameworks = ", ".join(f.value for f in result.frameworks_list()) or "None"
        lines += [
            "## Summary",
            "",
            f"- **Scan Path:** `{result.scan_path}`",
            f"- **Files Scanned:** {len(result.files_scanned)}",
            f"- **Frameworks Detected:** {frameworks}",
            f"- **Endpoints Found:** {len(endpoints)}",
            f"- **Security Findings:** {len(active)}",
            "",
            "### Findings by Severity",
            "",
            "| Severity | Count |",
            "|----------|-------|",
        ]
        for sev in SEVERITY_ORDER_DESC:
            lines.append(f"| {sev.value.title()} | {sum(1 for f in active if f.severity == sev)} |")
        lines.append("")

        if active:
            lines += ["## Security Findings", ""]
            if self.group_by:
                for key, group in group_findings(active, self.group_by).items():
                    lines += [f"### {key}", ""]
                    lines += self._finding_lines(group, heading="####")
            else:
                for sev in SEVERITY_ORDER_DESC:
                    group = [f for f in active if f.severity == sev]
                    if not group:
                        continue
                    lines += [f"### {SEVERITY_EMOJI[sev]} {sev.value.title()} Severity", ""]
                    lines += self._finding_lines(group, heading="####")

        if endpoints:
            lines += [
                "## Discovered Endpoints",
                "",
                "| Route | Methods | Classification | Framework | Function | Location |",
                "|-------|---------|----------------|-----------|----------|----------|",
            ]
            for ep in endpoints:
                lines.append(
                    f"| `{ep.full_route()}` | {ep.display_methods()} | {ep.classification.value} "
                    f"| {ep.framework.value} | {ep.handler_name} | {ep.short_location()} |"
                )
            lines.append("")

        if result.parse_errors:
            lines += ["## Parse Errors", ""]
            lines += [f"- `{path}`: {error}" for path, error in result.parse_errors.items()]
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def _finding_lines(findings: List[Finding], heading: str) -> List[str]:
        lines = []
        for f in findings:
            lines += [
                f"{heading} {f.rule_id}: {f.rule_name}",
                "",
                f"- **Route:** `{f.route()}`",
                f"- **Methods:** {f.endpoint.display_methods()}",
                f"- **Location:** `{f.location()}`",
                f"- **Message:** {f.message}",
            ]
            if f.recommendation:
                lines.append(f"- **Recommendation:** {f.recommendation}")
            lines.append("")
        return lines

    def file_extension(self) -> str:
        return ".md"


# =============================================================================
# SARIF
# =============================================================================

SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}


class SARIFFormatter(OutputFormatter):
    """
    SARIF format for GitHub Security tab and other SAST tools.
    Static Analysis Results Interchange Format (SARIF) v2.1.0
    """

    def format(self, result: ScanResult, endpoints: List[Endpoint], findings: List[Finding]) -> str:
        sarif = {
            "$schema": "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json",
            "version": "2.1.0",
            "runs": [{
                "tool": {
                    "driver": {
                        "name": "ApiPosture",
                        "version": __version__,
                        "rules": self._generate_rules(),
                    }
                },
                "results": self._generate_results(result, findings),
                "invocations": [{
                    "executionSuccessful": True,
                    "endTimeUtc": datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                }],
            }],
        }
        return json.dumps(sarif, indent=2)

    def _generate_rules(self) -> List[Dict[str, Any]]:
        """Generate SARIF rule definitions."""
        rules = []
        for cls in BUILTIN_RULES:
            rules.append({
                "id": cls.rule_id,
                "name": "".join(w.capitalize() for w in cls.name.replace("/", " ").split()),
                "shortDescription": {"text": cls.name},
                "fullDescription": {"text": cls.description},
                "defaultConfiguration": {"level": SARIF_LEVELS[cls.severity]},
                "properties": {"severity": cls.severity.value},
            })
        return rules

    def _generate_results(self, result: ScanResult, findings: List[Finding]) -> List[Dict[str, Any]]:
        results = []
        base = Path(result.scan_path)
        for f in findings:
            ep = f.endpoint
            uri = Path(ep.file_path)
            try:
                uri = uri.relative_to(base)
            except ValueError:
                pass
            entry: Dict[str, Any] = {
                "ruleId": f.rule_id,
                "level": SARIF_LEVELS[f.severity],
                "message": {"text": f.message},
                "locations": [{
                    "physicalLocation": {
                        "artifactLocation": {"uri": uri.as_posix()},
                        "region": {"startLine": ep.line_number},
                    }
                }],
                "properties": {
                    "route": ep.full_route(),
                    "methods": [m.value for m in ep.methods],
                    "framework": ep.framework.value,
                    "classification": ep.classification.value,
                    "recommendation": f.recommendation,
                },
            }
            if f.suppressed:
                entry["suppressions"] = [{"kind": "external", "justification": f.suppression_reason}]
            results.append(entry)
        return results

    def file_extension(self) -> str:
        return ".sarif"


FORMATTERS = {
    "terminal": TerminalFormatter,
    "json": JSONFormatter,
    "markdown": MarkdownFormatter,
    "sarif": SARIFFormatter,
}


def get_formatter(name: str, group_by: Optional[str] = None) -> OutputFormatter:
    try:
        cls = FORMATTERS[name]
    except KeyError:
        raise ValueError(f"Unknown output format: {name}") from None
    return cls(group_by=group_by)
