"""
ApiPosture command line interface.

Usage:
    apiposture scan ./service                 # terminal report
    apiposture scan ./service -o sarif -f out.sarif
    apiposture scan https://github.com/org/repo.git --fail-on high
    apiposture rules
    apiposture version
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

import git
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .analyzer import ProjectAnalyzer
from .config import ScannerConfig, find_config
from .errors import ConfigError
from .models import Endpoint, Finding, Framework, HTTPMethod, ScanResult, SecurityClassification, Severity
from .output import GROUP_BY_CHOICES, FORMATTERS, TerminalFormatter, get_formatter
from .rules import RuleEngine

SUBCOMMANDS = ("scan", "rules", "version")
SEVERITY_CHOICES = [s.value for s in Severity]
SORT_CHOICES = ("severity", "route", "method", "classification")


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured logging for the scanner."""
    logger = logging.getLogger("apiposture")
    logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        ))
        logger.addHandler(file_handler)

    return logger


logger = logging.getLogger("apiposture.cli")


# =============================================================================
# GIT HELPER
# =============================================================================
def is_git_url(target: str) -> bool:
    return target.startswith(("http://", "https://", "git@"))


def clone_repo(url: str, console: Console) -> str:
    tmp = tempfile.mkdtemp(prefix="apiposture_scan_")
    console.print(f"[cyan]Cloning: {url}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print("[green] Cloned[/green]")
    return tmp


# =============================================================================
# FILTERING & SORTING
# =============================================================================
CLASSIFICATION_RANK = {
    SecurityClassification.PUBLIC: 0,
    SecurityClassification.AUTHENTICATED: 1,
    SecurityClassification.ROLE_RESTRICTED: 2,
    SecurityClassification.POLICY_RESTRICTED: 3,
}


def filter_endpoints(endpoints: List[Endpoint], args: argparse.Namespace) -> List[Endpoint]:
    result = []
    classifications = {SecurityClassification(c) for c in args.classification or []}
    methods = {HTTPMethod(m) for m in args.method or []}
    frameworks = {Framework(f) for f in args.framework or []}
    needle = (args.route_contains or "").lower()

    for ep in endpoints:
        if classifications and ep.classification not in classifications:
            continue
        if methods and not methods.intersection(ep.methods):
            continue
        if frameworks and ep.framework not in frameworks:
            continue
        if needle and needle not in ep.full_route().lower():
            continue
        result.append(ep)
    return result


def filter_findings(findings: List[Finding], endpoints: List[Endpoint],
                    threshold: Severity, args: argparse.Namespace) -> List[Finding]:
    kept = {id(ep) for ep in endpoints}
    rule_ids = {r.upper() for r in args.rule or []}
    return [
        f for f in findings
        if id(f.endpoint) in kept
        and f.severity.at_least(threshold)
        and (not rule_ids or f.rule_id in rule_ids)
        and (args.show_suppressed or not f.suppressed)
    ]


def _endpoint_sort_key(sort_by: str):
    if sort_by == "route":
        return lambda ep: ep.full_route()
    if sort_by == "method":
        return lambda ep: ep.display_methods()
    if sort_by == "classification":
        return lambda ep: CLASSIFICATION_RANK[ep.classification]
    return None


def sort_results(endpoints: List[Endpoint], findings: List[Finding],
                 sort_by: str, descending: bool):
    if sort_by == "severity":
        # Most severe first unless ascending order is asked for explicitly
        findings = sorted(findings, key=lambda f: f.severity.order, reverse=descending)
        return endpoints, findings
    key = _endpoint_sort_key(sort_by)
    endpoints = sorted(endpoints, key=key, reverse=descending)
    findings = sorted(findings, key=lambda f: key(f.endpoint), reverse=descending)
    return endpoints, findings


# =============================================================================
# COMMANDS
# =============================================================================
def build_config(args: argparse.Namespace, target: str) -> ScannerConfig:
    config_path = args.config or find_config(target)
    config = ScannerConfig.from_file(config_path) if config_path else ScannerConfig.from_env()
    if args.workers is not None:
        config.parallel_workers = args.workers
    return config


def cmd_scan(args: argparse.Namespace) -> int:
    out = Console(no_color=args.no_color, stderr=args.output != "terminal")
    target = args.path
    tmp = None
    exit_code = 0

    try:
        if is_git_url(target):
            tmp = clone_repo(target, out)
            target = tmp
        elif not os.path.exists(target):
            out.print(f"[red]Error: {target} not found[/red]")
            return 1

        config = build_config(args, target)
        threshold = Severity(args.severity) if args.severity else config.severity_threshold
        analyzer = ProjectAnalyzer(config)

        show_progress = args.output == "terminal" and not args.quiet
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      BarColumn(), TextColumn("{task.percentage:>3.0f}%"),
                      console=out, disable=not show_progress, transient=True) as prog:
            task = prog.add_task("[cyan]Scanning", total=100)

            def progress_cb(cur: int, tot: int, fp: str) -> None:
                prog.update(task, completed=(cur / tot) * 100,
                            description=f"[cyan]{Path(fp).name[:25]}")

            result: ScanResult = analyzer.analyze(target, parallel=args.parallel, progress_cb=progress_cb)

        endpoints = filter_endpoints(result.endpoints, args)
        findings = filter_findings(result.findings, endpoints, threshold, args)
        endpoints, findings = sort_results(endpoints, findings, args.sort_by, args.sort_dir == "desc")

        formatter = get_formatter(args.output, group_by=args.group_by)
        if args.file:
            report = Path(args.file)
            if not report.suffix:
                report = report.with_suffix(formatter.file_extension())
            report.write_text(formatter.format(result, endpoints, findings), encoding="utf-8")
            out.print(f"[green] Report written: {report}[/green]")
        elif isinstance(formatter, TerminalFormatter):
            formatter.render(out, result, endpoints, findings)
        else:
            sys.stdout.write(formatter.format(result, endpoints, findings) + "\n")

        if args.fail_on:
            failing = result.findings_at_or_above(Severity(args.fail_on))
            if failing:
                out.print(f"\n[bold red] Failed: {len(failing)} findings at or above "
                          f"{args.fail_on}[/bold red]")
                exit_code = 1

    except KeyboardInterrupt:
        out.print("\n[yellow]Interrupted[/yellow]")
        return 130
    except (ConfigError, FileNotFoundError, git.GitCommandError) as e:
        out.print(f"\n[red]Error: {e}[/red]")
        return 1
    except Exception as e:
        logger.error(f"Scan failed: {e}")
        out.print(f"\n[red]Error: {e}[/red]")
        if args.verbose:
            out.print_exception()
        return 1
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    return exit_code


def cmd_rules(args: argparse.Namespace) -> int:
    console = Console(no_color=args.no_color)
    t = Table(title=" ApiPosture Rules", box=box.ROUNDED, header_style="bold magenta")
    t.add_column("ID", style="cyan", width=7)
    t.add_column("Name", max_width=40)
    t.add_column("Severity", width=10)
    t.add_column("Description", max_width=70)
    for rule in RuleEngine().rules:
        t.add_row(rule.rule_id, rule.name, rule.severity.value, rule.description)
    console.print(t)
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    console = Console(no_color=args.no_color)
    console.print(Panel.fit(
        f"[bold cyan]ApiPosture v{__version__}[/bold cyan]\n"
        "[dim]Go API authorization posture scanner: Gin | Echo | Chi | Fiber | net/http[/dim]",
        border_style="cyan",
    ))
    return 0


# =============================================================================
# ARGUMENT PARSING
# =============================================================================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiposture",
        description=f"ApiPosture v{__version__}: static authorization posture analysis for Go APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--no-color", action="store_true", help="Disable colored output")
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    common.add_argument("--log-file", metavar="FILE", help="Write JSON-lines debug log to FILE")

    scan = sub.add_parser("scan", parents=[common], help="Scan a Go project",
                          formatter_class=argparse.RawDescriptionHelpFormatter)
    scan.add_argument("path", nargs="?", default=".", help="Directory, file or Git URL to scan")

    output_group = scan.add_argument_group("Output Options")
    output_group.add_argument("-o", "--output", choices=sorted(FORMATTERS), default="terminal",
                              help="Output format (default: terminal)")
    output_group.add_argument("-f", "--file", metavar="FILE", help="Write the report to FILE (the format's extension is added when FILE has none)")
    output_group.add_argument("--group-by", choices=GROUP_BY_CHOICES, help="Group findings")
    output_group.add_argument("--sort-by", choices=SORT_CHOICES, default="severity")
    output_group.add_argument("--sort-dir", choices=("asc", "desc"), default="desc")
    output_group.add_argument("--show-suppressed", action="store_true",
                              help="Include suppressed findings in the report")
    output_group.add_argument("-q", "--quiet", action="store_true", help="No progress bar")

    filter_group = scan.add_argument_group("Filters")
    filter_group.add_argument("--severity", choices=SEVERITY_CHOICES,
                              help="Minimum severity to report (default: config min_severity)")
    filter_group.add_argument("--classification", action="append",
                              choices=[c.value for c in SecurityClassification])
    filter_group.add_argument("--method", action="append", choices=[m.value for m in HTTPMethod],
                              type=str.upper)
    filter_group.add_argument("--route-contains", metavar="TEXT")
    filter_group.add_argument("--framework", action="append",
                              choices=[f.value for f in Framework if f is not Framework.UNKNOWN])
    filter_group.add_argument("--rule", action="append", metavar="ID", help="Only show these rule IDs")

    scan_group = scan.add_argument_group("Scan Options")
    scan_group.add_argument("-c", "--config", metavar="FILE", help="Configuration file (YAML/JSON)")
    scan_group.add_argument("--parallel", action="store_true", help="Enable parallel file scanning")
    scan_group.add_argument("--workers", type=int, help="Number of parallel workers")
    scan_group.add_argument("--fail-on", choices=SEVERITY_CHOICES,
                            help="Exit with code 1 if findings at or above this severity exist")
    scan.set_defaults(func=cmd_scan)

    rules = sub.add_parser("rules", parents=[common], help="List the rule catalog")
    rules.set_defaults(func=cmd_rules)

    version = sub.add_parser("version", parents=[common], help="Show version")
    version.set_defaults(func=cmd_version)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    argv = list(sys.argv[1:] if argv is None else argv)
    # "apiposture ./src" is shorthand for "apiposture scan ./src"
    if not argv or (argv[0] not in SUBCOMMANDS and argv[0] not in ("-h", "--help", "--version")):
        argv.insert(0, "scan")

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING", args.log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
