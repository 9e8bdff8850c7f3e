#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from cleanse.app import build_services
from cleanse.common.logging import configure_logging
from cleanse.config import ConfigurationError
from cleanse.domain.errors import ValidationError
from cleanse.domain.model import IssueFilter, ResolutionStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from cleanse.app import CleanseServices
    from cleanse.domain.model import AnalysisRun, Issue, IssueHistoryEntry


def _parse_status(value: str) -> ResolutionStatus:
    normalized = value.strip().replace("-", "_")
    try:
        return ResolutionStatus[normalized.upper()]
    except KeyError:
        choices = ", ".join(status.name for status in ResolutionStatus)
        raise argparse.ArgumentTypeError(
            f"invalid status {value!r} (choose from {choices})"
        ) from None


def _add_scope_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--all", action="store_true", dest="include_inactive", help="Include inactive issues"
    )


def _issue_filter(args: argparse.Namespace) -> IssueFilter:
    return IssueFilter(
        is_active=None if args.include_inactive else True,
        issue_code=args.code,
        rule_code=args.rule,
        is_ignored=args.is_ignored,
        resolution_status=args.status,
        assigned_to=args.assigned_to,
        unassigned=args.unassigned,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cleanse", description="Inspect and manage data-quality issues"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    issues = commands.add_parser("issues", help="Inspect and triage issues")
    issue_commands = issues.add_subparsers(dest="issue_command", required=True)

    list_parser = issue_commands.add_parser("list", help="List issues ordered by CPH")
    _add_scope_argument(list_parser)
    list_parser.add_argument("--code", help="Only list issues with this issue code")
    list_parser.add_argument("--rule", help="Only list issues raised by this rule code")
    list_parser.add_argument("--status", type=_parse_status, help="Only this resolution status")
    ignored = list_parser.add_mutually_exclusive_group()
    ignored.add_argument(
        "--ignored", action="store_const", const=True, dest="is_ignored", help="Only ignored"
    )
    ignored.add_argument(
        "--not-ignored", action="store_const", const=False, dest="is_ignored", help="Hide ignored"
    )
    assignee = list_parser.add_mutually_exclusive_group()
    assignee.add_argument("--assigned-to", help="Only issues assigned to this user")
    assignee.add_argument("--unassigned", action="store_true", help="Only unassigned issues")

    summary_parser = issue_commands.add_parser("summary", help="Count issues per issue code")
    _add_scope_argument(summary_parser)

    for name, help_text in (("show", "Show one issue"), ("history", "Show an issue's history")):
        sub = issue_commands.add_parser(name, help=help_text)
        sub.add_argument("issue_id")

    for name, help_text in (
        ("ignore", "Mark an issue as ignored"),
        ("unignore", "Clear the ignored flag"),
        ("unassign", "Clear the assignee"),
    ):
        sub = issue_commands.add_parser(name, help=help_text)
        sub.add_argument("issue_id")
        sub.add_argument("--by", required=True, dest="performed_by", help="Acting user")

    status_parser = issue_commands.add_parser("status", help="Set the resolution status")
    status_parser.add_argument("issue_id")
    status_parser.add_argument("status", type=_parse_status)
    status_parser.add_argument("--by", required=True, dest="performed_by", help="Acting user")

    assign_parser = issue_commands.add_parser("assign", help="Assign an issue")
    assign_parser.add_argument("issue_id")
    assign_parser.add_argument("assignee")
    assign_parser.add_argument("--by", required=True, dest="performed_by", help="Acting user")

    runs = commands.add_parser("runs", help="Inspect analysis runs")
    run_commands = runs.add_subparsers(dest="run_command", required=True)
    show_run = run_commands.add_parser("show", help="Show one run")
    show_run.add_argument("run_id")
    run_commands.add_parser("latest", help="Show the most recent run")

    commands.add_parser("reset", help="Delete all issues, history and runs")
    return parser


def _format_issue(issue: Issue) -> str:
    flags = ["active" if issue.is_active else "inactive"]
    if issue.is_ignored:
        flags.append("ignored")
    lines = [
        f"{issue.id}  {issue.issue_code}  {issue.cph}  [{', '.join(flags)}]",
        f"  rule: {issue.rule_code} ({issue.error_code}) {issue.error_description}".rstrip(),
        f"  status: {issue.resolution_status.name}  assigned to: {issue.assigned_to or '-'}",
        f"  last run: {issue.operation_id}  updated: {issue.last_updated_at.isoformat()}",
    ]
    if issue.cts_lid_full_identifier:
        lines.append(f"  lid: {issue.cts_lid_full_identifier}")
    return "\n".join(lines)


def _format_history(entry: IssueHistoryEntry) -> str:
    detail = f"  {entry.detail}" if entry.detail else ""
    return (
        f"{entry.occurred_at.isoformat()}  {entry.action.name:<25}  {entry.performed_by}{detail}"
    )


def _format_run(run: AnalysisRun) -> str:
    lines = [
        f"{run.id}  {run.status.name}  {run.progress_percentage:.1f}%  {run.status_description}",
        f"  started: {run.started_at.isoformat()}"
        f"  completed: {run.completed_at.isoformat() if run.completed_at else '-'}",
        f"  records: {run.records_analyzed}/{run.total_records}"
        f"  found: {run.issues_found}  resolved: {run.issues_resolved}",
    ]
    if run.duration_ms is not None:
        lines.append(f"  duration: {run.duration_ms}ms")
    if run.error:
        lines.append(f"  error: {run.error}")
    if run.report_url:
        lines.append(f"  report: {run.report_url}")
    return "\n".join(lines)


def _run_issue_command(args: argparse.Namespace, services: CleanseServices) -> None:
    issues = services.issues
    match args.issue_command:
        case "list":
            found = issues.list_issues(_issue_filter(args))
            for issue in found:
                print(_format_issue(issue))
            print(f"{len(found)} issue(s)")
        case "summary":
            scope = IssueFilter.everything() if args.include_inactive else IssueFilter()
            for summary in issues.summary_by_code(scope):
                print(f"{summary.issue_code:<30} {summary.count:>8}")
            print(f"{issues.count_active()} active issue(s)")
        case "show":
            print(_format_issue(issues.get(args.issue_id)))
        case "history":
            for entry in issues.history(args.issue_id):
                print(_format_history(entry))
        case "ignore":
            print(_format_issue(issues.ignore(args.issue_id, args.performed_by)))
        case "unignore":
            print(_format_issue(issues.unignore(args.issue_id, args.performed_by)))
        case "status":
            updated = issues.update_resolution_status(args.issue_id, args.status, args.performed_by)
            print(_format_issue(updated))
        case "assign":
            print(_format_issue(issues.assign(args.issue_id, args.assignee, args.performed_by)))
        case "unassign":
            print(_format_issue(issues.unassign(args.issue_id, args.performed_by)))
        case other:
            raise ValueError(f"Unknown issues command: {other}")


def _run_command(args: argparse.Namespace, services: CleanseServices) -> None:
    match args.command:
        case "issues":
            _run_issue_command(args, services)
        case "runs" if args.run_command == "show":
            print(_format_run(services.runs.get(args.run_id)))
        case "runs":
            latest = services.runs.latest()
            print(_format_run(latest) if latest is not None else "No analysis runs recorded")
        case "reset":
            deleted_issues = services.issues.delete_all()
            deleted_runs = services.runs.delete_all()
            print(f"Deleted {deleted_issues} issue(s) and {deleted_runs} run(s)")
        case other:
            raise ValueError(f"Unknown command: {other}")


def main(argv: Sequence[str] | None = None, *, services: CleanseServices | None = None) -> None:
    """Main application entry point."""

    parsed_args = _build_parser().parse_args(list(argv) if argv is not None else sys.argv[1:])
    configure_logging(level="DEBUG" if parsed_args.verbose else None)

    try:
        _run_command(parsed_args, services or build_services())
    except (ValidationError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
