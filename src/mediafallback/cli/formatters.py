"""
CLI Output Formatters

Provides formatted output for CLI commands: strategy tables, plan tables and
the performance report.
"""

from typing import Any, Dict, List, Sequence

from tabulate import tabulate

from mediafallback.core.catalog import Strategy
from mediafallback.core.selector import PlannedStrategy


# Color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    OKBLUE = "\033[94m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"

    @staticmethod
    def green(text: str) -> str:
        return f"{Colors.OKGREEN}{text}{Colors.ENDC}"

    @staticmethod
    def red(text: str) -> str:
        return f"{Colors.FAIL}{text}{Colors.ENDC}"

    @staticmethod
    def yellow(text: str) -> str:
        return f"{Colors.WARNING}{text}{Colors.ENDC}"

    @staticmethod
    def bold(text: str) -> str:
        return f"{Colors.BOLD}{text}{Colors.ENDC}"


def format_strategy_table(strategies: Sequence[Strategy]) -> str:
    """Format the catalog as a table, in registration order."""
    if not strategies:
        return "No strategies configured."

    headers = ["Name", "Priority", "Timeout (ms)", "Retries", "Requires"]
    rows = [
        [
            s.name,
            s.priority,
            s.timeout_ms,
            s.max_retries,
            ", ".join(sorted(c.value for c in s.required_capabilities)) or "-",
        ]
        for s in strategies
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def format_plan_table(plan: Sequence[PlannedStrategy]) -> str:
    """
    Format an execution plan.

    Args:
        plan: Ordered PlannedStrategy list from the selector

    Returns:
        Formatted table string
    """
    if not plan:
        return "Empty plan."

    headers = ["#", "Strategy", "Score", "Timeout (ms)", "Retries"]
    rows: List[List[Any]] = []
    for index, planned in enumerate(plan, start=1):
        rows.append([
            index,
            planned.name,
            f"{planned.score:.3f}",
            f"{planned.effective_timeout_ms} (base {planned.strategy.timeout_ms})",
            f"{planned.effective_retries} (base {planned.strategy.max_retries})",
        ])
    return tabulate(rows, headers=headers, tablefmt="grid")


def format_report(report: Dict[str, Any]) -> str:
    """Format ``FallbackEngine.get_performance_report()`` for display."""
    lines = []
    lines.append("=" * 50)
    lines.append(Colors.bold("Fallback Performance Report"))
    lines.append("=" * 50)
    lines.append("")
    lines.append(f"{Colors.bold('Current strategy:')} {report.get('current_strategy') or 'N/A'}")
    lines.append(f"{Colors.bold('Network:')} {report.get('network_condition', 'unknown')}")
    lines.append(f"{Colors.bold('Error rate:')} {report.get('error_rate', 0.0):.2%}")
    lines.append("")

    rows = []
    for entry in report.get("strategies", []):
        available = entry.get("available")
        if available is None:
            status = "?"
        else:
            status = Colors.green("yes") if available else Colors.red("no")
        avg = entry.get("average_connection_ms")
        rows.append([
            entry["name"],
            status,
            f"{entry.get('success_rate', 0.0):.3f}",
            f"{avg:.1f}" if avg is not None else "-",
        ])
    if rows:
        lines.append(tabulate(rows, headers=["Strategy", "Available", "Success rate", "Avg connect (ms)"]))
        lines.append("")

    attempts = report.get("recent_attempts", [])
    if attempts:
        lines.append(Colors.bold("Recent attempts:"))
        for attempt in attempts:
            outcome = Colors.green("ok") if attempt["success"] else Colors.red(attempt.get("error_kind") or "failed")
            lines.append(
                f"  {attempt['strategy_name']}#{attempt['attempt_number']}: "
                f"{outcome} ({attempt['duration_ms']:.1f}ms)"
            )
        lines.append("")

    lines.append("=" * 50)
    return "\n".join(lines)
