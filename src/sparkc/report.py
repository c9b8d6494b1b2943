"""Human-readable reports of compile results."""

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from sparkc.diagnostics import Severity
from sparkc.result import CompileResult

_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.CRASH: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
    Severity.VERBOSE_INFO: "dim",
    Severity.HINT: "green",
}


def format_summary(result: CompileResult) -> str:
    """Format a brief summary such as "2 errors, 1 warning in 412 ms"."""
    errors = len(result.errors)
    warnings = len(result.warnings)
    parts = []
    if errors:
        parts.append(f"{errors} error{'s' if errors != 1 else ''}")
    if warnings:
        parts.append(f"{warnings} warning{'s' if warnings != 1 else ''}")
    if not parts:
        parts.append("no problems")
    return f"{', '.join(parts)} in {result.compile_milliseconds} ms"


def format_problems(result: CompileResult, max_problems: Optional[int] = None) -> str:
    """Format all problems as a plain-text report.

    Args:
        result: Compile result to report on
        max_problems: Maximum number of problems to include (None = all)

    Returns:
        Formatted report ending with a summary line
    """
    if not result.problems:
        return f"Compiled successfully: {format_summary(result)}"

    shown = result.problems if max_problems is None else result.problems[:max_problems]
    lines = []
    for problem in shown:
        line = str(problem)
        if problem.begin is not None:
            line += f" @{problem.begin}..{problem.end}"
        lines.append(line)

    if max_problems is not None and len(result.problems) > max_problems:
        lines.append(f"... and {len(result.problems) - max_problems} more problems")

    status = "Compiled successfully" if result.succeeded() else "Compile failed"
    lines.append(f"{status}: {format_summary(result)}")
    return "\n".join(lines)


def problems_table(result: CompileResult) -> Table:
    """Build a Rich Table with one row per problem."""
    table = Table(show_edge=False, box=None, padding=(0, 1), expand=False)
    table.add_column("Severity", no_wrap=True, min_width=8)
    table.add_column("Location", no_wrap=True)
    table.add_column("Message")

    for problem in result.problems:
        location = ""
        if problem.uri is not None:
            location = problem.uri
            if problem.begin is not None:
                location += f":{problem.begin}"
        table.add_row(
            Text(problem.severity.value, style=_SEVERITY_STYLES[problem.severity]),
            Text(location, style="dim"),
            Text(problem.message),
        )
    return table


def render_problems(result: CompileResult, console: Optional[Console] = None) -> None:
    """Print the problems table and summary to a Rich console."""
    console = console if console is not None else Console()
    if result.problems:
        console.print(problems_table(result))
    style = "green" if result.succeeded() else "red"
    console.print(Text(format_summary(result), style=style))
