"""Output formatting for operation results."""

from typing import Any

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from . import utils

console = Console()

QUERY_KEYS = ("queryString", "query")


def emit(result: dict, fmt: str) -> None:
    """
    Output an operation result.

    Args:
        result: Dict returned by a QueryBuilder operation
        fmt: Output format ("json" or "console")
    """
    if fmt == "json":
        print(utils.to_json(result))
        return

    if "error" in result:
        console.print(f"\n[red]✖ {result['error']}[/red] [dim]({result.get('code', 'Error')})[/dim]")
        rest = {k: v for k, v in result.items() if k not in ("error", "code")}
        if rest:
            _print_table(rest)
        console.print()
        return

    if "valid" in result and "errors" in result:
        emit_validation(result)
        return

    if "analysis" in result:
        emit_complexity(result["analysis"])
        return

    if result.get("message"):
        console.print(f"\n[green]✓[/green] {result['message']}")

    for key in QUERY_KEYS:
        if result.get(key):
            console.print()
            console.print(Syntax(result[key], "graphql", theme="ansi_dark", word_wrap=True))

    rest = {k: v for k, v in result.items() if k not in ("success", "message", "warnings", *QUERY_KEYS)}
    if rest:
        _print_table(rest)
    _print_warnings(result.get("warnings"))
    console.print()


def emit_validation(result: dict) -> None:
    if result["valid"]:
        console.print("\n[green]✓ Query is valid[/green]")
    else:
        console.print("\n[red]✖ Query is invalid[/red]\n")
        for message in result["errors"]:
            console.print(f"  [red]✖[/red] {message}")
    _print_warnings(result.get("warnings"))

    if result.get("query"):
        console.print()
        console.print(Syntax(result["query"], "graphql", theme="ansi_dark", word_wrap=True))
    console.print()


def emit_complexity(analysis: dict) -> None:
    console.print("\n[bold cyan]Query Complexity[/bold cyan]\n")
    limits = analysis.get("limits", {})

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Depth", _gauge(analysis["depth"], limits.get("maxDepth")))
    table.add_row("Fields", _gauge(analysis["fieldCount"], limits.get("maxFieldCount")))
    table.add_row("Complexity", _gauge(analysis["complexityScore"], limits.get("maxComplexityScore")))
    table.add_row("Timeout", f"[dim]{analysis.get('timeout')}s[/dim]")
    console.print(table)

    for message in analysis.get("errors", []):
        console.print(f"  [red]✖[/red] {message}")
    _print_warnings(analysis.get("warnings"))

    if analysis.get("recommendations"):
        console.print("\n[bold cyan]Recommendations:[/bold cyan]\n")
        for r in analysis["recommendations"]:
            console.print(f"  [blue]•[/blue] {r}")
    console.print()


def _gauge(value: float, limit) -> str:
    # green below 70% of the ceiling, yellow up to it, red above
    if not limit:
        return str(value)
    if value > limit:
        icon, color = "✖", "red"
    elif value > limit * 0.7:
        icon, color = "⚠", "yellow"
    else:
        icon, color = "✓", "green"
    return f"[{color}]{icon}[/{color}] {value} [dim]/ {limit}[/dim]"


def _print_warnings(warnings) -> None:
    for w in warnings or []:
        console.print(f"  [yellow]⚠[/yellow] {w}")


def _format(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return utils.to_json(value)
    return str(value)


def _print_table(data: dict) -> None:
    console.print()
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="yellow")
    for k, v in data.items():
        table.add_row(k, _format(v))
    console.print(table)


def print_kv(title: str, data: dict) -> None:
    """
    Print key-value pairs (for schema pull, config init).

    Args:
        title: Section title
        data: Key-value data
    """
    console.print(f"\n[bold cyan]{title}[/bold cyan]")
    _print_table(data)
    console.print()
