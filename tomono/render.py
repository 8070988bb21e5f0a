"""
Rendering functions for tomono output.

Core functions return data, this module makes it human-readable.
"""

import json
from typing import Iterator

from rich.table import Table
from rich.console import Console
from rich import box

from .domain.operation import ConsolidationSummary

console = Console()


def summary_rows(summary: ConsolidationSummary) -> Iterator[list]:
    for source in summary.sources:
        pruned = source.prune.merged if source.prune and source.prune.deleted else []
        yield [
            source.name,
            ", ".join(b.branch for b in source.merged) or "-",
            str(sum(1 for b in source.branches if b.created)),
            ", ".join(b.branch for b in source.skipped) or "-",
            ", ".join(pruned) or "-",
            str(len(source.tags)),
        ]


def render_summary_table(summary: ConsolidationSummary) -> None:
    """
    Render a consolidation summary as a pretty table.

    Args:
        summary: Result of a consolidation run
    """
    if not summary.sources:
        console.print("[yellow]No repositories were consolidated.[/yellow]")
        return

    table = Table(
        title=f"Monorepo {summary.target}",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Source", style="cyan")
    table.add_column("Merged branches")
    table.add_column("Created", justify="right")
    table.add_column("Skipped")
    table.add_column("Pruned")
    table.add_column("Tags renamed", justify="right")

    for row in summary_rows(summary):
        table.add_row(*row)

    console.print(table)

    if summary.published:
        console.print(f"[green]✓[/green] Pushed to {summary.url}")
    else:
        console.print(f"[yellow]Not pushed[/yellow]; see {summary.target}")


def render_summary_jsonl(summary: ConsolidationSummary) -> Iterator[str]:
    """One JSON line per source, then the run summary."""
    for source in summary.sources:
        yield json.dumps(source.to_dict(), ensure_ascii=False)
    yield json.dumps(summary.to_dict(), ensure_ascii=False)
