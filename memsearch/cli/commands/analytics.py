"""Search analytics CLI commands."""

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from memsearch.search import SearchAnalytics


def get_analytics(ctx: click.Context) -> SearchAnalytics:
    """Analytics reader over the configured store."""
    return ctx.obj.engine.analytics or SearchAnalytics(ctx.obj.engine.store)


@click.command()
@click.option("--limit", "-n", type=int, default=10, help="Number of queries to show")
@click.option("--days", type=int, default=30, help="Look back this many days")
@click.pass_context
def popular(ctx: click.Context, limit: int, days: int) -> None:
    """Show the most frequent search queries."""
    console = ctx.obj.console
    searches = ctx.obj.run(get_analytics(ctx).popular_searches(limit=limit, days=days))

    if not searches:
        console.print(f"[yellow]No searches in the last {days} days[/yellow]")
        return

    table = Table(title=f"Popular searches (last {days} days)")
    table.add_column("Query", style="cyan")
    table.add_column("Searches", justify="right")
    table.add_column("Avg results", justify="right")

    for item in searches:
        table.add_row(escape(item.query), str(item.count), f"{item.avg_results:g}")

    console.print(table)


@click.command()
@click.option("--days", type=int, default=7, help="Look back this many days")
@click.pass_context
def stats(ctx: click.Context, days: int) -> None:
    """Show a summary of search activity."""
    console = ctx.obj.console
    overview = ctx.obj.run(get_analytics(ctx).overview(days=days))

    summary = "\n".join(
        [
            f"[bold]Total searches:[/bold] {overview.total_searches}",
            f"[bold]Unique users:[/bold] {overview.unique_users}",
            f"[bold]Average results:[/bold] {overview.avg_results:g}",
            f"[bold]Zero-result rate:[/bold] {overview.zero_result_rate:g}%",
        ]
    )
    console.print(Panel(summary, title=f"Search activity (last {days} days)"))

    if overview.daily_trend:
        table = Table(title="Searches per day")
        table.add_column("Date")
        table.add_column("Searches", justify="right")
        for day, count in overview.daily_trend:
            table.add_row(day, str(count))
        console.print(table)
