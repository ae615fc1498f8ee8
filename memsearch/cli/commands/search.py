"""Search and autocomplete CLI commands."""

import json
import re
from typing import Any

import click
import msgspec
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from memsearch.search import (
    Facets,
    MediaType,
    SearchFilters,
    SearchOptions,
    SearchResponse,
    SortBy,
)

_MARK = re.compile(r"<(\w+)>(.*?)</\1>")


@click.command()
@click.argument("query", required=False, default="")
@click.option("--limit", "-n", type=int, default=None, help="Maximum results to show")
@click.option("--offset", type=int, default=0, help="Skip first N results")
@click.option(
    "--sort",
    "-s",
    type=click.Choice([s.value for s in SortBy]),
    default=SortBy.RELEVANCE.value,
    help="Sort order",
)
@click.option("--tag", "tags", multiple=True, help="Only memorials with any of these tags")
@click.option("--organization", help="Owning organisation reference")
@click.option("--city", help="City contains")
@click.option("--state", help="State contains")
@click.option("--country", help="Country contains")
@click.option("--died-after", help="Date of death on or after (YYYY-MM-DD)")
@click.option("--died-before", help="Date of death on or before (YYYY-MM-DD)")
@click.option(
    "--media",
    type=click.Choice([m.value for m in MediaType]),
    help="Only memorials with this kind of media",
)
@click.option("--as", "requester_id", help="Search as this user or organisation")
@click.option("--nlp", is_flag=True, help="Extract dates and places from the query")
@click.option("--synonyms", is_flag=True, help="Expand domain synonyms")
@click.option("--fuzzy", is_flag=True, help="Correct misspelled terms")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def search(ctx: click.Context, query: str, **kwargs) -> None:
    """Search memorials.

    Every term must appear in a name, story, biography, timeline event,
    guestbook message or tag. Only public memorials are shown unless --as
    names their owner.
    """
    console = ctx.obj.console
    engine = ctx.obj.engine

    filters = SearchFilters.from_dict(_filters_from_options(kwargs))
    options = SearchOptions(
        date_nlp=kwargs["nlp"],
        location_nlp=kwargs["nlp"],
        synonyms=kwargs["synonyms"],
        fuzzy_match=kwargs["fuzzy"],
    )
    advanced = any(msgspec.structs.astuple(options))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Searching for '{query}'...", total=None)

        if advanced:
            coro = engine.advanced_search(query, options, filters, kwargs["requester_id"])
        else:
            coro = engine.search(query, filters, kwargs["requester_id"])
        response = ctx.obj.run(coro)

    if kwargs["output_format"] == "json":
        click.echo(json.dumps(_response_to_dict(response), indent=2, ensure_ascii=False))
        return

    _display_results(console, response)
    if not response.facets.is_empty:
        _display_facets(console, response.facets)
    if response.suggestions:
        console.print(
            "\n[dim]Suggestions:[/dim] " + ", ".join(escape(s) for s in response.suggestions)
        )


@click.command()
@click.argument("partial")
@click.pass_context
def suggest(ctx: click.Context, partial: str) -> None:
    """Autocomplete a partial name, place or tag."""
    suggestions = ctx.obj.run(ctx.obj.engine.suggest(partial))

    if not suggestions:
        ctx.obj.console.print(f"[yellow]No suggestions for '{escape(partial)}'[/yellow]")
        return

    for suggestion in suggestions:
        ctx.obj.console.print(escape(suggestion))


# Helper functions
def _filters_from_options(options: dict[str, Any]) -> dict[str, Any]:
    """Build a filter dictionary from command-line options."""
    filters: dict[str, Any] = {"sort_by": options["sort"], "offset": options["offset"]}

    if options["limit"] is not None:
        filters["limit"] = options["limit"]
    if options["tags"]:
        filters["tags"] = list(options["tags"])
    if options["organization"]:
        filters["organization"] = options["organization"]
    if options["media"]:
        filters["media_type"] = options["media"]

    location = {k: options[k] for k in ("city", "state", "country") if options[k]}
    if location:
        filters["location"] = location

    date_range = {}
    if options["died_after"]:
        date_range["start"] = options["died_after"]
    if options["died_before"]:
        date_range["end"] = options["died_before"]
    if date_range:
        filters["date_range"] = date_range

    return filters


def markup_highlight(snippet: str) -> str:
    """Turn HTML highlight tags into Rich markup."""
    parts = []
    last = 0
    for match in _MARK.finditer(snippet):
        parts.append(escape(snippet[last : match.start()]))
        parts.append(f"[bold yellow]{escape(match.group(2))}[/bold yellow]")
        last = match.end()
    parts.append(escape(snippet[last:]))
    return "".join(parts)


def _display_results(console: Console, response: SearchResponse) -> None:
    """Display search results as a table."""
    if not response.has_results:
        label = f" for '{escape(response.query)}'" if response.query else ""
        console.print(f"\n[yellow]No results found{label}[/yellow]")
        return

    noun = "result" if response.total == 1 else "results"
    console.print(f"\nFound [green]{response.total}[/green] {noun}")

    table = Table()
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Died", justify="center")
    table.add_column("Location", overflow="ellipsis", max_width=25)
    table.add_column("Score", justify="right")
    table.add_column("Match", overflow="fold", max_width=60)

    for i, result in enumerate(response.results, response.filters.offset + 1):
        doc = result.document
        location = doc.location.display if doc.location else None
        highlight = next(
            (h for h in result.highlights if h.field != "name"),
            result.highlights[0] if result.highlights else None,
        )
        table.add_row(
            str(i),
            escape(doc.full_name),
            doc.date_of_death or "",
            escape(location or ""),
            f"{result.score:g}",
            markup_highlight(highlight.snippet) if highlight else "",
        )

    console.print(table)
    if response.has_more:
        console.print("[dim]More results available, use --offset to page[/dim]")


def _display_facets(console: Console, facets: Facets) -> None:
    """Display facet counts side by side."""
    table = Table(title="Refine")
    names = [name for name, values in facets.as_dict().items() if values]
    for name in names:
        table.add_column(name.capitalize())

    columns = [[str(v) for v in facets.as_dict()[name][:10]] for name in names]
    for row in range(max(len(c) for c in columns)):
        table.add_row(*(escape(c[row]) if row < len(c) else "" for c in columns))

    console.print(table)


def _response_to_dict(response: SearchResponse) -> dict[str, Any]:
    return {
        "query": response.query,
        "total": response.total,
        "filters": response.filters.to_dict(),
        "results": [
            {
                "id": result.document.id,
                "full_name": result.document.full_name,
                "score": result.score,
                "highlights": {h.field: h.snippet for h in result.highlights},
            }
            for result in response.results
        ],
        "facets": {
            name: [{"key": v.key, "count": v.count} for v in values]
            for name, values in response.facets.as_dict().items()
        },
        "suggestions": response.suggestions,
    }
