"""Data loading CLI commands."""

from pathlib import Path

import click

from memsearch.exceptions import StoreError
from memsearch.storage import MEMORIALS, DocumentImporter, DocumentStore


async def _create_all(store: DocumentStore, records: list[dict]) -> tuple[int, list[str]]:
    created = 0
    errors = []
    for record in records:
        try:
            await store.create(MEMORIALS, record)
            created += 1
        except StoreError as e:
            errors.append(str(e))
    return created, errors


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--no-validate", is_flag=True, help="Store records without validation")
@click.pass_context
def import_cmd(ctx: click.Context, path: Path, no_validate: bool) -> None:
    """Import memorials from a JSON or YAML file."""
    console = ctx.obj.console

    records, errors = DocumentImporter(validate=not no_validate).import_file(path)
    created, store_errors = ctx.obj.run(_create_all(ctx.obj.engine.store, records))
    errors.extend(store_errors)

    for error in errors:
        console.print(f"[yellow]Warning:[/yellow] {error}")

    if created:
        console.print(f"[green]✓[/green] Imported {created} memorial(s) from {path}")
    else:
        console.print(f"[red]No memorials imported from {path}[/red]")
        ctx.exit(1)
