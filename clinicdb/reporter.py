from __future__ import annotations

from typing import Any, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from clinicdb.domain.entity import ID_COLUMN, Entity, EntityDescriptor
from clinicdb.domain.pagination import Pagination


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    if isinstance(value, Entity):
        return f"#{value.id}"
    return escape(str(value))


def print_entities(
    rows: List[Entity],
    descriptor: EntityDescriptor,
    pagination: Optional[Pagination] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render entities as a rich table, one column per persisted column.

    Attached relations are shown by id. With ``pagination`` the caption shows
    the page position and the total record count.
    """
    console = console or Console()

    if not rows:
        console.print(f"[yellow]No {descriptor.name} rows to display.[/yellow]")
        return

    caption = None
    if pagination is not None:
        caption = (
            f"Page {pagination.page_number} of {pagination.page_count} "
            f"({pagination.total_records:,} records)"
        )

    table = Table(title=descriptor.name, box=box.ROUNDED, caption=caption)
    table.add_column(ID_COLUMN, justify="right", style="cyan", no_wrap=True)
    for column in descriptor.columns:
        table.add_column(column)
    relations = [relation.attribute for relation in descriptor.relations]
    for attribute in relations:
        table.add_column(attribute, style="magenta")

    for entity in rows:
        values = descriptor.values(entity)
        cells = [_cell(entity.id)] + [_cell(values.get(column)) for column in descriptor.columns]
        cells += [_cell(getattr(entity, attribute, None)) for attribute in relations]
        table.add_row(*cells)

    console.print(table)


__all__ = ["print_entities"]
