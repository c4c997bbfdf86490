from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any, Iterator, List, NoReturn, Optional

import typer

from clinicdb.config import get_settings
from clinicdb.domain.entity import Entity, EntityDescriptor
from clinicdb.domain.pagination import Pagination, SortOrder
from clinicdb.errors import ClinicDbError
from clinicdb.infrastructure.db_factory import open_connection
from clinicdb.persistence.factory import RepositoryFactory
from clinicdb.reporter import print_entities
from clinicdb.utils.logging import configure_logging

app = typer.Typer(help="Clinic database CLI.")

TABLE_OPTION = typer.Option(False, "--table", help="Render a table instead of JSON.")


@contextmanager
def _factory() -> Iterator[RepositoryFactory]:
    settings = get_settings()
    configure_logging(level=settings.log_level)
    conn, dialect = open_connection(settings)
    try:
        yield RepositoryFactory(conn, dialect)
    finally:
        conn.close()


def _dump(entities: List[Entity]) -> List[dict]:
    return [entity.model_dump(mode="json") for entity in entities]


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _pagination(page: int, size: Optional[int]) -> Pagination:
    return Pagination(page_number=page, page_size=size or get_settings().default_page_size)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    if settings.db_backend == "sqlite":
        target = f"sqlite:{settings.sqlite_path}"
    else:
        target = f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    typer.echo(
        f"DB={target} | env={settings.app_env} log={settings.log_level} "
        f"page_size={settings.default_page_size}"
    )


@app.command()
def entities() -> None:
    """
    List entity names accepted by the other commands.
    """
    typer.echo("Available entities: " + ", ".join(RepositoryFactory(connection=None).available()))


@app.command("list")
def list_page(
    entity: str = typer.Argument(..., help="Entity name (e.g., patient, medicine, appointment)."),
    page: int = typer.Option(1, "--page", "-p", help="1-based page number."),
    size: Optional[int] = typer.Option(None, "--size", "-n", help="Rows per page."),
    sort: Optional[str] = typer.Option(None, "--sort", help="Column to sort by."),
    order: str = typer.Option("asc", "--order", help="Sort direction: asc or desc."),
    table: bool = TABLE_OPTION,
) -> None:
    """
    Print one page of entities.
    """
    pagination = _pagination(page, size)
    try:
        if sort:
            pagination.sort(sort, SortOrder.parse(order))
        with _factory() as factory:
            repository = factory.for_name(entity)
            rows = repository.get_page(pagination)
    except (ClinicDbError, ValueError) as exc:
        _fail(exc)
    _echo_page(rows, pagination, repository.descriptor, table)


@app.command()
def search(
    entity: str = typer.Argument(..., help="Entity name."),
    term: str = typer.Argument(..., help="Text to look for in any column."),
    page: int = typer.Option(1, "--page", "-p", help="1-based page number."),
    size: Optional[int] = typer.Option(None, "--size", "-n", help="Rows per page."),
    table: bool = TABLE_OPTION,
) -> None:
    """
    Print entities containing TERM in any column.
    """
    pagination = _pagination(page, size)
    try:
        with _factory() as factory:
            repository = factory.for_name(entity)
            rows = repository.search(pagination, term)
    except (ClinicDbError, ValueError) as exc:
        _fail(exc)
    _echo_page(rows, pagination, repository.descriptor, table)


@app.command()
def show(
    entity: str = typer.Argument(..., help="Entity name."),
    entity_id: int = typer.Argument(..., help="Identifier."),
) -> None:
    """
    Print one entity by id.
    """
    try:
        with _factory() as factory:
            found: Any = factory.for_name(entity).get_by_id(entity_id)
    except (ClinicDbError, ValueError) as exc:
        _fail(exc)
    if found is None:
        typer.echo(f"{entity} #{entity_id} not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(found.model_dump(mode="json"), indent=2))


@app.command()
def join(
    parent: str = typer.Argument(..., help="Parent entity name (e.g., appointment)."),
    child: str = typer.Argument(..., help="Child entity name (e.g., patient)."),
    fk_column: str = typer.Argument(..., help="Foreign key column in the parent table."),
    pk_column: str = typer.Option("id", "--pk", help="Key column in the child table."),
    table: bool = TABLE_OPTION,
) -> None:
    """
    Print parent entities joined with their child entity.
    """
    try:
        with _factory() as factory:
            repository = factory.for_name(parent)
            rows = repository.join(factory.for_name(child), fk_column, pk_column)
    except (ClinicDbError, ValueError) as exc:
        _fail(exc)
    if table:
        print_entities(rows, repository.descriptor)
    else:
        typer.echo(json.dumps(_dump(rows), indent=2))


def _echo_page(
    rows: List[Entity], pagination: Pagination, descriptor: EntityDescriptor, as_table: bool
) -> None:
    if as_table:
        print_entities(rows, descriptor, pagination)
        return
    typer.echo(
        json.dumps(
            {
                "page": pagination.page_number,
                "page_count": pagination.page_count,
                "total_records": pagination.total_records,
                "items": _dump(rows),
            },
            indent=2,
        )
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
