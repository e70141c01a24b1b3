"""Command-line interface for mongo-query-schema."""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mongo_query_schema import __version__
from mongo_query_schema.config import get_mongo_connection_string, get_settings
from mongo_query_schema.datasource import (
    DataSource,
    InMemoryDataSource,
    MongoDataSource,
)
from mongo_query_schema.errors import QuerySchemaError
from mongo_query_schema.logging_config import get_logger, setup_logging
from mongo_query_schema.service import SchemaService

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

T = TypeVar("T")


@click.group()
@click.version_option(version=__version__, prog_name="mongo-query-schema")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
@click.option("--log-file", help="Also write DEBUG logs to this file")
@click.option("--mongo-uri", help="MongoDB connection string (default: $MONGO_URI)")
@click.option("--db", "database", help="Database name (default from settings)")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Read collections from <name>.json/.jsonl files instead of MongoDB",
)
@click.option(
    "--sample-size",
    type=click.IntRange(min=1),
    help="Documents sampled per collection",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str,
    log_file: str | None,
    mongo_uri: str | None,
    database: str | None,
    data_dir: Path | None,
    sample_size: int | None,
) -> None:
    """Mongo Query Schema: infer JSON Schemas for MongoDB query documents."""
    # stdout carries the JSON output
    setup_logging(
        level=log_level.upper(),
        log_file=log_file,
        enable_file_logging=bool(log_file),
        stream=sys.stderr,
    )
    ctx.obj = {
        "mongo_uri": mongo_uri,
        "database": database,
        "data_dir": data_dir,
        "sample_size": sample_size,
    }


def _build_data_source(options: dict[str, Any]) -> DataSource:
    if options["data_dir"] is not None:
        return InMemoryDataSource.from_directory(options["data_dir"])
    if options["mongo_uri"]:
        settings = get_settings().mongo
        return MongoDataSource(
            options["mongo_uri"],
            options["database"] or settings.database_name,
            server_selection_timeout_ms=settings.server_selection_timeout_ms,
        )
    return MongoDataSource.from_env(options["database"])


def _run(
    options: dict[str, Any],
    action: Callable[[SchemaService, DataSource], Awaitable[T]],
) -> T:
    """Run ``action`` against a freshly built service and data source."""

    async def runner() -> T:
        data_source = _build_data_source(options)
        try:
            service = SchemaService(sample_size=options["sample_size"])
            return await action(service, data_source)
        finally:
            if isinstance(data_source, MongoDataSource):
                await data_source.close()

    try:
        return asyncio.run(runner())
    except (QuerySchemaError, ValidationError) as e:
        _fail(e)


def _fail(error: Exception) -> NoReturn:
    logger.error(f"Command failed: {error}")
    err_console.print(f"[red]❌ Error: {escape(str(error))}[/red]")
    sys.exit(1)


@main.command(name="collections")
@click.pass_obj
def list_collections(options: dict[str, Any]) -> None:
    """List the schema registrations of every collection."""

    async def action(
        service: SchemaService, data_source: DataSource
    ) -> list[dict[str, Any]]:
        schemas = await service.register_collections(data_source)
        return [schema.to_json_dict() for schema in schemas]

    print(json.dumps(_run(options, action), indent=2))


@main.command(name="schema")
@click.argument("collection")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file path (JSON)",
)
@click.option("--pretty", is_flag=True, help="Indent the JSON output")
@click.pass_obj
def resolve_schema(
    options: dict[str, Any], collection: str, output: Path | None, pretty: bool
) -> None:
    """Infer the query schema of COLLECTION."""
    uri = SchemaService.query_collection_schema(collection)

    async def action(service: SchemaService, data_source: DataSource) -> str | None:
        return await service.resolve_schema(uri, data_source)

    schema_text = _run(options, action)
    if schema_text is None:
        err_console.print(f"[red]❌ Error: {uri} is not a collection schema URI[/red]")
        sys.exit(1)
    if pretty:
        schema_text = json.dumps(json.loads(schema_text), indent=2)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(schema_text + "\n", encoding="utf-8")
        err_console.print(f"💾 Saved schema for {uri} to {output}")
    else:
        print(schema_text)


@main.command(name="show-config")
def show_config() -> None:
    """Show the effective settings."""
    try:
        settings = get_settings()
    except ValidationError as e:
        _fail(e)

    table = Table(title="Mongo Query Schema Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Sample size", str(settings.inference.sample_size))
    cache = "Enabled" if settings.inference.cache_schemas else "Disabled"
    table.add_row("Schema cache", cache)
    table.add_row("Database", settings.mongo.database_name)
    connection = (
        "Configured"
        if get_mongo_connection_string()
        else f"${settings.mongo.connection_env_var} not set"
    )
    table.add_row("Connection", connection)
    table.add_row(
        "Server selection timeout", f"{settings.mongo.server_selection_timeout_ms}ms"
    )
    console.print(table)


if __name__ == "__main__":
    main()
