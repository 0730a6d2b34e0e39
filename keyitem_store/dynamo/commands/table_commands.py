"""
Schema provisioning commands.
"""

from typing import Any

import click

from ..core.backend import StoreBackend
from ..core.factory import create_bootstrapper
from ..core.memory_backend import InMemoryBackend
from ..logging_config import get_logger, setup_logging
from ..utils import output_json, output_text, validate_table_name
from .options import HANDLED_ERRORS, build_settings, fail, run_with_backend, store_options

logger = get_logger(__name__)


@click.command("ensure-tables")
@store_options
@click.pass_context
def ensure_tables_command(
    ctx: click.Context,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Create every application table, index and TTL setting that is missing.

    Safe to run repeatedly: existing tables are left alone, missing indexes
    are added, and the command waits until everything is ACTIVE.

    Examples:

    \b
        # Provision against the region's endpoint
        keyitem-store dynamo ensure-tables --region eu-west-1

    \b
        # Provision against DynamoDB Local
        keyitem-store dynamo ensure-tables --endpoint http://localhost:8000

    \b
    Output Format:
        {"mode": "remote", "tables": ["..."], "status": "ready"}
    """
    setup_logging(verbose)

    try:
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info("Ensuring application tables")
        logger.debug(f"Endpoint: {settings.resolved_endpoint}, Region: {settings.region}")

        async def _ensure(backend: StoreBackend) -> dict[str, Any]:
            bootstrapper = create_bootstrapper(backend, settings)
            await bootstrapper.ensure_all_tables()
            return {
                "mode": "in-memory" if isinstance(backend, InMemoryBackend) else "remote",
                "tables": [table.name for table in bootstrapper.tables],
                "status": "ready",
            }

        result = run_with_backend(settings, _ensure)

        if text:
            output_text(f"Tables ready ({result['mode']}):")
            for name in result["tables"]:
                output_text(f"  - {name}")
        else:
            output_json(result)

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)


@click.command("describe-table")
@click.argument("table")
@store_options
@click.pass_context
def describe_table_command(
    ctx: click.Context,
    table: str,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Show the status, indexes and TTL setting of TABLE.

    Examples:

    \b
        keyitem-store dynamo describe-table wr-api-suite-question-sets

    \b
    Output Format:
        {"table": "...", "status": "ACTIVE", "indexes": [...], "ttl": {...}}
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Describing table '{table}'")

        async def _describe(backend: StoreBackend) -> dict[str, Any]:
            description = await backend.describe_table(table)
            if description is None:
                return {"table": table, "status": "MISSING", "indexes": [], "ttl": None}
            ttl = await backend.describe_time_to_live(table)
            return {
                "table": table,
                "status": description.get("TableStatus"),
                "indexes": [
                    {"name": index.get("IndexName"), "status": index.get("IndexStatus")}
                    for index in description.get("GlobalSecondaryIndexes") or []
                ],
                "ttl": ttl,
            }

        result = run_with_backend(settings, _describe)

        if text:
            output_text(f"Table: {result['table']}")
            output_text(f"Status: {result['status']}")
            for index in result["indexes"]:
                output_text(f"Index: {index['name']} ({index['status']})")
            if result["ttl"]:
                ttl = result["ttl"]
                output_text(f"TTL: {ttl.get('TimeToLiveStatus')} {ttl.get('AttributeName', '')}")
        else:
            output_json(result)

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)
