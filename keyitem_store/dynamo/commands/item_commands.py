"""
Item commands: put, get, update, delete and query.
"""

import json
from typing import Any

import click

from ..core.backend import StoreBackend
from ..logging_config import get_logger, setup_logging
from ..utils import output_json, output_text, parse_json_object, validate_table_name
from .options import (
    EXIT_USER_ERROR,
    HANDLED_ERRORS,
    build_settings,
    fail,
    run_with_backend,
    store_options,
)

logger = get_logger(__name__)


def _optional_object(raw: str | None, what: str) -> dict[str, Any] | None:
    return parse_json_object(raw, what) if raw else None


@click.command("put")
@click.argument("table")
@click.argument("item")
@click.option("--condition", help="Condition expression, e.g. attribute_not_exists(pk)")
@click.option("--values", help="ExpressionAttributeValues as a JSON object")
@click.option("--names", help="ExpressionAttributeNames as a JSON object")
@store_options
@click.pass_context
def put_command(
    ctx: click.Context,
    table: str,
    item: str,
    condition: str | None,
    values: str | None,
    names: str | None,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Write ITEM (a JSON object) into TABLE, replacing any item with the same key.

    Examples:

    \b
        keyitem-store dynamo put wr-api-suite-identity '{"pk": "ORG#1", "sk": "META"}'

    \b
        # Only create, never overwrite
        keyitem-store dynamo put wr-api-suite-identity '{"pk": "ORG#1", "sk": "META"}' \\
            --condition 'attribute_not_exists(pk)'
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        document = parse_json_object(item, "ITEM")
        expression_values = _optional_object(values, "--values")
        expression_names = _optional_object(names, "--names")
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Putting item into '{table}'")
        logger.debug(f"Condition: {condition}")

        async def _put(backend: StoreBackend) -> None:
            await backend.put_item(
                table,
                document,
                condition=condition,
                names=expression_names,
                values=expression_values,
            )

        run_with_backend(settings, _put)

        if text:
            output_text(f"Stored item in {table}")
        else:
            output_json({"table": table, "item": document, "stored": True})

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)


@click.command("get")
@click.argument("table")
@click.argument("key")
@click.option("--consistent", is_flag=True, help="Use a strongly consistent read")
@store_options
@click.pass_context
def get_command(
    ctx: click.Context,
    table: str,
    key: str,
    consistent: bool,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Read the item with KEY (a JSON object) from TABLE.

    Exits with code 1 when the item does not exist.

    Examples:

    \b
        keyitem-store dynamo get wr-api-suite-identity '{"pk": "ORG#1", "sk": "META"}'
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        item_key = parse_json_object(key, "KEY")
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Getting item from '{table}'")

        async def _get(backend: StoreBackend) -> dict[str, Any] | None:
            return await backend.get_item(table, item_key, consistent_read=consistent)

        found = run_with_backend(settings, _get)

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)
        return

    if found is None:
        message = f"Item {json.dumps(item_key)} not found in '{table}'"
        if text:
            click.echo(message, err=True)
        else:
            click.echo(json.dumps({"error": message, "exit_code": EXIT_USER_ERROR}), err=True)
        ctx.exit(EXIT_USER_ERROR)

    if text:
        for name, value in sorted(found.items()):
            output_text(f"{name}: {value}")
    else:
        output_json({"table": table, "item": found})


@click.command("update")
@click.argument("table")
@click.argument("key")
@click.argument("attribute")
@click.argument("value")
@click.option("--condition", help="Condition expression")
@click.option("--values", help="Extra ExpressionAttributeValues for the condition")
@click.option("--names", help="Extra ExpressionAttributeNames for the condition")
@store_options
@click.pass_context
def update_command(
    ctx: click.Context,
    table: str,
    key: str,
    attribute: str,
    value: str,
    condition: str | None,
    values: str | None,
    names: str | None,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Set ATTRIBUTE to VALUE (JSON) on the item with KEY in TABLE.

    Examples:

    \b
        keyitem-store dynamo update wr-api-suite-question-sets \\
            '{"pk": "ORG#1", "sk": "QSET#42"}' title '"Renamed"'
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        item_key = parse_json_object(key, "KEY")
        try:
            new_value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"VALUE is not valid JSON: {e.msg}") from e
        expression_values = {":value": new_value, **(_optional_object(values, "--values") or {})}
        expression_names = {"#attr": attribute, **(_optional_object(names, "--names") or {})}
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Updating '{attribute}' in '{table}'")

        async def _update(backend: StoreBackend) -> dict[str, Any] | None:
            return await backend.update_item(
                table,
                item_key,
                "SET #attr = :value",
                expression_values,
                condition=condition,
                names=expression_names,
            )

        updated = run_with_backend(settings, _update)

        if text:
            output_text(f"Updated {attribute} in {table}")
        else:
            output_json({"table": table, "item": updated})

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)


@click.command("delete")
@click.argument("table")
@click.argument("key")
@store_options
@click.pass_context
def delete_command(
    ctx: click.Context,
    table: str,
    key: str,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Delete the item with KEY from TABLE. Deleting a missing item succeeds.

    Examples:

    \b
        keyitem-store dynamo delete wr-api-suite-identity '{"pk": "ORG#1", "sk": "META"}'
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        item_key = parse_json_object(key, "KEY")
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Deleting item from '{table}'")

        async def _delete(backend: StoreBackend) -> None:
            await backend.delete_item(table, item_key)

        run_with_backend(settings, _delete)

        if text:
            output_text(f"Deleted item from {table}")
        else:
            output_json({"table": table, "key": item_key, "deleted": True})

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)


@click.command("query")
@click.argument("table")
@click.argument("key_condition")
@click.option("--values", required=True, help="ExpressionAttributeValues as a JSON object")
@click.option("--names", help="ExpressionAttributeNames as a JSON object")
@click.option("--index", "index_name", help="Secondary index to query")
@click.option("--filter", "filter_expression", help="Filter expression")
@click.option("--limit", type=int, help="Maximum number of items")
@click.option("--descending", is_flag=True, help="Return items in descending sort-key order")
@click.option("--all", "follow", is_flag=True, help="Follow the cursor until exhausted")
@store_options
@click.pass_context
def query_command(
    ctx: click.Context,
    table: str,
    key_condition: str,
    values: str,
    names: str | None,
    index_name: str | None,
    filter_expression: str | None,
    limit: int | None,
    descending: bool,
    follow: bool,
    region: str | None,
    profile: str | None,
    endpoint: str | None,
    in_memory: bool,
    text: bool,
    verbose: int,
) -> None:
    """Query TABLE with KEY_CONDITION.

    Examples:

    \b
        keyitem-store dynamo query wr-api-suite-question-sets \\
            'pk = :pk AND begins_with(sk, :prefix)' \\
            --values '{":pk": "ORG#1", ":prefix": "QSET#"}'

    \b
    Output Format:
        {"items": [...], "count": 2, "cursor": null}
    """
    setup_logging(verbose)

    try:
        validate_table_name(table)
        expression_values = parse_json_object(values, "--values")
        expression_names = _optional_object(names, "--names")
        settings = build_settings(region, profile, endpoint, in_memory)
        logger.info(f"Querying '{table}'")
        logger.debug(f"Index: {index_name}, Filter: {filter_expression}, Limit: {limit}")

        async def _query(backend: StoreBackend) -> dict[str, Any]:
            common: dict[str, Any] = {
                "index_name": index_name,
                "filter_expression": filter_expression,
                "names": expression_names,
                "scan_forward": False if descending else None,
                "limit": limit,
            }
            if follow:
                items = await backend.query_all(table, key_condition, expression_values, **common)
                return {"items": items, "count": len(items), "cursor": None}
            page = await backend.query(table, key_condition, expression_values, **common)
            return {"items": page.items, "count": page.count, "cursor": page.cursor}

        result = run_with_backend(settings, _query)

        if text:
            output_text(f"{result['count']} item(s)")
            for found in result["items"]:
                output_text(json.dumps(found, default=str))
        else:
            output_json(result)

    except HANDLED_ERRORS as e:
        fail(ctx, e, text)
