"""CLI entry point for keyitem-store."""

import click

from keyitem_store import __version__
from keyitem_store.dynamo.commands.item_commands import (
    delete_command,
    get_command,
    put_command,
    query_command,
    update_command,
)
from keyitem_store.dynamo.commands.table_commands import (
    describe_table_command,
    ensure_tables_command,
)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Key-item store client for DynamoDB-compatible services"""
    pass


@main.group("dynamo")
def dynamo() -> None:
    """Provision tables and read/write items"""
    pass


# Register table commands
dynamo.add_command(ensure_tables_command)
dynamo.add_command(describe_table_command)

# Register item commands
dynamo.add_command(put_command)
dynamo.add_command(get_command)
dynamo.add_command(update_command)
dynamo.add_command(delete_command)
dynamo.add_command(query_command)

if __name__ == "__main__":
    main()
