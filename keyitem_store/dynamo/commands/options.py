"""
Options and helpers shared by store commands.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from ..core.backend import StoreBackend
from ..core.factory import create_backend
from ..exceptions import (
    BackendRequestFailedError,
    CodecError,
    KeyItemStoreError,
    MissingCredentialsError,
    UnsupportedExpressionError,
)
from ..settings import StoreSettings, load_settings
from ..utils import error_json, error_text

T = TypeVar("T")

EXIT_USER_ERROR = 1
EXIT_USAGE = 2
EXIT_SERVICE_ERROR = 3


_STORE_OPTIONS = [
    click.option("--region", envvar="AWS_REGION", help="AWS region"),
    click.option("--profile", envvar="AWS_PROFILE", help="AWS profile"),
    click.option("--endpoint", envvar="DYNAMODB_ENDPOINT", help="Service endpoint URL"),
    click.option(
        "--in-memory",
        is_flag=True,
        help="Use the in-memory emulation (state lives only for this command)",
    ),
    click.option("--text", is_flag=True, help="Output as human-readable text"),
    click.option(
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v INFO, -vv DEBUG, -vvv TRACE)",
    ),
]


def store_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the connection, output and verbosity options every command takes."""
    for option in reversed(_STORE_OPTIONS):
        func = option(func)
    return func


def build_settings(
    region: str | None, profile: str | None, endpoint: str | None, in_memory: bool | None
) -> StoreSettings:
    return load_settings(
        region=region, profile=profile, endpoint=endpoint, in_memory=True if in_memory else None
    )


def run_with_backend(
    settings: StoreSettings, operation: Callable[[StoreBackend], Awaitable[T]]
) -> T:
    """Build the backend, run one async operation against it and close it."""

    async def _run() -> T:
        async with create_backend(settings) as backend:
            return await operation(backend)

    return asyncio.run(_run())


def exit_code_for(error: Exception) -> int:
    if isinstance(error, (CodecError, UnsupportedExpressionError, ValueError)):
        return EXIT_USAGE
    if isinstance(error, BackendRequestFailedError) and error.status < 500:
        return EXIT_USER_ERROR
    return EXIT_SERVICE_ERROR


def solution_for(error: Exception) -> str:
    if isinstance(error, MissingCredentialsError):
        return "Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY or pass --profile"
    if isinstance(error, BackendRequestFailedError) and error.is_resource_not_found:
        return "Run 'keyitem-store dynamo ensure-tables' first"
    if isinstance(error, BackendRequestFailedError):
        return "Check the request and the service response body"
    if isinstance(error, UnsupportedExpressionError):
        return "The in-memory emulation only supports the documented expression shapes"
    if isinstance(error, (CodecError, ValueError)):
        return "Check the JSON arguments"
    return "Check AWS credentials, endpoint and permissions"


def fail(ctx: click.Context, error: Exception, text: bool) -> None:
    """Report an error on stderr and exit with the matching code."""
    code = exit_code_for(error)
    if text:
        click.echo(error_text(str(error), solution_for(error)), err=True)
    else:
        click.echo(error_json(str(error), solution_for(error), code), err=True)
    ctx.exit(code)


HANDLED_ERRORS = (KeyItemStoreError, ValueError)
