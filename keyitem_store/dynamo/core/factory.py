"""
Backend construction. The mode is decided here, once, and never re-read.
"""

import httpx

from ..logging_config import get_logger
from ..settings import StoreSettings
from .backend import StoreBackend
from .bootstrap import SchemaBootstrapper
from .credentials import resolve_credentials
from .memory_backend import InMemoryBackend
from .remote_backend import RemoteBackend
from .schema import application_tables

logger = get_logger(__name__)


def create_backend(
    settings: StoreSettings, client: httpx.AsyncClient | None = None
) -> StoreBackend:
    """
    Build the backend selected by settings.

    Args:
        settings: Store settings
        client: Optional httpx client for the remote backend

    Returns:
        InMemoryBackend (with the application tables declared) or RemoteBackend

    Raises:
        MissingCredentialsError: In remote mode when no credentials resolve
    """
    if settings.in_memory:
        logger.info("Using in-memory store backend")
        return InMemoryBackend(application_tables(settings))

    credentials = resolve_credentials(settings)
    logger.info(f"Using remote store backend at {settings.resolved_endpoint}")
    return RemoteBackend(
        settings.resolved_endpoint,
        settings.region,
        credentials,
        client=client,
    )


def create_bootstrapper(backend: StoreBackend, settings: StoreSettings) -> SchemaBootstrapper:
    return SchemaBootstrapper.from_settings(backend, settings)
