"""
Idempotent schema provisioning run at process startup.

Tables and indexes take time to become ACTIVE and TTL changes pass through
transient states, so every step polls the control plane with a fixed interval
and a bounded number of attempts.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from ..constants import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_MAX_ATTEMPTS
from ..exceptions import (
    TableProvisioningTimeoutError,
    TTLAttributeMismatchError,
    TTLProvisioningTimeoutError,
)
from ..logging_config import get_logger
from ..models import TableDefinition, TableStatus, TTLStatus
from ..settings import StoreSettings
from .backend import StoreBackend
from .memory_backend import InMemoryBackend
from .inflight import InFlight
from .schema import application_tables

logger = get_logger(__name__)

_TTL_IN_PROGRESS = {TTLStatus.ENABLING.value, TTLStatus.UPDATING.value}


class SchemaBootstrapper:
    """Brings the declared tables, indexes and TTL settings into existence."""

    def __init__(
        self,
        backend: StoreBackend,
        tables: list[TableDefinition],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize bootstrapper.

        Args:
            backend: Backend whose control plane is used
            tables: Table definitions to provision
            poll_interval: Seconds between describe calls while waiting
            max_attempts: Describe calls before a wait gives up
            sleep: Awaitable sleep, injectable for tests
        """
        self.backend = backend
        self.tables = list(tables)
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._inflight: InFlight[None] = InFlight(self._provision)

    @classmethod
    def from_settings(
        cls, backend: StoreBackend, settings: StoreSettings, **kwargs: Any
    ) -> "SchemaBootstrapper":
        return cls(
            backend,
            application_tables(settings),
            poll_interval=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            **kwargs,
        )

    async def ensure_all_tables(self) -> None:
        """
        Provision every declared table.

        Concurrent callers share one attempt. Neither success nor failure is
        remembered once the attempt settles: the next call runs again, which
        in in-memory mode means starting from empty tables.
        """
        await self._inflight()

    async def _provision(self) -> None:
        if isinstance(self.backend, InMemoryBackend):
            self.backend.reset(self.tables)
            return

        for definition in self.tables:
            await self.ensure_table(definition)
            if definition.ttl_attribute:
                await self.ensure_ttl(definition.name, definition.ttl_attribute)
        logger.info(f"Schema ready: {', '.join(t.name for t in self.tables)}")

    # ---------- Tables ----------
    async def ensure_table(self, definition: TableDefinition) -> None:
        """
        Create the table if missing, add missing indexes, wait for ACTIVE.

        Raises:
            TableProvisioningTimeoutError: If the table never becomes ACTIVE
        """
        description = await self.backend.describe_table(definition.name)
        if description is None:
            logger.info(f"Creating table '{definition.name}'")
            await self.backend.create_table(definition)
            await self.wait_for_table_active(definition.name)
            return

        existing = {
            index.get("IndexName") for index in description.get("GlobalSecondaryIndexes") or []
        }
        for index in definition.indexes:
            if index.name in existing:
                continue
            # UpdateTable is rejected while the table is still changing
            await self.wait_for_table_active(definition.name)
            logger.info(f"Adding index '{index.name}' to table '{definition.name}'")
            await self.backend.add_index(definition, index)

        await self.wait_for_table_active(definition.name)

    async def wait_for_table_active(self, table: str) -> None:
        for attempt in range(1, self.max_attempts + 1):
            description = await self.backend.describe_table(table)
            if _table_active(description):
                return
            status = description.get("TableStatus") if description else TableStatus.MISSING.value
            logger.debug(f"Table '{table}' is {status} (attempt {attempt}/{self.max_attempts})")
            if attempt < self.max_attempts:
                await self._sleep(self.poll_interval)
        raise TableProvisioningTimeoutError(
            f"Timed out waiting for table '{table}' to become ACTIVE"
        )

    # ---------- TTL ----------
    async def ensure_ttl(self, table: str, attribute: str) -> None:
        """
        Enable TTL on the given attribute.

        Raises:
            TTLAttributeMismatchError: If TTL is enabled on another attribute
            TTLProvisioningTimeoutError: If TTL never reaches ENABLED
        """
        description = await self.backend.describe_time_to_live(table) or {}
        status = description.get("TimeToLiveStatus")
        current = description.get("AttributeName")

        if status == TTLStatus.ENABLED.value:
            _check_ttl_attribute(table, attribute, current)
            return
        if status in _TTL_IN_PROGRESS:
            await self.wait_for_ttl_enabled(table, attribute)
            return
        if status == TTLStatus.DISABLING.value:
            # A disable in flight has to finish before TTL can be enabled again
            await self._wait_for_ttl_status(table, TTLStatus.DISABLED.value)

        logger.info(f"Enabling TTL on '{table}.{attribute}'")
        await self.backend.update_time_to_live(table, attribute)
        await self.wait_for_ttl_enabled(table, attribute)

    async def wait_for_ttl_enabled(self, table: str, attribute: str) -> None:
        description = await self._wait_for_ttl_status(table, TTLStatus.ENABLED.value)
        _check_ttl_attribute(table, attribute, description.get("AttributeName"))

    async def _wait_for_ttl_status(self, table: str, wanted: str) -> dict[str, Any]:
        for attempt in range(1, self.max_attempts + 1):
            description = await self.backend.describe_time_to_live(table) or {}
            status = description.get("TimeToLiveStatus")
            if status == wanted:
                return description
            logger.debug(
                f"TTL on '{table}' is {status} (attempt {attempt}/{self.max_attempts}), "
                f"waiting for {wanted}"
            )
            if attempt < self.max_attempts:
                await self._sleep(self.poll_interval)
        raise TTLProvisioningTimeoutError(
            f"Timed out waiting for TTL on '{table}' to become {wanted}"
        )


def _table_active(description: dict[str, Any] | None) -> bool:
    if not description or description.get("TableStatus") != TableStatus.ACTIVE.value:
        return False
    indexes = description.get("GlobalSecondaryIndexes") or []
    return all(index.get("IndexStatus") == TableStatus.ACTIVE.value for index in indexes)


def _check_ttl_attribute(table: str, expected: str, current: str | None) -> None:
    if current and current != expected:
        raise TTLAttributeMismatchError(
            f"TTL on '{table}' is enabled on '{current}', expected '{expected}'"
        )
