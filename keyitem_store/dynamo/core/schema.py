"""
Tables the application needs.
"""

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    ATTR_CACHE_KEY,
    ATTR_EXPIRES_AT,
    ATTR_PK,
    ATTR_SK,
    ATTR_SNIPPET_INDEX_PK,
    ATTR_UPDATED_AT,
)
from ..models import KeyAttribute, SecondaryIndex, TableDefinition
from ..settings import StoreSettings


def identity_table(settings: StoreSettings) -> TableDefinition:
    """Accounts, organizations and memberships: pk (HASH), sk (RANGE)."""
    return TableDefinition(
        name=settings.identity_table_name,
        hash_key=KeyAttribute(ATTR_PK),
        range_key=KeyAttribute(ATTR_SK),
    )


def question_sets_table(settings: StoreSettings) -> TableDefinition:
    """Question sets: pk/sk plus a snippet index ordered by update time."""
    return TableDefinition(
        name=settings.question_sets_table_name,
        hash_key=KeyAttribute(ATTR_PK),
        range_key=KeyAttribute(ATTR_SK),
        indexes=(
            SecondaryIndex(
                name=settings.question_sets_snippet_gsi_name,
                hash_key=KeyAttribute(ATTR_SNIPPET_INDEX_PK),
                range_key=KeyAttribute(ATTR_UPDATED_AT),
            ),
        ),
    )


def openai_cache_table(settings: StoreSettings) -> TableDefinition:
    """Completion cache keyed by cacheKey; entries expire through TTL on expiresAt."""
    return TableDefinition(
        name=settings.openai_cache_table_name,
        hash_key=KeyAttribute(ATTR_CACHE_KEY),
        ttl_attribute=ATTR_EXPIRES_AT,
    )


def cache_expires_at(settings: StoreSettings, now: datetime | None = None) -> int:
    """
    Epoch second at which a cache entry written now should expire.

    Args:
        settings: Supplies the cache TTL
        now: Write time (defaults to now, UTC)

    Returns:
        Value for the expiresAt attribute
    """
    moment = now or datetime.now(timezone.utc)
    return int(moment.timestamp()) + settings.openai_cache_ttl_seconds


def is_cache_entry_live(item: dict[str, Any], now: datetime | None = None) -> bool:
    # Expired entries stay readable until the TTL sweep deletes them
    expires_at = item.get(ATTR_EXPIRES_AT)
    if not expires_at:
        return True
    moment = now or datetime.now(timezone.utc)
    return expires_at > int(moment.timestamp())


def application_tables(settings: StoreSettings) -> list[TableDefinition]:
    return [
        identity_table(settings),
        question_sets_table(settings),
        openai_cache_table(settings),
    ]
