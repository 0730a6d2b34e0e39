from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from keyitem_store.dynamo.core.memory_backend import InMemoryBackend
from keyitem_store.dynamo.models import KeyAttribute, SecondaryIndex, TableDefinition

_STORE_ENV = (
    "DYNAMODB_IN_MEMORY",
    "DYNAMODB_ENDPOINT",
    "AWS_REGION",
    "AWS_PROFILE",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "IDENTITY_TABLE_NAME",
    "QUESTION_SETS_TABLE_NAME",
    "QUESTION_SETS_SNIPPET_GSI_NAME",
    "OPENAI_CACHE_TABLE_NAME",
    "OPENAI_CACHE_TTL_SECONDS",
    "DYNAMODB_POLL_INTERVAL_SECONDS",
    "DYNAMODB_POLL_MAX_ATTEMPTS",
)

ITEMS_TABLE = TableDefinition(
    name="test-items",
    hash_key=KeyAttribute("pk"),
    range_key=KeyAttribute("sk"),
    indexes=(
        SecondaryIndex(
            name="bySnippet",
            hash_key=KeyAttribute("snippetIndexPk"),
            range_key=KeyAttribute("updatedAt"),
        ),
    ),
)

CACHE_TABLE = TableDefinition(
    name="test-cache",
    hash_key=KeyAttribute("cacheKey"),
    ttl_attribute="expiresAt",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Settings are read from the environment; keep the developer's shell out of it.
    for name in _STORE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    # CLI commands install a stderr handler bound to the runner's stream.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    return InMemoryBackend([ITEMS_TABLE, CACHE_TABLE])
