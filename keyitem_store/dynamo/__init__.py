"""DynamoDB-style key-item store client with an in-memory emulation."""

from .core import (
    InMemoryBackend,
    RemoteBackend,
    SchemaBootstrapper,
    StoreBackend,
    create_backend,
    create_bootstrapper,
)
from .exceptions import (
    BackendRequestFailedError,
    ConditionalCheckFailedError,
    KeyItemStoreError,
    MissingCredentialsError,
)
from .models import UNDEFINED, KeyAttribute, QueryPage, SecondaryIndex, TableDefinition
from .settings import StoreSettings, load_settings

__all__ = [
    "UNDEFINED",
    "BackendRequestFailedError",
    "ConditionalCheckFailedError",
    "InMemoryBackend",
    "KeyAttribute",
    "KeyItemStoreError",
    "MissingCredentialsError",
    "QueryPage",
    "RemoteBackend",
    "SchemaBootstrapper",
    "SecondaryIndex",
    "StoreBackend",
    "StoreSettings",
    "TableDefinition",
    "create_backend",
    "create_bootstrapper",
    "load_settings",
]
