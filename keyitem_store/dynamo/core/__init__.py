"""Store client core: codec, signer, backends and schema bootstrapper."""

from .backend import StoreBackend
from .bootstrap import SchemaBootstrapper
from .codec import marshal, marshal_item, sanitize, unmarshal, unmarshal_item
from .factory import create_backend, create_bootstrapper
from .inflight import InFlight
from .memory_backend import InMemoryBackend
from .remote_backend import RemoteBackend
from .schema import application_tables, cache_expires_at, is_cache_entry_live
from .signer import Credentials, sign_request

__all__ = [
    "Credentials",
    "InFlight",
    "InMemoryBackend",
    "RemoteBackend",
    "SchemaBootstrapper",
    "StoreBackend",
    "application_tables",
    "cache_expires_at",
    "create_backend",
    "create_bootstrapper",
    "is_cache_entry_live",
    "marshal",
    "marshal_item",
    "sanitize",
    "sign_request",
    "unmarshal",
    "unmarshal_item",
]
