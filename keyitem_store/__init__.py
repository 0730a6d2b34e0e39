"""keyitem-store: key-item store client for DynamoDB-compatible services."""

__version__ = "0.1.0"
