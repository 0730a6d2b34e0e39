"""
Custom exceptions for the key-item store client.
"""

from .constants import (
    ERR_CONDITIONAL_CHECK_FAILED,
    ERR_RESOURCE_IN_USE,
    ERR_RESOURCE_NOT_FOUND,
    ERR_VALIDATION,
)


class KeyItemStoreError(Exception):
    """Base exception for key-item store operations."""

    pass


# Codec


class CodecError(KeyItemStoreError):
    """Value cannot be converted to or from the attribute-value wire format."""

    pass


class UnsupportedTypeError(CodecError):
    """Native value has a type the wire format cannot represent."""

    pass


class UndefinedValueError(CodecError):
    """UNDEFINED reached the marshaller without being sanitized away."""

    pass


class MalformedAttributeValueError(CodecError):
    """Attribute value has an unknown, empty or ambiguous type tag."""

    pass


# Configuration


class MissingCredentialsError(KeyItemStoreError):
    """No access key / secret key pair could be resolved."""

    pass


# Service


class BackendRequestFailedError(KeyItemStoreError):
    """The service answered with a non-2xx status."""

    def __init__(self, status: int, body: str, code: str | None = None):
        self.status = status
        self.body = body
        self.code = code
        super().__init__(f"DynamoDB request failed with status {status}: {body}")

    @property
    def is_resource_not_found(self) -> bool:
        return self.code == ERR_RESOURCE_NOT_FOUND

    @property
    def is_resource_in_use(self) -> bool:
        return self.code == ERR_RESOURCE_IN_USE


class ConditionalCheckFailedError(BackendRequestFailedError):
    """Condition expression evaluated to false."""

    def __init__(self, status: int = 400, body: str = "", code: str | None = None):
        super().__init__(status, body, code or ERR_CONDITIONAL_CHECK_FAILED)


class ValidationFailedError(BackendRequestFailedError):
    """Request was rejected as invalid (missing placeholder, unknown attribute, ...)."""

    def __init__(self, status: int = 400, body: str = "", code: str | None = None):
        super().__init__(status, body, code or ERR_VALIDATION)


# In-memory emulation


class UnsupportedExpressionError(KeyItemStoreError):
    """The in-memory backend cannot represent this expression."""

    pass


class UnsupportedKeyConditionError(UnsupportedExpressionError):
    pass


class UnsupportedFilterExpressionError(UnsupportedExpressionError):
    pass


class UnsupportedUpdateExpressionError(UnsupportedExpressionError):
    pass


# Schema provisioning


class ProvisioningError(KeyItemStoreError):
    """Schema could not be brought to the declared state."""

    pass


class TTLAttributeMismatchError(ProvisioningError):
    """TTL is enabled on a different attribute than the one declared."""

    pass


class TTLProvisioningTimeoutError(ProvisioningError):
    pass


class TableProvisioningTimeoutError(ProvisioningError):
    pass
