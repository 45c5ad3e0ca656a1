"""
Structured error types for kvstores.

Backend command failures are NOT wrapped: a ``redis.exceptions.RedisError``
raised by the client reaches the caller unchanged. The types below cover the
failures this layer produces itself.

Architecture:
    ::

        KVStoreError  (category, retryable, context, cause)
        ├── StoreConnectionError   NETWORK, retryable   construction ping failed
        ├── KeyNotFoundError       NOT_FOUND            replace on a missing key
        ├── KeyExistsError         CONFLICT             add on a present key
        └── ConfigError            CONFIG               unusable settings/options

        ValueTypeMismatch(TypeError)   typed getter found the wrong shape

``ValueTypeMismatch`` sits outside the hierarchy on purpose: it signals a
programming fault in the caller (reading a scalar key with ``get_map``), not a
runtime condition to handle.

Examples:
    >>> err = KeyNotFoundError("key not found").with_context(key="users", store="memory")
    >>> err.to_dict()["context"]
    {'store': 'memory', 'key': 'users'}
    >>> is_retryable(StoreConnectionError("ping failed"))
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for logging and retry decisions."""

    NETWORK = "NETWORK"           # Dial, ping, timeout
    NOT_FOUND = "NOT_FOUND"       # Key vanished
    CONFLICT = "CONFLICT"         # Key already present
    CONFIG = "CONFIG"             # Bad options or settings
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Metadata attached to a :class:`KVStoreError`.

    Attributes:
        store: Backend name (``memory``, ``redis``, ``redis_cluster``)
        key: Key the operation targeted
        operation: Store operation name (``append_slice``, ...)
        addr: Remote address(es) involved
        metadata: Additional key-value pairs
    """

    store: str | None = None
    key: str | None = None
    operation: str | None = None
    addr: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["store", "key", "operation", "addr"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class KVStoreError(Exception):
    """Base exception for errors raised by kvstores itself.

    Subclasses set ``default_category`` and ``default_retryable``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> KVStoreError:
        """Add context to this error (fluent API).

        Usage:
            raise KeyNotFoundError("gone").with_context(key="k", operation="append_slice")
        """
        for name, value in kwargs.items():
            if hasattr(self.context, name) and name != "metadata":
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class StoreConnectionError(KVStoreError):
    """The backend could not be reached when the store was constructed."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class KeyNotFoundError(KVStoreError):
    """A replace-style write targeted a key that does not exist."""

    default_category = ErrorCategory.NOT_FOUND


class KeyExistsError(KVStoreError):
    """An add-style write targeted a key that already exists."""

    default_category = ErrorCategory.CONFLICT


class ConfigError(KVStoreError):
    """Settings or option structures cannot produce a store."""

    default_category = ErrorCategory.CONFIG


class ValueTypeMismatch(TypeError):
    """A typed getter found a value of a different shape under the key."""

    def __init__(self, key: str, expected: type, actual: Any):
        super().__init__(
            f"value at key {key!r} is {type(actual).__name__}, expected {expected.__name__}"
        )
        self.key = key
        self.expected = expected
        self.actual_type = type(actual)


def is_retryable(error: BaseException) -> bool:
    """Return the ``retryable`` flag of a :class:`KVStoreError`, else ``False``."""
    if isinstance(error, KVStoreError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "KVStoreError",
    "StoreConnectionError",
    "KeyNotFoundError",
    "KeyExistsError",
    "ConfigError",
    "ValueTypeMismatch",
    "is_retryable",
]
