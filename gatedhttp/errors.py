"""
Failure taxonomy and retry outcomes.

Every failed attempt is classified into one of four RequestFailure variants.
Callers never see them: RetryExecutor logs them and collapses the sequence into
a value or a sentinel.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class RequestFailure(Exception):
    """Base class for a single failed attempt."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class TransportError(RequestFailure):
    """Connection, timeout or other transport-level failure."""


class StatusError(RequestFailure):
    """Response received with a status outside the 2xx range."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        super().__init__(f"HTTP {status_code}", url=url)
        self.status_code = status_code


class EmptyBodyError(RequestFailure):
    """Successful status but nothing in the body."""

    def __init__(self, url: Optional[str] = None):
        super().__init__("Empty response body", url=url)


class DecodeError(RequestFailure):
    """Body present but could not be decoded into the requested type."""


class EncodeError(ValueError):
    """Request body could not be serialized. Raised before any network activity."""


@dataclass(frozen=True)
class Succeeded(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failed:
    reason: RequestFailure


@dataclass(frozen=True)
class Exhausted:
    attempts: int
    cancelled: bool = False


RetryOutcome = Union[Succeeded[Any], Failed, Exhausted]
