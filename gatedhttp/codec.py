"""
JSON codec for request and response bodies.

Encoding and decoding go through pydantic's TypeAdapter, so dicts, lists,
dataclasses, TypedDicts and pydantic models all work without registration.
"""

from functools import lru_cache
from typing import Any, Callable, Type, TypeVar

from pydantic import PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from .errors import DecodeError, EncodeError

T = TypeVar("T")

Decoder = Callable[[bytes], T]


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _adapter_for(tp: Any) -> TypeAdapter:
    try:
        hash(tp)
    except TypeError:
        # unhashable generic aliases bypass the cache
        return TypeAdapter(tp)
    return _adapter(tp)


def encode(value: Any) -> bytes:
    """Serialize a value to a JSON body."""
    try:
        return _adapter_for(type(value)).dump_json(value)
    except (PydanticUserError, PydanticSerializationError, TypeError, ValueError) as e:
        # PydanticUserError covers types pydantic cannot build a schema for
        raise EncodeError(f"Could not encode {type(value).__name__} as JSON: {e}") from e


def decode(data: bytes, tp: Type[T]) -> T:
    """Decode a JSON body into ``tp``, raising DecodeError on bad input."""
    try:
        return _adapter_for(tp).validate_json(data)
    except ValidationError as e:
        raise DecodeError(f"Could not decode body as {getattr(tp, '__name__', tp)}: {e}") from e


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Body is not valid UTF-8: {e}") from e


def decoder_for(tp: Type[T]) -> Decoder:
    """Return an explicit decode function for ``tp``."""
    def _decode(data: bytes) -> T:
        return decode(data, tp)
    return _decode


def to_json_text(value: Any) -> str:
    if value is None:
        return ""
    return encode(value).decode("utf-8")
