import json
from dataclasses import dataclass
from typing import Dict, List

import pytest
from pydantic import BaseModel

from gatedhttp import codec
from gatedhttp.errors import DecodeError, EncodeError


class Item(BaseModel):
    id: int
    name: str


@dataclass
class Query:
    term: str
    limit: int = 10


class Opaque:
    pass


def test_decode_into_dict() -> None:
    assert codec.decode(b'{"ok": true}', dict) == {"ok": True}


def test_decode_into_pydantic_model() -> None:
    item = codec.decode(b'{"id": 7, "name": "lamp"}', Item)

    assert isinstance(item, Item)
    assert item.id == 7
    assert item.name == "lamp"


def test_decode_into_generic_alias() -> None:
    data = codec.decode(b'[{"a": 1}, {"b": 2}]', List[Dict[str, int]])
    assert data == [{"a": 1}, {"b": 2}]


def test_decode_malformed_json_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        codec.decode(b'{"ok": tru', dict)


def test_decode_wrong_shape_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        codec.decode(b'{"id": "not-a-number", "name": "x"}', Item)


def test_decoder_for_returns_explicit_function() -> None:
    decode_item = codec.decoder_for(Item)

    assert decode_item(b'{"id": 1, "name": "a"}') == Item(id=1, name="a")


def test_encode_dataclass_and_model() -> None:
    assert json.loads(codec.encode(Query(term="shoes"))) == {"term": "shoes", "limit": 10}
    assert json.loads(codec.encode(Item(id=2, name="b"))) == {"id": 2, "name": "b"}
    assert json.loads(codec.encode({"a": [1, 2]})) == {"a": [1, 2]}


def test_encode_unsupported_value_raises_encode_error() -> None:
    with pytest.raises(EncodeError):
        codec.encode(Opaque())


def test_decode_text() -> None:
    assert codec.decode_text("héllo".encode("utf-8")) == "héllo"

    with pytest.raises(DecodeError):
        codec.decode_text(b"\xff\xfe\xfa")


def test_to_json_text_of_none_is_empty() -> None:
    assert codec.to_json_text(None) == ""


def test_encode_unserializable_member_raises_encode_error() -> None:
    with pytest.raises(EncodeError):
        codec.encode({"handle": Opaque()})


def test_encode_error_is_a_value_error_not_a_schema_error() -> None:
    with pytest.raises(EncodeError) as info:
        codec.encode(Opaque())

    assert isinstance(info.value, ValueError)
    assert info.value.__cause__ is not None
