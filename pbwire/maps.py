"""Encoding of Protobuf ``map<K, V>`` fields as repeated key/value entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, MutableMapping, Protocol

from .wire import (
    DecodeContext,
    Reader,
    WireType,
    decode_key,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
    skip_field,
)

_KEY_TAG = 1
_VALUE_TAG = 2
_MISSING: Any = object()


class FieldCodec(Protocol):
    """The operations a map needs from the codec of its keys or values."""

    default: Any

    def encode(self, tag: int, value: Any, buf: bytearray) -> None: ...

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any: ...

    def encoded_len(self, tag: int, value: Any) -> int: ...


@dataclass
class _Entry:
    key: Any
    value: Any


def _value_default(val_codec: FieldCodec, val_default: Any) -> Any:
    return val_codec.default if val_default is _MISSING else val_default


def _entry_len(
    key_codec: FieldCodec,
    val_codec: FieldCodec,
    key: Any,
    value: Any,
    val_default: Any,
) -> tuple[int, bool, bool]:
    skip_key = key == key_codec.default
    skip_val = value == val_default
    length = 0
    if not skip_key:
        length += key_codec.encoded_len(_KEY_TAG, key)
    if not skip_val:
        length += val_codec.encoded_len(_VALUE_TAG, value)
    return length, skip_key, skip_val


def encode_map(
    key_codec: FieldCodec,
    val_codec: FieldCodec,
    tag: int,
    values: MutableMapping[Any, Any],
    buf: bytearray,
    val_default: Any = _MISSING,
) -> None:
    """Append one length-delimited entry per item of ``values``, in iteration order.

    Keys equal to the key codec's default and values equal to ``val_default``
    (the value codec's default unless given) are left out of their entry.
    """
    val_default = _value_default(val_codec, val_default)
    for key, value in values.items():
        length, skip_key, skip_val = _entry_len(
            key_codec, val_codec, key, value, val_default
        )
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(length, buf)
        if not skip_key:
            key_codec.encode(_KEY_TAG, key, buf)
        if not skip_val:
            val_codec.encode(_VALUE_TAG, value, buf)


def merge_map(
    key_codec: FieldCodec,
    val_codec: FieldCodec,
    values: MutableMapping[Any, Any],
    reader: Reader,
    ctx: DecodeContext | None = None,
    val_default: Any = _MISSING,
) -> None:
    """Decode one map entry whose field key has been consumed and store it in ``values``."""
    if ctx is None:
        ctx = DecodeContext()
    entry = _Entry(key_codec.default, _value_default(val_codec, val_default))

    def merge_entry_field(item: _Entry, inner: Reader, inner_ctx: DecodeContext) -> None:
        field_tag, wire_type = decode_key(inner)
        if field_tag == _KEY_TAG:
            item.key = key_codec.merge(wire_type, inner, inner_ctx)
        elif field_tag == _VALUE_TAG:
            item.value = val_codec.merge(wire_type, inner, inner_ctx)
        else:
            skip_field(wire_type, field_tag, inner, inner_ctx)

    ctx.check_limit()
    merge_loop(entry, reader, ctx.enter_recursion(), merge_entry_field)
    values[entry.key] = entry.value


def encoded_len_map(
    key_codec: FieldCodec,
    val_codec: FieldCodec,
    tag: int,
    values: MutableMapping[Any, Any],
    val_default: Any = _MISSING,
) -> int:
    """Number of bytes ``encode_map`` writes for ``values``."""
    val_default = _value_default(val_codec, val_default)
    total = key_len(tag) * len(values)
    for key, value in values.items():
        length, _, _ = _entry_len(key_codec, val_codec, key, value, val_default)
        total += encoded_len_varint(length) + length
    return total