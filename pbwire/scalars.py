"""Codecs for Protobuf scalar fields: varint and fixed-width numbers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from .errors import DecodeError
from .wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)

_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1
_I32_MIN, _I32_MAX = -(1 << 31), (1 << 31) - 1
_I64_MIN, _I64_MAX = -(1 << 63), (1 << 63) - 1


def _require(value: int, low: int, high: int, kind: str) -> int:
    if not low <= value <= high:
        raise ValueError(f"{kind} value out of range: {value}")
    return value


def _as_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _int32_to_wire(value: int) -> int:
    return _require(value, _I32_MIN, _I32_MAX, "int32") & _U64_MAX


def _int64_to_wire(value: int) -> int:
    return _require(value, _I64_MIN, _I64_MAX, "int64") & _U64_MAX


def _uint32_to_wire(value: int) -> int:
    return _require(value, 0, _U32_MAX, "uint32")


def _uint64_to_wire(value: int) -> int:
    return _require(value, 0, _U64_MAX, "uint64")


def _sint32_to_wire(value: int) -> int:
    value = _require(value, _I32_MIN, _I32_MAX, "sint32")
    return ((value << 1) ^ (value >> 31)) & _U32_MAX


def _sint32_from_wire(value: int) -> int:
    value &= _U32_MAX
    return (value >> 1) ^ -(value & 1)


def _sint64_to_wire(value: int) -> int:
    value = _require(value, _I64_MIN, _I64_MAX, "sint64")
    return ((value << 1) ^ (value >> 63)) & _U64_MAX


def _sint64_from_wire(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


@dataclass(frozen=True)
class VarintCodec:
    """Encoding functions for a scalar type carried as a varint."""

    name: str
    to_wire: Callable[[Any], int]
    from_wire: Callable[[int], Any]
    default: Any = 0

    @property
    def wire_type(self) -> WireType:
        return WireType.VARINT

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append the field ``tag`` holding ``value``."""
        wire_value = self.to_wire(value)
        encode_key(tag, WireType.VARINT, buf)
        encode_varint(wire_value, buf)

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        """Read one value whose key has already been consumed."""
        check_wire_type(WireType.VARINT, wire_type)
        return self.from_wire(decode_varint(reader))

    def encode_repeated(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append each value as its own field."""
        for value in values:
            self.encode(tag, value, buf)

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append all values as one length-delimited packed field."""
        if not values:
            return
        wire_values = [self.to_wire(value) for value in values]
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(sum(encoded_len_varint(v) for v in wire_values), buf)
        for wire_value in wire_values:
            encode_varint(wire_value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Append decoded values to ``values``, accepting packed or unpacked input."""
        if wire_type == WireType.LENGTH_DELIMITED:
            merge_loop(
                values,
                reader,
                ctx,
                lambda acc, r, c: acc.append(self.merge(WireType.VARINT, r, c)),
            )
        else:
            check_wire_type(WireType.VARINT, wire_type)
            values.append(self.merge(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: Any) -> int:
        return key_len(tag) + encoded_len_varint(self.to_wire(value))

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        return key_len(tag) * len(values) + sum(
            encoded_len_varint(self.to_wire(value)) for value in values
        )

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        if not values:
            return 0
        length = sum(encoded_len_varint(self.to_wire(value)) for value in values)
        return key_len(tag) + encoded_len_varint(length) + length


@dataclass(frozen=True, eq=False)
class FixedCodec:
    """Encoding functions for a fixed-width little-endian scalar type."""

    name: str
    layout: struct.Struct
    wire_type: WireType
    default: Any = 0

    @property
    def width(self) -> int:
        return self.layout.size

    def _pack(self, value: Any) -> bytes:
        try:
            return self.layout.pack(value)
        except (struct.error, OverflowError) as exc:
            raise ValueError(f"{self.name} value out of range: {value!r}") from exc

    def encode(self, tag: int, value: Any, buf: bytearray) -> None:
        """Append the field ``tag`` holding ``value``."""
        packed = self._pack(value)
        encode_key(tag, self.wire_type, buf)
        buf += packed

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> Any:
        """Read one value whose key has already been consumed."""
        check_wire_type(self.wire_type, wire_type)
        if reader.remaining < self.width:
            raise DecodeError("buffer underflow")
        return self.layout.unpack(reader.read(self.width))[0]

    def encode_repeated(self, tag: int, values: Iterable[Any], buf: bytearray) -> None:
        """Append each value as its own field."""
        for value in values:
            self.encode(tag, value, buf)

    def encode_packed(self, tag: int, values: Sequence[Any], buf: bytearray) -> None:
        """Append all values as one length-delimited packed field."""
        if not values:
            return
        payload = b"".join(self._pack(value) for value in values)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(payload), buf)
        buf += payload

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[Any],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Append decoded values to ``values``, accepting packed or unpacked input."""
        if wire_type == WireType.LENGTH_DELIMITED:
            merge_loop(
                values,
                reader,
                ctx,
                lambda acc, r, c: acc.append(self.merge(self.wire_type, r, c)),
            )
        else:
            check_wire_type(self.wire_type, wire_type)
            values.append(self.merge(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: Any) -> int:
        return key_len(tag) + self.width

    def encoded_len_repeated(self, tag: int, values: Sequence[Any]) -> int:
        return (key_len(tag) + self.width) * len(values)

    def encoded_len_packed(self, tag: int, values: Sequence[Any]) -> int:
        if not values:
            return 0
        length = self.width * len(values)
        return key_len(tag) + encoded_len_varint(length) + length


BOOL = VarintCodec("bool", lambda v: 1 if v else 0, lambda v: v != 0, False)
INT32 = VarintCodec("int32", _int32_to_wire, lambda v: _as_signed(v, 32))
INT64 = VarintCodec("int64", _int64_to_wire, lambda v: _as_signed(v, 64))
UINT32 = VarintCodec("uint32", _uint32_to_wire, lambda v: v & _U32_MAX)
UINT64 = VarintCodec("uint64", _uint64_to_wire, lambda v: v)
SINT32 = VarintCodec("sint32", _sint32_to_wire, _sint32_from_wire)
SINT64 = VarintCodec("sint64", _sint64_to_wire, _sint64_from_wire)

FLOAT = FixedCodec("float", struct.Struct("<f"), WireType.THIRTY_TWO_BIT, 0.0)
DOUBLE = FixedCodec("double", struct.Struct("<d"), WireType.SIXTY_FOUR_BIT, 0.0)
FIXED32 = FixedCodec("fixed32", struct.Struct("<I"), WireType.THIRTY_TWO_BIT)
FIXED64 = FixedCodec("fixed64", struct.Struct("<Q"), WireType.SIXTY_FOUR_BIT)
SFIXED32 = FixedCodec("sfixed32", struct.Struct("<i"), WireType.THIRTY_TWO_BIT)
SFIXED64 = FixedCodec("sfixed64", struct.Struct("<q"), WireType.SIXTY_FOUR_BIT)