"""Protobuf wire format primitives: varints, keys, and field skipping."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, TypeVar

from .errors import DecodeError

MIN_TAG = 1
MAX_TAG = (1 << 29) - 1
RECURSION_LIMIT = 100

_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1
_MAX_VARINT_LEN = 10

T = TypeVar("T")


class Reader:
    """A read cursor over an immutable byte sequence."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview = b"") -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        """Number of bytes left to read."""
        return len(self._data) - self._pos

    @property
    def position(self) -> int:
        """Number of bytes consumed so far."""
        return self._pos

    def read(self, size: int) -> bytes:
        """Consume and return the next ``size`` bytes."""
        if size < 0:
            raise ValueError(f"negative read size: {size}")
        if size > self.remaining:
            raise DecodeError("buffer underflow")
        start = self._pos
        self._pos += size
        return self._data[start : self._pos]

    def read_byte(self) -> int:
        """Consume and return the next byte."""
        if self._pos >= len(self._data):
            raise DecodeError("buffer underflow")
        byte = self._data[self._pos]
        self._pos += 1
        return byte

    def advance(self, size: int) -> None:
        """Skip over the next ``size`` bytes."""
        if size < 0:
            raise ValueError(f"negative advance: {size}")
        if size > self.remaining:
            raise DecodeError("buffer underflow")
        self._pos += size

    def _window(self, size: int) -> bytes:
        return self._data[self._pos : self._pos + size]

    def __repr__(self) -> str:
        return f"Reader(position={self._pos}, remaining={self.remaining})"


class WireType(enum.IntEnum):
    """The wire type carried in the low three bits of a field key."""

    VARINT = 0
    SIXTY_FOUR_BIT = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    THIRTY_TWO_BIT = 5


def _wire_type_from(value: int) -> WireType:
    try:
        return WireType(value)
    except ValueError:
        raise DecodeError(f"invalid wire type value: {value}") from None


@dataclass(frozen=True)
class DecodeContext:
    """State threaded through nested decodes; bounds recursion depth."""

    recurse_count: int = RECURSION_LIMIT

    def enter_recursion(self) -> DecodeContext:
        """Return the context for one level deeper."""
        return DecodeContext(self.recurse_count - 1)

    def check_limit(self) -> None:
        """Raise if no further recursion is allowed."""
        if self.recurse_count <= 0:
            raise DecodeError("recursion limit reached")


def encode_varint(value: int, buf: bytearray) -> None:
    """Append ``value`` to ``buf`` as an LEB128 varint."""
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"varint value out of range: {value}")
    while value >= 0x80:
        buf.append((value & 0x7F) | 0x80)
        value >>= 7
    buf.append(value)


def decode_varint(reader: Reader) -> int:
    """Read an LEB128 varint of at most 10 bytes that fits in 64 bits."""
    value = 0
    for count, byte in enumerate(reader._window(_MAX_VARINT_LEN)):
        value |= (byte & 0x7F) << (7 * count)
        if byte < 0x80:
            if count == _MAX_VARINT_LEN - 1 and byte >= 0x02:
                break
            reader.advance(count + 1)
            return value
    raise DecodeError("invalid varint")


def encoded_len_varint(value: int) -> int:
    """Number of bytes ``value`` takes as a varint, between 1 and 10."""
    return max(1, (value.bit_length() + 6) // 7)


def encode_key(tag: int, wire_type: WireType, buf: bytearray) -> None:
    """Append a field key made of ``tag`` and ``wire_type``."""
    if not MIN_TAG <= tag <= MAX_TAG:
        raise ValueError(f"tag out of range: {tag}")
    encode_varint((tag << 3) | int(wire_type), buf)


def decode_key(reader: Reader) -> tuple[int, WireType]:
    """Read a field key, returning ``(tag, wire_type)``."""
    key = decode_varint(reader)
    if key > _U32_MAX:
        raise DecodeError(f"invalid key value: {key}")
    wire_type = _wire_type_from(key & 0x07)
    tag = key >> 3
    if tag < MIN_TAG:
        raise DecodeError("invalid tag value: 0")
    return tag, wire_type


def key_len(tag: int) -> int:
    """Width of an encoded key with ``tag``, between 1 and 5 bytes."""
    return encoded_len_varint(tag << 3)


def check_wire_type(expected: WireType, actual: WireType) -> None:
    """Raise unless ``actual`` is the ``expected`` wire type."""
    if expected != actual:
        raise DecodeError(
            f"invalid wire type: {WireType(actual).name} "
            f"(expected {WireType(expected).name})"
        )


def merge_loop(
    value: T,
    reader: Reader,
    ctx: DecodeContext,
    merge: Callable[[T, Reader, DecodeContext], None],
) -> None:
    """Read a length prefix, then call ``merge`` until that many bytes are consumed."""
    length = decode_varint(reader)
    remaining = reader.remaining
    if length > remaining:
        raise DecodeError("buffer underflow")
    limit = remaining - length
    while reader.remaining > limit:
        merge(value, reader, ctx)
    if reader.remaining != limit:
        raise DecodeError("delimited length exceeded")


def skip_field(
    wire_type: WireType, tag: int, reader: Reader, ctx: DecodeContext
) -> None:
    """Consume the payload of a field that is not otherwise handled."""
    ctx.check_limit()
    if wire_type == WireType.VARINT:
        decode_varint(reader)
        length = 0
    elif wire_type == WireType.THIRTY_TWO_BIT:
        length = 4
    elif wire_type == WireType.SIXTY_FOUR_BIT:
        length = 8
    elif wire_type == WireType.LENGTH_DELIMITED:
        length = decode_varint(reader)
    elif wire_type == WireType.START_GROUP:
        while True:
            inner_tag, inner_wire_type = decode_key(reader)
            if inner_wire_type == WireType.END_GROUP:
                if inner_tag != tag:
                    raise DecodeError("unexpected end group tag")
                break
            skip_field(inner_wire_type, inner_tag, reader, ctx.enter_recursion())
        length = 0
    else:
        raise DecodeError("unexpected end group tag")

    if length > reader.remaining:
        raise DecodeError("buffer underflow")
    reader.advance(length)