"""Codecs for length-delimited fields: strings, bytes, messages and groups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence, TypeVar

from .errors import DecodeError
from .wire import (
    DecodeContext,
    Reader,
    WireType,
    check_wire_type,
    decode_key,
    decode_varint,
    encode_key,
    encode_varint,
    encoded_len_varint,
    key_len,
    merge_loop,
)


class MessageLike(Protocol):
    """The operations the message and group codecs need from a message."""

    def encode_raw(self, buf: bytearray) -> None: ...

    def merge_field(
        self, tag: int, wire_type: WireType, reader: Reader, ctx: DecodeContext
    ) -> None: ...

    def encoded_len(self) -> int: ...


M = TypeVar("M", bound=MessageLike)


def _read_delimited(reader: Reader) -> bytes:
    length = decode_varint(reader)
    if length > reader.remaining:
        raise DecodeError("buffer underflow")
    return reader.read(length)


def _delimited_len(length: int) -> int:
    return encoded_len_varint(length) + length


@dataclass(frozen=True)
class StringCodec:
    """Encoding functions for UTF-8 ``string`` fields."""

    name: str = "string"
    default: str = ""

    @property
    def wire_type(self) -> WireType:
        return WireType.LENGTH_DELIMITED

    def encode(self, tag: int, value: str, buf: bytearray) -> None:
        """Append the field ``tag`` holding ``value``."""
        data = value.encode("utf-8")
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(data), buf)
        buf += data

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> str:
        """Read one string whose key has already been consumed."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        data = _read_delimited(reader)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError(
                "invalid string value: data is not UTF-8 encoded"
            ) from None

    def encode_repeated(self, tag: int, values: Iterable[str], buf: bytearray) -> None:
        """Append each string as its own field."""
        for value in values:
            self.encode(tag, value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[str],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Decode one string and append it to ``values``."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        values.append(self.merge(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: str) -> int:
        return key_len(tag) + _delimited_len(len(value.encode("utf-8")))

    def encoded_len_repeated(self, tag: int, values: Sequence[str]) -> int:
        return key_len(tag) * len(values) + sum(
            _delimited_len(len(value.encode("utf-8"))) for value in values
        )


@dataclass(frozen=True)
class BytesCodec:
    """Encoding functions for ``bytes`` fields."""

    name: str = "bytes"
    default: bytes = b""

    @property
    def wire_type(self) -> WireType:
        return WireType.LENGTH_DELIMITED

    def encode(self, tag: int, value: bytes, buf: bytearray) -> None:
        """Append the field ``tag`` holding ``value``."""
        data = bytes(value)
        encode_key(tag, WireType.LENGTH_DELIMITED, buf)
        encode_varint(len(data), buf)
        buf += data

    def merge(self, wire_type: WireType, reader: Reader, ctx: DecodeContext) -> bytes:
        """Read one byte string whose key has already been consumed."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        return _read_delimited(reader)

    def encode_repeated(
        self, tag: int, values: Iterable[bytes], buf: bytearray
    ) -> None:
        """Append each byte string as its own field."""
        for value in values:
            self.encode(tag, value, buf)

    def merge_repeated(
        self,
        wire_type: WireType,
        values: list[bytes],
        reader: Reader,
        ctx: DecodeContext,
    ) -> None:
        """Decode one byte string and append it to ``values``."""
        check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
        values.append(self.merge(wire_type, reader, ctx))

    def encoded_len(self, tag: int, value: bytes) -> int:
        return key_len(tag) + _delimited_len(len(value))

    def encoded_len_repeated(self, tag: int, values: Sequence[bytes]) -> int:
        return key_len(tag) * len(values) + sum(
            _delimited_len(len(value)) for value in values
        )


STRING = StringCodec()
BYTES = BytesCodec()


def _merge_next_field(msg: MessageLike, reader: Reader, ctx: DecodeContext) -> None:
    tag, wire_type = decode_key(reader)
    msg.merge_field(tag, wire_type, reader, ctx)


def encode_message(tag: int, msg: MessageLike, buf: bytearray) -> None:
    """Append ``msg`` as a length-delimited embedded message field."""
    encode_key(tag, WireType.LENGTH_DELIMITED, buf)
    encode_varint(msg.encoded_len(), buf)
    msg.encode_raw(buf)


def merge_message(
    wire_type: WireType, msg: MessageLike, reader: Reader, ctx: DecodeContext
) -> None:
    """Merge an embedded message whose key has already been consumed into ``msg``."""
    check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
    ctx.check_limit()
    merge_loop(msg, reader, ctx.enter_recursion(), _merge_next_field)


def encode_repeated_messages(
    tag: int, messages: Iterable[MessageLike], buf: bytearray
) -> None:
    """Append each message as its own embedded message field."""
    for msg in messages:
        encode_message(tag, msg, buf)


def merge_repeated_messages(
    wire_type: WireType,
    messages: list[M],
    factory: Callable[[], M],
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Decode one embedded message built by ``factory`` and append it."""
    check_wire_type(WireType.LENGTH_DELIMITED, wire_type)
    msg = factory()
    merge_message(WireType.LENGTH_DELIMITED, msg, reader, ctx)
    messages.append(msg)


def encoded_len_message(tag: int, msg: MessageLike) -> int:
    return key_len(tag) + _delimited_len(msg.encoded_len())


def encoded_len_repeated_messages(tag: int, messages: Sequence[MessageLike]) -> int:
    return key_len(tag) * len(messages) + sum(
        _delimited_len(msg.encoded_len()) for msg in messages
    )


def encode_group(tag: int, msg: MessageLike, buf: bytearray) -> None:
    """Append ``msg`` framed by start-group and end-group keys."""
    encode_key(tag, WireType.START_GROUP, buf)
    msg.encode_raw(buf)
    encode_key(tag, WireType.END_GROUP, buf)


def merge_group(
    tag: int,
    wire_type: WireType,
    msg: MessageLike,
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Merge fields into ``msg`` until the end-group key matching ``tag``."""
    check_wire_type(WireType.START_GROUP, wire_type)
    ctx.check_limit()
    while True:
        field_tag, field_wire_type = decode_key(reader)
        if field_wire_type == WireType.END_GROUP:
            if field_tag != tag:
                raise DecodeError("unexpected end group tag")
            return
        msg.merge_field(field_tag, field_wire_type, reader, ctx.enter_recursion())


def encode_repeated_groups(
    tag: int, messages: Iterable[MessageLike], buf: bytearray
) -> None:
    """Append each message as its own group."""
    for msg in messages:
        encode_group(tag, msg, buf)


def merge_repeated_groups(
    tag: int,
    wire_type: WireType,
    messages: list[M],
    factory: Callable[[], M],
    reader: Reader,
    ctx: DecodeContext,
) -> None:
    """Decode one group into a message built by ``factory`` and append it."""
    check_wire_type(WireType.START_GROUP, wire_type)
    msg = factory()
    merge_group(tag, WireType.START_GROUP, msg, reader, ctx)
    messages.append(msg)


def encoded_len_group(tag: int, msg: MessageLike) -> int:
    return 2 * key_len(tag) + msg.encoded_len()


def encoded_len_repeated_groups(tag: int, messages: Sequence[MessageLike]) -> int:
    return 2 * key_len(tag) * len(messages) + sum(
        msg.encoded_len() for msg in messages
    )