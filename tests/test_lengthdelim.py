from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pbwire.errors import DecodeError
from pbwire.lengthdelim import (
    BYTES,
    STRING,
    encode_group,
    encode_message,
    encode_repeated_groups,
    encode_repeated_messages,
    encoded_len_group,
    encoded_len_message,
    encoded_len_repeated_groups,
    encoded_len_repeated_messages,
    merge_group,
    merge_message,
    merge_repeated_groups,
    merge_repeated_messages,
)
from pbwire.scalars import INT32
from pbwire.wire import (
    MAX_TAG,
    MIN_TAG,
    DecodeContext,
    Reader,
    WireType,
    decode_key,
    skip_field,
)

tags = st.integers(min_value=MIN_TAG, max_value=MAX_TAG)


def _check_type(codec, value, tag):
    expected_len = codec.encoded_len(tag, value)
    buf = bytearray()
    codec.encode(tag, value, buf)
    assert len(buf) == expected_len
    reader = Reader(buf)
    decoded_tag, decoded_wire_type = decode_key(reader)
    assert decoded_tag == tag
    assert decoded_wire_type == WireType.LENGTH_DELIMITED
    result = codec.merge(decoded_wire_type, reader, DecodeContext())
    assert reader.remaining == 0
    assert result == value


def _check_collection(codec, values, tag):
    expected_len = codec.encoded_len_repeated(tag, values)
    buf = bytearray()
    codec.encode_repeated(tag, values, buf)
    assert len(buf) == expected_len
    reader = Reader(buf)
    decoded: list = []
    while reader.remaining:
        decoded_tag, decoded_wire_type = decode_key(reader)
        assert decoded_tag == tag
        assert decoded_wire_type == WireType.LENGTH_DELIMITED
        codec.merge_repeated(decoded_wire_type, decoded, reader, DecodeContext())
    assert decoded == list(values)


@given(st.text(), tags)
def test_string_roundtrip(value, tag):
    _check_type(STRING, value, tag)


@given(st.lists(st.text()), tags)
def test_string_repeated_roundtrip(values, tag):
    _check_collection(STRING, values, tag)


@given(st.binary(), tags)
def test_bytes_roundtrip(value, tag):
    _check_type(BYTES, value, tag)


@given(st.lists(st.binary()), tags)
def test_bytes_repeated_roundtrip(values, tag):
    _check_collection(BYTES, values, tag)


def test_string_merge_invalid_utf8():
    reader = Reader(b"\x02\x80\x80")
    with pytest.raises(DecodeError) as info:
        STRING.merge(WireType.LENGTH_DELIMITED, reader, DecodeContext())
    assert info.value.description == "invalid string value: data is not UTF-8 encoded"


def test_string_encoding_is_fixed():
    buf = bytearray()
    STRING.encode(1, "hi", buf)
    assert bytes(buf) == b"\x0a\x02hi"


def test_string_length_counts_utf8_bytes():
    assert STRING.encoded_len(1, "\u1234") == 1 + 1 + 3


def test_bytes_underflow():
    reader = Reader(b"\x05ab")
    with pytest.raises(DecodeError) as info:
        BYTES.merge(WireType.LENGTH_DELIMITED, reader, DecodeContext())
    assert info.value.description == "buffer underflow"


def test_bytes_wrong_wire_type():
    with pytest.raises(DecodeError) as info:
        BYTES.merge(WireType.VARINT, Reader(b"\x00"), DecodeContext())
    assert "invalid wire type" in info.value.description


def test_string_repeated_wrong_wire_type():
    values: list[str] = []
    with pytest.raises(DecodeError):
        STRING.merge_repeated(WireType.THIRTY_TWO_BIT, values, Reader(b"\x00"), DecodeContext())
    assert values == []


@dataclass
class Pair:
    number: int = 0
    text: str = ""

    def encode_raw(self, buf):
        if self.number:
            INT32.encode(1, self.number, buf)
        if self.text:
            STRING.encode(2, self.text, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.number = INT32.merge(wire_type, reader, ctx)
        elif tag == 2:
            self.text = STRING.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        total = 0
        if self.number:
            total += INT32.encoded_len(1, self.number)
        if self.text:
            total += STRING.encoded_len(2, self.text)
        return total


@dataclass
class Nested:
    a: Optional["Nested"] = None

    def encode_raw(self, buf):
        if self.a is not None:
            encode_message(1, self.a, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            if self.a is None:
                self.a = Nested()
            merge_message(wire_type, self.a, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.a is None else encoded_len_message(1, self.a)


@dataclass
class Repeated:
    r: list = field(default_factory=list)

    def encode_raw(self, buf):
        encode_repeated_messages(1, self.r, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            merge_repeated_messages(wire_type, self.r, Repeated, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return encoded_len_repeated_messages(1, self.r)


@dataclass
class GroupA:
    i2: Optional[int] = None

    def encode_raw(self, buf):
        if self.i2 is not None:
            INT32.encode(2, self.i2, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 2:
            self.i2 = INT32.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.i2 is None else INT32.encoded_len(2, self.i2)


@dataclass
class GroupB:
    i16: Optional[int] = None

    def encode_raw(self, buf):
        if self.i16 is not None:
            INT32.encode(6, self.i16, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 6:
            self.i16 = INT32.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return 0 if self.i16 is None else INT32.encoded_len(6, self.i16)


def _decode_top(msg, data):
    reader = Reader(data)
    ctx = DecodeContext()
    while reader.remaining:
        tag, wire_type = decode_key(reader)
        msg.merge_field(tag, wire_type, reader, ctx)
    return msg


def test_message_roundtrip():
    msg = Pair(number=42, text="foo")
    buf = bytearray()
    encode_message(3, msg, buf)
    assert len(buf) == encoded_len_message(3, msg)
    reader = Reader(buf)
    tag, wire_type = decode_key(reader)
    assert tag == 3
    decoded = Pair()
    merge_message(wire_type, decoded, reader, DecodeContext())
    assert decoded == msg
    assert reader.remaining == 0


def test_message_encoding_is_fixed():
    buf = bytearray()
    encode_message(1, Pair(number=1), buf)
    assert bytes(buf) == b"\x0a\x02\x08\x01"


def test_repeated_messages_roundtrip():
    messages = [Pair(1, "a"), Pair(), Pair(300, "bc")]
    buf = bytearray()
    encode_repeated_messages(4, messages, buf)
    assert len(buf) == encoded_len_repeated_messages(4, messages)
    reader = Reader(buf)
    decoded: list[Pair] = []
    while reader.remaining:
        tag, wire_type = decode_key(reader)
        assert tag == 4
        merge_repeated_messages(wire_type, decoded, Pair, reader, DecodeContext())
    assert decoded == messages


def test_message_delimited_length_exceeded():
    # Declared length 1 but the inner varint field spans 2 bytes.
    reader = Reader(b"\x01\x08\x01")
    with pytest.raises(DecodeError) as info:
        merge_message(WireType.LENGTH_DELIMITED, Pair(), reader, DecodeContext())
    assert info.value.description == "delimited length exceeded"


def _nested(depth):
    a = Nested()
    for _ in range(depth):
        a = Nested(a=a)
    return a


def test_deep_nesting():
    ok = bytearray()
    _nested(100).encode_raw(ok)
    assert _decode_top(Nested(), bytes(ok)) == _nested(100)

    too_deep = bytearray()
    _nested(101).encode_raw(too_deep)
    with pytest.raises(DecodeError) as info:
        _decode_top(Nested(), bytes(too_deep))
    assert info.value.description == "recursion limit reached"


def _repeated(depth):
    c = Repeated()
    for _ in range(depth):
        c = Repeated(r=[c])
    return c


def test_deep_nesting_repeated():
    ok = bytearray()
    _repeated(100).encode_raw(ok)
    assert _decode_top(Repeated(), bytes(ok)) == _repeated(100)

    too_deep = bytearray()
    _repeated(101).encode_raw(too_deep)
    with pytest.raises(DecodeError):
        _decode_top(Repeated(), bytes(too_deep))


def test_group_encoding():
    msg = GroupA(i2=32)
    buf = bytearray()
    encode_group(1, msg, buf)
    assert bytes(buf) == bytes([0x0B, 0x10, 0x20, 0x0C])
    assert encoded_len_group(1, msg) == 4


def test_group_skips_unknown_fields():
    data = bytes(
        [0x0B, 0x30, 0x01, 0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x10, 0x20, 0x0C]
    )
    reader = Reader(data)
    tag, wire_type = decode_key(reader)
    msg = GroupA()
    merge_group(tag, wire_type, msg, reader, DecodeContext())
    assert msg == GroupA(i2=32)
    assert reader.remaining == 0


def test_repeated_groups():
    messages = [GroupB(i16=255), GroupB(i16=1)]
    expected = bytes([0x2B, 0x30, 0xFF, 0x01, 0x2C, 0x2B, 0x30, 0x01, 0x2C])
    buf = bytearray()
    encode_repeated_groups(5, messages, buf)
    assert bytes(buf) == expected
    assert encoded_len_repeated_groups(5, messages) == len(expected)

    reader = Reader(expected)
    decoded: list[GroupB] = []
    while reader.remaining:
        tag, wire_type = decode_key(reader)
        merge_repeated_groups(tag, wire_type, decoded, GroupB, reader, DecodeContext())
    assert decoded == messages


def test_group_mismatched_end_tag():
    reader = Reader(bytes([0x10, 0x20, 0x14]))
    with pytest.raises(DecodeError) as info:
        merge_group(1, WireType.START_GROUP, GroupA(), reader, DecodeContext())
    assert info.value.description == "unexpected end group tag"


def test_group_wrong_wire_type():
    with pytest.raises(DecodeError):
        merge_group(1, WireType.LENGTH_DELIMITED, GroupA(), Reader(b"\x0c"), DecodeContext())


def test_group_recursion_limit():
    with pytest.raises(DecodeError) as info:
        merge_group(1, WireType.START_GROUP, GroupA(), Reader(b"\x0c"), DecodeContext(0))
    assert info.value.description == "recursion limit reached"