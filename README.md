# pbwire

Building blocks for reading and writing the Protocol Buffers binary wire
format in plain Python, with no dependencies outside the standard library.

## Modules

- `pbwire.wire`: varints (`encode_varint`, `decode_varint`,
  `encoded_len_varint`), field keys (`encode_key`, `decode_key`, `key_len`),
  the `WireType` enum, `check_wire_type`, a `Reader` cursor over input
  bytes, `DecodeContext` for the nesting limit (`RECURSION_LIMIT`, 100
  levels), `merge_loop` for length-prefixed payloads and `skip_field` for
  fields a decoder does not handle.
- `pbwire.scalars`: `VarintCodec` and `FixedCodec`, with ready-made codecs
  `BOOL`, `INT32`, `INT64`, `UINT32`, `UINT64`, `SINT32`, `SINT64`,
  `FLOAT`, `DOUBLE`, `FIXED32`, `FIXED64`, `SFIXED32` and `SFIXED64`. Each
  has `encode`, `merge`, `encode_repeated`, `encode_packed`,
  `merge_repeated` (accepting packed or unpacked input) and the matching
  `encoded_len`, `encoded_len_repeated` and `encoded_len_packed`. Values out
  of range for their type raise `ValueError`.
- `pbwire.lengthdelim`: `StringCodec` and `BytesCodec` (ready-made as
  `STRING` and `BYTES`), plus helpers for embedded messages
  (`encode_message`, `merge_message`, `encode_repeated_messages`,
  `merge_repeated_messages`, `encoded_len_message`,
  `encoded_len_repeated_messages`) and groups (`encode_group`,
  `merge_group`, `encode_repeated_groups`, `merge_repeated_groups`,
  `encoded_len_group`, `encoded_len_repeated_groups`).
- `pbwire.maps`: `encode_map`, `merge_map` and `encoded_len_map` for
  `map<K, V>` fields, built from any key and value codec. Keys and values
  equal to their default are left out of an entry.
- `pbwire.errors`: `DecodeError` (a `ValueError`) for malformed input, whose
  text reads `failed to decode Protobuf message: ...`, and `EncodeError`,
  which carries `required_capacity` and `remaining` for callers that encode
  into a buffer of limited capacity.

## Varints

```python
from pbwire.wire import Reader, decode_varint, encode_varint

buf = bytearray()
encode_varint(300, buf)
assert bytes(buf) == b"\xac\x02"
assert decode_varint(Reader(bytes(buf))) == 300
```

## Fields

Encoding writes the key and then the value; decoding reads the key with
`decode_key` and hands the wire type to the codec.

```python
from pbwire.scalars import INT32
from pbwire.wire import DecodeContext, Reader, WireType, decode_key

buf = bytearray()
INT32.encode(1, 150, buf)
assert bytes(buf) == b"\x08\x96\x01"

reader = Reader(bytes(buf))
tag, wire_type = decode_key(reader)
assert (tag, wire_type) == (1, WireType.VARINT)
assert INT32.merge(wire_type, reader, DecodeContext()) == 150
```

## Maps

```python
from pbwire.lengthdelim import STRING
from pbwire.maps import encode_map, merge_map
from pbwire.scalars import INT32
from pbwire.wire import Reader, decode_key

buf = bytearray()
encode_map(STRING, INT32, 3, {"a": 1}, buf)

reader = Reader(bytes(buf))
decode_key(reader)
decoded = {}
merge_map(STRING, INT32, decoded, reader)
assert decoded == {"a": 1}
```

## Messages of your own

The message and group helpers work with any object that has
`encode_raw(buf)`, `merge_field(tag, wire_type, reader, ctx)` and
`encoded_len()`:

```python
from pbwire.scalars import SINT32
from pbwire.wire import DecodeContext, Reader, decode_key, skip_field


class Point:
    def __init__(self, x=0, y=0):
        self.x, self.y = x, y

    def encode_raw(self, buf):
        if self.x:
            SINT32.encode(1, self.x, buf)
        if self.y:
            SINT32.encode(2, self.y, buf)

    def merge_field(self, tag, wire_type, reader, ctx):
        if tag == 1:
            self.x = SINT32.merge(wire_type, reader, ctx)
        elif tag == 2:
            self.y = SINT32.merge(wire_type, reader, ctx)
        else:
            skip_field(wire_type, tag, reader, ctx)

    def encoded_len(self):
        return (SINT32.encoded_len(1, self.x) if self.x else 0) + (
            SINT32.encoded_len(2, self.y) if self.y else 0
        )


buf = bytearray()
Point(3, -4).encode_raw(buf)

point, reader, ctx = Point(), Reader(bytes(buf)), DecodeContext()
while reader.remaining:
    tag, wire_type = decode_key(reader)
    point.merge_field(tag, wire_type, reader, ctx)
assert (point.x, point.y) == (3, -4)
```

Nested messages and groups deeper than 100 levels fail with
`DecodeError("recursion limit reached")`.

## What it does not do

pbwire provides the wire-format primitives only. It has no message base
class, no top-level encode/decode helpers for whole messages or
length-delimited streams, no well-known wrapper types, and no code
generation from `.proto` files: message classes are written by hand as
shown above.

## Running the tests

Install the `test` extra and run `pytest`.