"""Errors raised while encoding and decoding Protobuf data."""

from __future__ import annotations

_DECODE_PREFIX = "failed to decode Protobuf message: "


class DecodeError(ValueError):
    """The input does not hold a valid Protobuf message.

    The description is a best-effort root cause. The stack holds
    ``(message, field)`` name pairs, one per level of nesting, that
    locate where decoding failed.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description
        self.stack: list[tuple[str, str]] = []

    def push(self, message: str, field: str) -> None:
        """Record a ``(message, field)`` location on the stack."""
        self.stack.append((message, field))

    def __str__(self) -> str:
        location = "".join(f"{message}.{field}: " for message, field in self.stack)
        return f"{_DECODE_PREFIX}{location}{self.description}"

    def __repr__(self) -> str:
        return f"DecodeError(description={self.description!r}, stack={self.stack!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecodeError):
            return NotImplemented
        return self.description == other.description and self.stack == other.stack

    def __hash__(self) -> int:
        return hash((DecodeError, self.description))


class EncodeError(ValueError):
    """A message did not fit in the buffer capacity it was given."""

    def __init__(self, required_capacity: int, remaining: int) -> None:
        super().__init__(required_capacity, remaining)
        self.required_capacity = required_capacity
        self.remaining = remaining

    def __str__(self) -> str:
        return (
            "failed to encode Protobuf messsage; insufficient buffer capacity "
            f"(required: {self.required_capacity}, remaining: {self.remaining})"
        )

    def __repr__(self) -> str:
        return (
            f"EncodeError(required_capacity={self.required_capacity}, "
            f"remaining={self.remaining})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncodeError):
            return NotImplemented
        return (self.required_capacity, self.remaining) == (
            other.required_capacity,
            other.remaining,
        )

    def __hash__(self) -> int:
        return hash((EncodeError, self.required_capacity, self.remaining))