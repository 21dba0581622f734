"""Borsh binary encoding, base58 text and Solana public keys."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Protocol, TypeVar

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: index for index, char in enumerate(ALPHABET)}

PUBLIC_KEY_LENGTH = 32

_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


class BorshError(ValueError):
    """Raised when data cannot be encoded or decoded."""


def b58encode(data: bytes) -> str:
    """Encode bytes as base58 text, keeping leading zero bytes as '1'."""
    data = bytes(data)
    number = int.from_bytes(data, "big")
    chars: list[str] = []
    while number:
        number, remainder = divmod(number, 58)
        chars.append(ALPHABET[remainder])
    padding = len(data) - len(data.lstrip(b"\x00"))
    return ALPHABET[0] * padding + "".join(reversed(chars))


def b58decode(text: str) -> bytes:
    """Decode base58 text into bytes."""
    number = 0
    for char in text:
        try:
            number = number * 58 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    padding = len(text) - len(text.lstrip(ALPHABET[0]))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * padding + body


@dataclass(frozen=True)
class PublicKey:
    """A 32-byte Solana public key."""

    raw: bytes = bytes(PUBLIC_KEY_LENGTH)

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) != PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(raw)}"
            )
        object.__setattr__(self, "raw", raw)

    @classmethod
    def from_base58(cls, text: str) -> "PublicKey":
        return cls(b58decode(text))

    def is_zero(self) -> bool:
        return not any(self.raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return b58encode(self.raw)

    def __repr__(self) -> str:
        return f"PublicKey({str(self)!r})"


class Decoder:
    """Reads Borsh values from a byte string, front to back."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read_bytes(self, n: int) -> bytes:
        if n < 0:
            raise BorshError(f"cannot read a negative number of bytes: {n}")
        end = self._pos + n
        if end > len(self._data):
            remaining = len(self._data) - self._pos
            raise BorshError(f"required {n} bytes, but only {remaining} remaining")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, layout: struct.Struct) -> int:
        return layout.unpack(self.read_bytes(layout.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_i64(self) -> int:
        return self._unpack(_I64)

    def read_string(self) -> str:
        raw = self.read_bytes(self.read_u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BorshError(f"invalid UTF-8 string: {exc}") from exc

    def read_pubkey(self) -> PublicKey:
        return PublicKey(self.read_bytes(PUBLIC_KEY_LENGTH))

    def has_remaining(self) -> bool:
        return self._pos < len(self._data)


class Encoder:
    """Collects Borsh-encoded values into a byte string."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_bytes(self, data: bytes) -> None:
        self._buffer += data

    def _pack(self, layout: struct.Struct, value: int, kind: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise BorshError(f"{kind} requires an integer, got {value!r}")
        try:
            self._buffer += layout.pack(value)
        except struct.error:
            raise BorshError(f"{value} is out of range for {kind}") from None

    def write_u8(self, value: int) -> None:
        self._pack(_U8, value, "u8")

    def write_bool(self, value: bool) -> None:
        self._buffer.append(1 if value else 0)

    def write_u32(self, value: int) -> None:
        self._pack(_U32, value, "u32")

    def write_u64(self, value: int) -> None:
        self._pack(_U64, value, "u64")

    def write_i64(self, value: int) -> None:
        self._pack(_I64, value, "i64")

    def write_string(self, value: str) -> None:
        raw = value.encode("utf-8")
        self.write_u32(len(raw))
        self.write_bytes(raw)

    def write_pubkey(self, value: PublicKey) -> None:
        if not isinstance(value, PublicKey):
            raise BorshError(f"expected a PublicKey, got {value!r}")
        self.write_bytes(value.raw)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class _Encodable(Protocol):
    def encode(self, encoder: Encoder) -> None: ...


T = TypeVar("T")


def encode(obj: _Encodable) -> bytes:
    """Encode an object that knows how to write itself to an Encoder."""
    encoder = Encoder()
    obj.encode(encoder)
    return encoder.getvalue()


def decode(cls: type[T], data: bytes) -> T:
    """Decode an instance of ``cls`` from ``data`` using its ``decode`` classmethod."""
    return cls.decode(Decoder(data))  # type: ignore[attr-defined]