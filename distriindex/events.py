"""Program events emitted alongside instructions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from .borsh import Decoder, PublicKey

_READERS: dict[str, Callable[[Decoder], Any]] = {
    "pubkey": Decoder.read_pubkey,
    "uuid": lambda decoder: decoder.read_bytes(16),
    "u32": Decoder.read_u32,
}


@dataclass(frozen=True)
class Event:
    """Base for events: fields in declared order, with no discriminator."""

    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = ()

    @classmethod
    def decode(cls, decoder: Decoder) -> "Event":
        return cls(**{name: _READERS[kind](decoder) for name, kind in cls._LAYOUT})

    @classmethod
    def from_bytes(cls, data: bytes) -> "Event":
        return cls.decode(Decoder(data))


@dataclass(frozen=True)
class MachineEvent(Event):
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("owner", "pubkey"),
        ("uuid", "uuid"),
    )

    owner: PublicKey
    uuid: bytes


@dataclass(frozen=True)
class OrderEvent(Event):
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("order_id", "uuid"),
        ("buyer", "pubkey"),
        ("seller", "pubkey"),
        ("machine_id", "uuid"),
    )

    order_id: bytes
    buyer: PublicKey
    seller: PublicKey
    machine_id: bytes


@dataclass(frozen=True)
class TaskEvent(Event):
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("uuid", "uuid"),
        ("period", "u32"),
        ("owner", "pubkey"),
        ("machine_id", "uuid"),
    )

    uuid: bytes
    period: int
    owner: PublicKey
    machine_id: bytes


@dataclass(frozen=True)
class RewardEvent(Event):
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("period", "u32"),
        ("owner", "pubkey"),
        ("machine_id", "uuid"),
    )

    period: int
    owner: PublicKey
    machine_id: bytes