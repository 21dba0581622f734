"""Program account records and their Anchor binary layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, ClassVar

from .borsh import BorshError, Decoder, Encoder, PublicKey
from .types import MachineStatus, OrderStatus

UUID_LENGTH = 16


class WrongDiscriminatorError(BorshError):
    """Raised when account data starts with another account type's tag."""


def _read_uuid(decoder: Decoder) -> bytes:
    return decoder.read_bytes(UUID_LENGTH)


def _write_uuid(encoder: Encoder, value: bytes) -> None:
    value = bytes(value)
    if len(value) != UUID_LENGTH:
        raise BorshError(f"uuid must be {UUID_LENGTH} bytes, got {len(value)}")
    encoder.write_bytes(value)


def _enum_reader(enum_cls: type[IntEnum]) -> Callable[[Decoder], Any]:
    def read(decoder: Decoder) -> IntEnum:
        raw = decoder.read_u8()
        try:
            return enum_cls(raw)
        except ValueError:
            raise BorshError(f"unknown {enum_cls.__name__} variant {raw}") from None

    return read


def _write_enum(encoder: Encoder, value: IntEnum) -> None:
    encoder.write_u8(int(value))


_READERS: dict[str, Callable[[Decoder], Any]] = {
    "pubkey": Decoder.read_pubkey,
    "uuid": _read_uuid,
    "string": Decoder.read_string,
    "u8": Decoder.read_u8,
    "u32": Decoder.read_u32,
    "u64": Decoder.read_u64,
    "i64": Decoder.read_i64,
    "bool": Decoder.read_bool,
    "machine_status": _enum_reader(MachineStatus),
    "order_status": _enum_reader(OrderStatus),
}

_WRITERS: dict[str, Callable[[Encoder, Any], None]] = {
    "pubkey": Encoder.write_pubkey,
    "uuid": _write_uuid,
    "string": Encoder.write_string,
    "u8": Encoder.write_u8,
    "u32": Encoder.write_u32,
    "u64": Encoder.write_u64,
    "i64": Encoder.write_i64,
    "bool": Encoder.write_bool,
    "machine_status": _write_enum,
    "order_status": _write_enum,
}


def _format_bytes(data: bytes) -> str:
    return "[" + " ".join(str(b) for b in data) + "]"


@dataclass
class Account:
    """Base for accounts: an 8-byte discriminator followed by the fields."""

    DISCRIMINATOR: ClassVar[bytes] = b""
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = ()

    def encode(self, encoder: Encoder) -> None:
        encoder.write_bytes(self.DISCRIMINATOR)
        for name, kind in self._LAYOUT:
            _WRITERS[kind](encoder, getattr(self, name))

    @classmethod
    def decode(cls, decoder: Decoder) -> "Account":
        got = decoder.read_bytes(8)
        if got != cls.DISCRIMINATOR:
            raise WrongDiscriminatorError(
                f"wrong discriminator: wanted {_format_bytes(cls.DISCRIMINATOR)}, "
                f"got {_format_bytes(got)}"
            )
        return cls(**{name: _READERS[kind](decoder) for name, kind in cls._LAYOUT})

    def to_bytes(self) -> bytes:
        encoder = Encoder()
        self.encode(encoder)
        return encoder.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Account":
        return cls.decode(Decoder(data))


@dataclass
class Machine(Account):
    DISCRIMINATOR: ClassVar[bytes] = bytes([25, 102, 22, 13, 58, 243, 138, 79])
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("owner", "pubkey"),
        ("uuid", "uuid"),
        ("metadata", "string"),
        ("status", "machine_status"),
        ("price", "u64"),
        ("max_duration", "u32"),
        ("disk", "u32"),
        ("completed_count", "u32"),
        ("failed_count", "u32"),
        ("score", "u8"),
        ("claimed_periodic_rewards", "u64"),
        ("claimed_task_rewards", "u64"),
    )

    owner: PublicKey = field(default_factory=PublicKey)
    uuid: bytes = bytes(UUID_LENGTH)
    metadata: str = ""
    status: MachineStatus = MachineStatus.IDLE
    price: int = 0
    max_duration: int = 0
    disk: int = 0
    completed_count: int = 0
    failed_count: int = 0
    score: int = 0
    claimed_periodic_rewards: int = 0
    claimed_task_rewards: int = 0


@dataclass
class Order(Account):
    DISCRIMINATOR: ClassVar[bytes] = bytes([134, 173, 223, 185, 77, 86, 28, 51])
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("order_id", "uuid"),
        ("buyer", "pubkey"),
        ("seller", "pubkey"),
        ("machine_id", "uuid"),
        ("price", "u64"),
        ("duration", "u32"),
        ("total", "u64"),
        ("metadata", "string"),
        ("status", "order_status"),
        ("order_time", "i64"),
        ("refund_time", "i64"),
    )

    order_id: bytes = bytes(UUID_LENGTH)
    buyer: PublicKey = field(default_factory=PublicKey)
    seller: PublicKey = field(default_factory=PublicKey)
    machine_id: bytes = bytes(UUID_LENGTH)
    price: int = 0
    duration: int = 0
    total: int = 0
    metadata: str = ""
    status: OrderStatus = OrderStatus.TRAINING
    order_time: int = 0
    refund_time: int = 0


@dataclass
class Reward(Account):
    DISCRIMINATOR: ClassVar[bytes] = bytes([174, 129, 42, 212, 190, 18, 45, 34])
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("period", "u32"),
        ("start_time", "i64"),
        ("pool", "u64"),
        ("machine_num", "u32"),
        ("unit_periodic_reward", "u64"),
        ("task_num", "u32"),
        ("unit_task_reward", "u64"),
    )

    period: int = 0
    start_time: int = 0
    pool: int = 0
    machine_num: int = 0
    unit_periodic_reward: int = 0
    task_num: int = 0
    unit_task_reward: int = 0


@dataclass
class RewardMachine(Account):
    DISCRIMINATOR: ClassVar[bytes] = bytes([106, 87, 186, 254, 4, 139, 144, 74])
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("period", "u32"),
        ("owner", "pubkey"),
        ("machine_id", "uuid"),
        ("task_num", "u32"),
        ("claimed", "bool"),
    )

    period: int = 0
    owner: PublicKey = field(default_factory=PublicKey)
    machine_id: bytes = bytes(UUID_LENGTH)
    task_num: int = 0
    claimed: bool = False


@dataclass
class Task(Account):
    DISCRIMINATOR: ClassVar[bytes] = bytes([79, 34, 229, 55, 88, 90, 55, 84])
    _LAYOUT: ClassVar[tuple[tuple[str, str], ...]] = (
        ("uuid", "uuid"),
        ("period", "u32"),
        ("owner", "pubkey"),
        ("machine_id", "uuid"),
        ("metadata", "string"),
    )

    uuid: bytes = bytes(UUID_LENGTH)
    period: int = 0
    owner: PublicKey = field(default_factory=PublicKey)
    machine_id: bytes = bytes(UUID_LENGTH)
    metadata: str = ""