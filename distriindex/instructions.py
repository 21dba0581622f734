"""Program instructions: type tags, the SubmitTask instruction and decoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .borsh import BorshError, Decoder, Encoder, PublicKey

PROGRAM_NAME = "DistriAi"
TYPE_ID_LENGTH = 8
UUID_LENGTH = 16

ADD_MACHINE = bytes([148, 26, 70, 80, 42, 110, 107, 230])
REMOVE_MACHINE = bytes([85, 41, 207, 236, 20, 250, 8, 97])
MAKE_OFFER = bytes([214, 98, 97, 35, 59, 12, 44, 178])
CANCEL_OFFER = bytes([92, 203, 223, 40, 92, 89, 53, 119])
SUBMIT_TASK = bytes([148, 183, 26, 116, 107, 213, 118, 213])
CLAIM = bytes([62, 198, 214, 193, 213, 159, 108, 210])
PLACE_ORDER = bytes([51, 194, 155, 175, 109, 130, 96, 106])
RENEW_ORDER = bytes([216, 180, 12, 76, 71, 44, 165, 151])
REFUND_ORDER = bytes([164, 168, 47, 144, 154, 1, 241, 255])
ORDER_COMPLETED = bytes([60, 28, 38, 17, 211, 99, 139, 226])
ORDER_FAILED = bytes([27, 173, 43, 153, 198, 108, 109, 66])
REMOVE_ORDER = bytes([118, 116, 244, 40, 144, 211, 242, 51])

INSTRUCTION_NAMES: dict[bytes, str] = {
    ADD_MACHINE: "AddMachine",
    REMOVE_MACHINE: "RemoveMachine",
    MAKE_OFFER: "MakeOffer",
    CANCEL_OFFER: "CancelOffer",
    SUBMIT_TASK: "SubmitTask",
    CLAIM: "Claim",
    PLACE_ORDER: "PlaceOrder",
    RENEW_ORDER: "RenewOrder",
    REFUND_ORDER: "RefundOrder",
    ORDER_COMPLETED: "OrderCompleted",
    ORDER_FAILED: "OrderFailed",
    REMOVE_ORDER: "RemoveOrder",
}


class InstructionError(BorshError):
    """Raised when an instruction is incomplete or cannot be encoded or decoded."""


def instruction_id_to_name(type_id: bytes) -> str:
    """Return the instruction name for an 8-byte type id, or '' if unknown."""
    return INSTRUCTION_NAMES.get(bytes(type_id), "")


@dataclass(frozen=True)
class AccountMeta:
    """An account passed to an instruction, with its access flags."""

    public_key: PublicKey
    is_writable: bool = False
    is_signer: bool = False

    def __str__(self) -> str:
        flags = [
            flag
            for flag, enabled in (("WRITE", self.is_writable), ("SIGNER", self.is_signer))
            if enabled
        ]
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.public_key}{suffix}"


_SUBMIT_TASK_ACCOUNTS = (
    ("machine", "Machine"),
    ("task", "Task"),
    ("reward", "Reward"),
    ("rewardMachine", "RewardMachine"),
    ("owner", "Owner"),
    ("systemProgram", "SystemProgram"),
)


def _empty_metas() -> list[Optional[AccountMeta]]:
    return [None] * len(_SUBMIT_TASK_ACCOUNTS)


@dataclass
class SubmitTask:
    """The ``submitTask`` instruction: its parameters and its six accounts.

    Accounts, in order: machine, task, reward, rewardMachine (all writable),
    owner (writable, signer) and systemProgram.
    """

    uuid: Optional[bytes] = None
    period: Optional[int] = None
    metadata: Optional[str] = None
    account_metas: list[Optional[AccountMeta]] = field(default_factory=_empty_metas)

    def _meta(self, index: int) -> Optional[AccountMeta]:
        return self.account_metas[index] if index < len(self.account_metas) else None

    def validate(self) -> None:
        """Raise InstructionError naming the first parameter or account not set."""
        for name in ("uuid", "period", "metadata"):
            if getattr(self, name) is None:
                raise InstructionError(f"{name.capitalize()} parameter is not set")
        for index, (_, title) in enumerate(_SUBMIT_TASK_ACCOUNTS):
            if self._meta(index) is None:
                raise InstructionError(f"accounts.{title} is not set")

    def build(self) -> "Instruction":
        return Instruction(type_id=SUBMIT_TASK, impl=self)

    def validate_and_build(self) -> "Instruction":
        self.validate()
        return self.build()

    def set_accounts(self, accounts: Sequence[Optional[AccountMeta]]) -> None:
        self.account_metas = list(accounts)

    def encode(self, encoder: Encoder) -> None:
        if self.uuid is None:
            raise InstructionError("Uuid parameter is not set")
        if self.period is None:
            raise InstructionError("Period parameter is not set")
        if self.metadata is None:
            raise InstructionError("Metadata parameter is not set")
        uuid = bytes(self.uuid)
        if len(uuid) != UUID_LENGTH:
            raise InstructionError(f"uuid must be {UUID_LENGTH} bytes, got {len(uuid)}")
        encoder.write_bytes(uuid)
        encoder.write_u32(self.period)
        encoder.write_string(self.metadata)

    @classmethod
    def decode(cls, decoder: Decoder) -> "SubmitTask":
        uuid = decoder.read_bytes(UUID_LENGTH)
        period = decoder.read_u32()
        metadata = decoder.read_string()
        return cls(uuid=uuid, period=period, metadata=metadata)

    def describe(self, program_id: PublicKey) -> str:
        """Render the instruction as an indented text tree."""
        uuid = "<nil>" if self.uuid is None else "0x" + bytes(self.uuid).hex()
        params = [
            ("    Uuid", uuid),
            ("  Period", "<nil>" if self.period is None else str(self.period)),
            ("Metadata", "<nil>" if self.metadata is None else repr(self.metadata)),
        ]
        width = max(len(name) for name, _ in _SUBMIT_TASK_ACCOUNTS)
        accounts = [
            (name.rjust(width), str(meta) if meta is not None else "<nil>")
            for name, meta in (
                (name, self._meta(index))
                for index, (name, _) in enumerate(_SUBMIT_TASK_ACCOUNTS)
            )
        ]
        lines = [
            f"Program: {PROGRAM_NAME} {program_id}",
            "└─ Instruction: SubmitTask",
            f"   ├─ Params[len={len(params)}]",
        ]
        lines += _branch(params, "   │  ")
        lines.append(f"   └─ Accounts[len={len(accounts)}]")
        lines += _branch(accounts, "      ")
        return "\n".join(lines)


def _branch(entries: list[tuple[str, str]], prefix: str) -> list[str]:
    last = len(entries) - 1
    return [
        f"{prefix}{'└─' if index == last else '├─'} {label}: {value}"
        for index, (label, value) in enumerate(entries)
    ]


_DECODERS = {SUBMIT_TASK: SubmitTask}


@dataclass
class Instruction:
    """An instruction tagged by its 8-byte Anchor type id."""

    type_id: bytes
    impl: SubmitTask

    @property
    def name(self) -> str:
        return instruction_id_to_name(self.type_id)

    def accounts(self) -> list[Optional[AccountMeta]]:
        return list(self.impl.account_metas)

    def encode(self, encoder: Encoder) -> None:
        encoder.write_bytes(bytes(self.type_id))
        self.impl.encode(encoder)

    @classmethod
    def decode(cls, decoder: Decoder) -> "Instruction":
        type_id = decoder.read_bytes(TYPE_ID_LENGTH)
        impl_cls = _DECODERS.get(type_id)
        if impl_cls is None:
            name = instruction_id_to_name(type_id)
            if name:
                raise InstructionError(f"no layout known for instruction {name}")
            raise InstructionError(f"no known type for type {type_id.hex()}")
        return cls(type_id=type_id, impl=impl_cls.decode(decoder))

    def data(self) -> bytes:
        """Return the encoded instruction data: type id then parameters."""
        encoder = Encoder()
        try:
            self.encode(encoder)
        except BorshError as exc:
            raise InstructionError(f"unable to encode instruction: {exc}") from exc
        return encoder.getvalue()


def decode_instruction(
    accounts: Sequence[Optional[AccountMeta]], data: bytes
) -> Instruction:
    """Decode instruction data and attach the given accounts."""
    try:
        instruction = Instruction.decode(Decoder(data))
    except BorshError as exc:
        raise InstructionError(f"unable to decode instruction: {exc}") from exc
    instruction.impl.set_accounts(accounts)
    return instruction


def new_submit_task_instruction(
    uuid: bytes,
    period: int,
    metadata: str,
    machine: PublicKey,
    task: PublicKey,
    reward: PublicKey,
    reward_machine: PublicKey,
    owner: PublicKey,
    system_program: PublicKey,
) -> SubmitTask:
    """Create a SubmitTask with every parameter and account set."""
    return SubmitTask(
        uuid=bytes(uuid),
        period=period,
        metadata=metadata,
        account_metas=[
            AccountMeta(machine, is_writable=True),
            AccountMeta(task, is_writable=True),
            AccountMeta(reward, is_writable=True),
            AccountMeta(reward_machine, is_writable=True),
            AccountMeta(owner, is_writable=True, is_signer=True),
            AccountMeta(system_program),
        ],
    )