"""Keeps the database in step with the program's on-chain accounts."""

from __future__ import annotations

import hashlib
import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Optional, Sequence, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .accounts import Account
from .accounts import Machine as MachineAccount
from .accounts import Order as OrderAccount
from .accounts import Reward as RewardAccount
from .accounts import RewardMachine as RewardMachineAccount
from .borsh import BorshError, PublicKey
from .details import (
    build_machine_model,
    build_order_model,
    build_reward_machine_model,
    build_reward_model,
    format_uuid,
)

log = logging.getLogger(__name__)

_P = 2**255 - 19
_D = (-121665 * pow(121666, -1, _P)) % _P
_PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LENGTH = 32

A = TypeVar("A", bound=Account)


def is_on_curve(point: bytes) -> bool:
    """Tell whether 32 bytes decompress to a point on the ed25519 curve."""
    point = bytes(point)
    if len(point) != 32:
        raise ValueError(f"a curve point is 32 bytes, got {len(point)}")
    y = (int.from_bytes(point, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, -1, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def create_program_address(seeds: Sequence[bytes], program_id: PublicKey) -> PublicKey:
    """Derive a program address from seeds; raise ValueError if it lies on the curve."""
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"max seed length exceeded: more than {MAX_SEEDS} seeds")
    digest = hashlib.sha256()
    for seed in seeds:
        seed = bytes(seed)
        if len(seed) > MAX_SEED_LENGTH:
            raise ValueError(f"max seed length exceeded: seed of {len(seed)} bytes")
        digest.update(seed)
    digest.update(program_id.raw)
    digest.update(_PDA_MARKER)
    address = digest.digest()
    if is_on_curve(address):
        raise ValueError("invalid seeds; address must fall off the curve")
    return PublicKey(address)


def find_program_address(
    seeds: Sequence[bytes], program_id: PublicKey
) -> tuple[PublicKey, int]:
    """Find the first valid program address, trying bump seeds from 255 down to 1."""
    for bump in range(255, 0, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except ValueError:
            continue
    raise ValueError("unable to find a valid program address")


def _period_bytes(period: int) -> bytes:
    return int(period).to_bytes(4, "little")


class Indexer:
    """Mirrors program accounts into the database.

    ``fetch_account`` takes an account address and returns its raw data, or
    None when the account does not exist.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        program_id: PublicKey,
        fetch_account: Callable[[PublicKey], Optional[bytes]],
    ) -> None:
        self._session_factory = session_factory
        self._program_id = program_id
        self._fetch_account = fetch_account

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            log.error("Database error: %s", exc)
        finally:
            session.close()

    def _load(self, cls: type[A], seeds: Sequence[bytes]) -> Optional[A]:
        try:
            address, _ = find_program_address(seeds, self._program_id)
        except ValueError:
            return None
        try:
            data = self._fetch_account(address)
        except Exception as exc:  # the account source may fail in any way
            log.info("cannot fetch account %s: %s", address, exc)
            return None
        if data is None:
            return None
        try:
            return cls.from_bytes(data)  # type: ignore[return-value]
        except BorshError as exc:
            log.info("cannot decode account %s: %s", address, exc)
            return None

    @staticmethod
    def _decode_all(cls: type[A], accounts: Iterable[bytes]) -> Iterator[A]:
        for data in accounts:
            try:
                yield cls.from_bytes(data)  # type: ignore[misc]
            except BorshError:
                continue

    def _store_all(self, rows: list[models.Base]) -> None:
        if rows:
            with self._transaction() as session:
                session.add_all(rows)

    def fetch_all_machines(self, accounts: Iterable[bytes]) -> None:
        """Store every machine among the raw account datas, skipping others."""
        self._store_all(
            [build_machine_model(m) for m in self._decode_all(MachineAccount, accounts)]
        )

    def add_machine(self, owner: PublicKey, uuid: bytes) -> None:
        account = self._load(MachineAccount, [b"machine", owner.raw, bytes(uuid)])
        if account is None:
            return
        with self._transaction() as session:
            session.add(build_machine_model(account))

    def remove_machine(self, owner: PublicKey, uuid: bytes) -> None:
        with self._transaction() as session:
            session.execute(
                delete(models.Machine)
                .where(models.Machine.owner == str(owner))
                .where(models.Machine.uuid == format_uuid(uuid))
            )

    def update_machine(self, owner: PublicKey, uuid: bytes) -> None:
        account = self._load(MachineAccount, [b"machine", owner.raw, bytes(uuid)])
        if account is None:
            return
        with self._transaction() as session:
            existing = session.scalars(
                select(models.Machine)
                .where(models.Machine.owner == str(owner))
                .where(models.Machine.uuid == format_uuid(uuid))
                .limit(1)
            ).first()
            if existing is None:
                log.error("Database error: record not found")
                return
            row = build_machine_model(account)
            row.id = existing.id
            session.merge(row)

    def fetch_all_orders(self, accounts: Iterable[bytes]) -> None:
        """Store every order among the raw account datas, skipping others."""
        self._store_all(
            [build_order_model(o) for o in self._decode_all(OrderAccount, accounts)]
        )

    def add_order(self, order_id: bytes, buyer: PublicKey) -> None:
        account = self._load(OrderAccount, [b"order", buyer.raw, bytes(order_id)])
        if account is None:
            return
        with self._transaction() as session:
            session.add(build_order_model(account))

    def remove_order(self, order_id: bytes) -> None:
        with self._transaction() as session:
            session.execute(
                delete(models.Order).where(models.Order.uuid == format_uuid(order_id))
            )

    def update_order(self, order_id: bytes, buyer: PublicKey) -> None:
        account = self._load(OrderAccount, [b"order", buyer.raw, bytes(order_id)])
        if account is None:
            return
        with self._transaction() as session:
            existing = session.scalars(
                select(models.Order)
                .where(models.Order.uuid == format_uuid(order_id))
                .limit(1)
            ).first()
            if existing is None:
                log.error("Database error: record not found")
                return
            row = build_order_model(account)
            row.id = existing.id
            session.merge(row)

    def fetch_all_rewards(self, accounts: Iterable[bytes]) -> None:
        """Store every reward among the raw account datas, skipping others."""
        self._store_all(
            [build_reward_model(r) for r in self._decode_all(RewardAccount, accounts)]
        )

    def save_reward(self, period: int) -> None:
        """Create or update the reward row of a period from its account."""
        account = self._load(RewardAccount, [b"reward", _period_bytes(period)])
        if account is None:
            return
        with self._transaction() as session:
            row = build_reward_model(account)
            existing = session.scalars(
                select(models.Reward).where(models.Reward.period == period).limit(1)
            ).first()
            if existing is not None:
                row.id = existing.id
            session.merge(row)

    def fetch_all_reward_machines(self, accounts: Iterable[bytes]) -> None:
        """Store every reward-machine among the raw account datas, skipping others."""
        self._store_all(
            [
                build_reward_machine_model(r)
                for r in self._decode_all(RewardMachineAccount, accounts)
            ]
        )

    def save_reward_machine(self, period: int, owner: PublicKey, machine_id: bytes) -> None:
        """Create or update a machine's reward row for a period from its account."""
        account = self._load(
            RewardMachineAccount,
            [b"reward-machine", _period_bytes(period), owner.raw, bytes(machine_id)],
        )
        if account is None:
            return
        with self._transaction() as session:
            row = build_reward_machine_model(account)
            existing = session.scalars(
                select(models.RewardMachine)
                .where(models.RewardMachine.period == period)
                .where(models.RewardMachine.owner == str(owner))
                .where(models.RewardMachine.machine_id == format_uuid(machine_id))
                .limit(1)
            ).first()
            if existing is not None:
                row.id = existing.id
            session.merge(row)