"""Database tables for indexed program accounts, logs and mailbox subscriptions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_U8 = SmallInteger().with_variant(mysql.TINYINT(unsigned=True), "mysql")
_U32 = Integer().with_variant(mysql.INTEGER(unsigned=True), "mysql")
_U64 = BigInteger().with_variant(mysql.BIGINT(unsigned=True), "mysql")
_LONGTEXT = Text().with_variant(mysql.LONGTEXT(), "mysql")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _json_name(column: str) -> str:
    return "".join(part.capitalize() for part in column.split("_"))


class Base(DeclarativeBase):
    """Declarative base shared by every table."""

    def to_dict(self) -> dict[str, Any]:
        """Return the row as a dict keyed by field names in the API's style."""
        result: dict[str, Any] = {}
        for attr in sa_inspect(type(self)).column_attrs:
            value = getattr(self, attr.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[_json_name(attr.columns[0].name)] = value
        return result


class Log(Base):
    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_uuid: Mapped[str] = mapped_column(String(34), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(_LONGTEXT)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)


class Machine(Base):
    __tablename__ = "machines"
    __table_args__ = (Index("idx_machines_owner_uuid", "owner", "uuid"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(44), nullable=False)
    uuid: Mapped[str] = mapped_column(String(34), nullable=False)
    metadata_: Mapped[str] = mapped_column("metadata", String(2048), nullable=False)
    status: Mapped[int] = mapped_column(_U8, nullable=False)
    price: Mapped[int] = mapped_column(_U64, nullable=False)
    max_duration: Mapped[int] = mapped_column(_U32, nullable=False)
    disk: Mapped[int] = mapped_column(_U32, nullable=False)
    completed_count: Mapped[int] = mapped_column(_U32, nullable=False)
    failed_count: Mapped[int] = mapped_column(_U32, nullable=False)
    score: Mapped[int] = mapped_column(_U32, nullable=False)
    claimed_periodic_rewards: Mapped[int] = mapped_column(_U64, nullable=False)
    claimed_task_rewards: Mapped[int] = mapped_column(_U64, nullable=False)
    gpu: Mapped[Optional[str]] = mapped_column(String(256), default="")
    gpu_count: Mapped[Optional[int]] = mapped_column(_U32, default=0)
    region: Mapped[Optional[str]] = mapped_column(String(32), default="")
    tflops: Mapped[Optional[float]] = mapped_column(Float, default=0.0)


class Mailbox(Base):
    __tablename__ = "mailboxes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    mail_box: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uuid: Mapped[str] = mapped_column(String(34), nullable=False, unique=True, index=True)
    buyer: Mapped[str] = mapped_column(String(44), nullable=False)
    seller: Mapped[str] = mapped_column(String(44), nullable=False)
    machine_uuid: Mapped[str] = mapped_column(String(34), nullable=False)
    price: Mapped[int] = mapped_column(_U64, nullable=False)
    duration: Mapped[int] = mapped_column(_U32, nullable=False)
    total: Mapped[int] = mapped_column(_U64, nullable=False)
    metadata_: Mapped[str] = mapped_column("metadata", String(2048), nullable=False)
    status: Mapped[int] = mapped_column(_U8, nullable=False)
    order_time: Mapped[datetime] = mapped_column(DateTime, default=_now)
    refund_time: Mapped[datetime] = mapped_column(DateTime, default=_now)


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, default=_now)
    period: Mapped[int] = mapped_column(_U32, nullable=False, unique=True)
    pool: Mapped[int] = mapped_column(_U64, nullable=False)
    machine_num: Mapped[int] = mapped_column(_U32, nullable=False)
    unit_periodic_reward: Mapped[int] = mapped_column(_U64, nullable=False)
    task_num: Mapped[int] = mapped_column(_U32, nullable=False)
    unit_task_reward: Mapped[int] = mapped_column(_U64, nullable=False)


class RewardMachine(Base):
    __tablename__ = "reward_machines"
    __table_args__ = (
        Index("idx_machines_period_owner_machineid", "period", "owner", "machine_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    period: Mapped[int] = mapped_column(_U32, nullable=False)
    owner: Mapped[str] = mapped_column(String(44), nullable=False)
    machine_id: Mapped[str] = mapped_column(String(34), nullable=False)
    task_num: Mapped[int] = mapped_column(_U32, nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False)


def auto_migrate(engine: Engine) -> None:
    """Drop the tables rebuilt from chain data, then create every missing table."""
    Base.metadata.drop_all(
        engine,
        tables=[
            Machine.__table__,
            Order.__table__,
            Reward.__table__,
            RewardMachine.__table__,
        ],
    )
    Base.metadata.create_all(engine)