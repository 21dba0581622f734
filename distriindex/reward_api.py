"""Reward endpoints: totals, claimable rewards, per-period and per-machine lists."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .machine_api import _account, _body, _uint_field
from .models import Machine, Reward, RewardMachine
from .pagination import current_period, paginate
from .resp import fail, success

log = logging.getLogger(__name__)

Moment = Union[datetime, float, int, None]

_REWARD_JOIN = Reward.period == RewardMachine.period
_MACHINE_JOIN = and_(
    Machine.owner == RewardMachine.owner, Machine.uuid == RewardMachine.machine_id
)


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def _database_error(session: Session, exc: Exception) -> dict[str, Any]:
    session.rollback()
    log.error("Database error: %s", exc)
    return fail("Database error")


def reward_total(
    session: Session, headers: Optional[Mapping[str, str]], body: Any, now: Moment = None
) -> dict[str, Any]:
    """Sum the account's claimed and claimable periodic rewards of past periods."""
    account = _account(headers)
    try:
        period = _uint_field(_body(body), "Period", 32)
    except ValueError as exc:
        return fail(str(exc))
    cutoff = current_period(now)

    def total(claimed: bool) -> int:
        query = (
            select(func.sum(Reward.unit_periodic_reward))
            .select_from(RewardMachine)
            .outerjoin(Reward, _REWARD_JOIN)
            .where(RewardMachine.owner == account)
            .where(RewardMachine.claimed == claimed)
            .where(RewardMachine.period < cutoff)
        )
        if period is not None:
            query = query.where(RewardMachine.period == period)
        return int(session.scalar(query) or 0)

    try:
        claimed_rewards = total(True)
        claimable_rewards = total(False)
    except SQLAlchemyError as exc:
        return _database_error(session, exc)
    return success({
        "ClaimedPeriodicRewards": claimed_rewards,
        "ClaimedTaskRewards": 0,
        "ClaimablePeriodicRewards": claimable_rewards,
        "ClaimableTaskRewards": 0,
    })


def reward_claimable_list(
    session: Session, headers: Optional[Mapping[str, str]], body: Any, now: Moment = None
) -> dict[str, Any]:
    """List the account's unclaimed machine rewards of past periods."""
    account = _account(headers)
    try:
        period = _uint_field(_body(body), "Period", 32)
    except ValueError as exc:
        return fail(str(exc))

    conditions = [
        RewardMachine.owner == account,
        RewardMachine.claimed == False,  # noqa: E712
        RewardMachine.period < current_period(now),
    ]
    if period is not None:
        conditions.append(RewardMachine.period == period)
    try:
        total = session.scalar(
            select(func.count()).select_from(RewardMachine).where(*conditions)
        ) or 0
        rows = session.execute(
            paginate(
                select(RewardMachine.period, RewardMachine.machine_id).where(*conditions), body
            )
        ).all()
    except SQLAlchemyError as exc:
        return _database_error(session, exc)
    items = [{"Period": row_period, "MachineId": machine_id} for row_period, machine_id in rows]
    return success({"List": items, "Total": total})


def reward_period_list(
    session: Session, headers: Optional[Mapping[str, str]], body: Any, now: Moment = None
) -> dict[str, Any]:
    """List the account's past reward periods, newest first, with summed rewards."""
    account = _account(headers)
    grouped = (
        select(
            RewardMachine.period,
            Reward.start_time,
            Reward.pool,
            func.sum(Reward.unit_periodic_reward).label("periodic_rewards"),
        )
        .select_from(RewardMachine)
        .outerjoin(Reward, _REWARD_JOIN)
        .where(RewardMachine.owner == account)
        .where(RewardMachine.period < current_period(now))
        .group_by(RewardMachine.period)
    )
    try:
        total = session.scalar(select(func.count()).select_from(grouped.subquery())) or 0
        rows = session.execute(
            paginate(grouped.order_by(RewardMachine.period.desc()), body)
        ).all()
    except SQLAlchemyError as exc:
        return _database_error(session, exc)
    items = [
        {
            "Period": row_period,
            "StartTime": _iso(start_time),
            "Pool": int(pool or 0),
            "PeriodicRewards": int(rewards or 0),
        }
        for row_period, start_time, pool, rewards in rows
    ]
    return success({"List": items, "Total": total})


def reward_machine_list(
    session: Session, headers: Optional[Mapping[str, str]], body: Any, now: Moment = None
) -> dict[str, Any]:
    """List the account's machines rewarded in one past period, with the period's details."""
    account = _account(headers)
    try:
        period = _uint_field(_body(body), "Period", 32)
    except ValueError as exc:
        return fail(str(exc))
    if period is None:
        return fail("Period is required")

    conditions = [
        RewardMachine.owner == account,
        RewardMachine.period < current_period(now),
        RewardMachine.period == period,
    ]
    joined_count = (
        select(func.count())
        .select_from(RewardMachine)
        .outerjoin(Reward, _REWARD_JOIN)
        .outerjoin(Machine, _MACHINE_JOIN)
        .where(*conditions)
    )
    query = (
        select(
            RewardMachine.period,
            Reward.start_time,
            Reward.pool,
            Reward.machine_num,
            Reward.unit_periodic_reward,
            Machine,
        )
        .select_from(RewardMachine)
        .outerjoin(Reward, _REWARD_JOIN)
        .outerjoin(Machine, _MACHINE_JOIN)
        .where(*conditions)
    )
    try:
        total = session.scalar(joined_count) or 0
        rows = session.execute(paginate(query, body)).all()
    except SQLAlchemyError as exc:
        return _database_error(session, exc)
    items = [
        {
            "Period": row_period,
            "StartTime": _iso(start_time),
            "Pool": int(pool or 0),
            "MachineNum": int(machine_num or 0),
            "PeriodicRewards": int(rewards or 0),
            **(machine.to_dict() if machine is not None else {}),
        }
        for row_period, start_time, pool, machine_num, rewards, machine in rows
    ]
    return success({"List": items, "Total": total})