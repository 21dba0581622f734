"""Conversion of program accounts into database rows."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from . import accounts, models

log = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1)
_U32_LIMIT = 1 << 32


def format_uuid(uuid: bytes) -> str:
    """Render a 16-byte identifier as '0x' followed by lower-case hex."""
    return "0x" + bytes(uuid).hex()


def _unix_time(seconds: int) -> datetime:
    return _EPOCH + timedelta(seconds=seconds)


@dataclass(frozen=True)
class MachineMetadata:
    """Hardware details taken from a machine's JSON metadata."""

    gpu_model: str = ""
    gpu_count: int = 0
    region: str = ""
    tflops: float = 0.0


class _FieldTypeError(ValueError):
    pass


def _as_string(value: Any) -> str:
    if not isinstance(value, str):
        raise _FieldTypeError(f"cannot use {value!r} as a string")
    return value


def _as_uint32(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _U32_LIMIT:
        raise _FieldTypeError(f"cannot use {value!r} as a uint32")
    return value


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _FieldTypeError(f"cannot use {value!r} as a float")
    return float(value)


_SECTIONS = {
    "gpuinfo": {"model": ("gpu_model", _as_string), "number": ("gpu_count", _as_uint32)},
    "locationinfo": {"country": ("region", _as_string)},
    "infoflop": {"flops": ("tflops", _as_float)},
}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def parse_machine_metadata(metadata: str) -> MachineMetadata:
    """Read GPU, location and FLOPS details from metadata JSON.

    Keys match case-insensitively. Invalid JSON yields empty details; a value
    of the wrong type leaves only that field empty.
    """
    try:
        document = json.loads(metadata, parse_constant=_reject_constant)
    except (ValueError, TypeError) as exc:
        log.warning("Unmarshal 'Metadata' error: %s", exc)
        return MachineMetadata()
    if document is None:
        return MachineMetadata()
    if not isinstance(document, dict):
        log.warning("Unmarshal 'Metadata' error: expected an object")
        return MachineMetadata()

    values: dict[str, Any] = {}
    for section_key, section in document.items():
        fields = _SECTIONS.get(section_key.lower())
        if fields is None or section is None:
            continue
        if not isinstance(section, dict):
            log.warning("Unmarshal 'Metadata' error: %s is not an object", section_key)
            continue
        for field_key, value in section.items():
            target = fields.get(field_key.lower())
            if target is None or value is None:
                continue
            name, convert = target
            try:
                values[name] = convert(value)
            except _FieldTypeError as exc:
                log.warning("Unmarshal 'Metadata' error: %s", exc)
    return replace(MachineMetadata(), **values)


def build_machine_model(machine: accounts.Machine) -> models.Machine:
    """Convert a machine account into a machine row."""
    details = parse_machine_metadata(machine.metadata)
    return models.Machine(
        owner=str(machine.owner),
        uuid=format_uuid(machine.uuid),
        metadata_=machine.metadata,
        status=int(machine.status),
        price=machine.price,
        max_duration=machine.max_duration,
        disk=machine.disk,
        completed_count=machine.completed_count,
        failed_count=machine.failed_count,
        score=int(machine.score),
        claimed_periodic_rewards=machine.claimed_periodic_rewards,
        claimed_task_rewards=machine.claimed_task_rewards,
        gpu=details.gpu_model,
        gpu_count=details.gpu_count,
        region=details.region,
        tflops=details.tflops,
    )


def build_order_model(order: accounts.Order) -> models.Order:
    """Convert an order account into an order row."""
    return models.Order(
        uuid=format_uuid(order.order_id),
        buyer=str(order.buyer),
        seller=str(order.seller),
        machine_uuid=format_uuid(order.machine_id),
        price=order.price,
        duration=order.duration,
        total=order.total,
        metadata_=order.metadata,
        status=int(order.status),
        order_time=_unix_time(order.order_time),
        refund_time=_unix_time(order.refund_time),
    )


def build_reward_model(reward: accounts.Reward) -> models.Reward:
    """Convert a reward account into a reward row."""
    return models.Reward(
        period=reward.period,
        start_time=_unix_time(reward.start_time),
        pool=reward.pool,
        machine_num=reward.machine_num,
        unit_periodic_reward=reward.unit_periodic_reward,
        task_num=reward.task_num,
        unit_task_reward=reward.unit_task_reward,
    )


def build_reward_machine_model(reward_machine: accounts.RewardMachine) -> models.RewardMachine:
    """Convert a reward-machine account into a reward-machine row."""
    return models.RewardMachine(
        period=reward_machine.period,
        owner=str(reward_machine.owner),
        machine_id=format_uuid(reward_machine.machine_id),
        task_num=reward_machine.task_num,
        claimed=reward_machine.claimed,
    )