from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from distriindex.models import Base, Machine, Reward, RewardMachine
from distriindex.pagination import GENESIS_TIME, PERIOD_DURATION
from distriindex.resp import FAIL, SUCCESS
from distriindex.reward_api import (
    reward_claimable_list,
    reward_machine_list,
    reward_period_list,
    reward_total,
)

CURRENT = 10
NOW = GENESIS_TIME + CURRENT * PERIOD_DURATION + 5
OWNER = "RewardOwner111"
OTHER = "RewardOwner222"
MACHINE_ID = "0x" + "11" * 16
START = datetime(2024, 3, 1)
HEADERS = {"Account": OWNER}


def _reward(period, unit):
    return Reward(period=period, start_time=START, pool=1000, machine_num=2,
                  unit_periodic_reward=unit, task_num=0, unit_task_reward=0)


def _reward_machine(period, claimed, owner=OWNER):
    return RewardMachine(period=period, owner=owner, machine_id=MACHINE_ID,
                         task_num=1, claimed=claimed)


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        s.add_all([
            _reward(3, 300), _reward(4, 400), _reward(CURRENT, 999),
            _reward_machine(3, True), _reward_machine(4, False),
            _reward_machine(CURRENT, False), _reward_machine(4, False, owner=OTHER),
            Machine(owner=OWNER, uuid=MACHINE_ID, metadata_="{}", status=1, price=5,
                    max_duration=1, disk=1, completed_count=0, failed_count=0, score=0,
                    claimed_periodic_rewards=0, claimed_task_rewards=0, gpu="A100",
                    gpu_count=1, region="Asia", tflops=1.0),
        ])
        s.commit()
        yield s
    engine.dispose()


def test_total_sums_past_periods(session):
    reply = reward_total(session, HEADERS, {}, NOW)
    assert reply["Code"] == SUCCESS
    assert reply["Data"]["ClaimedPeriodicRewards"] == 300
    assert reply["Data"]["ClaimablePeriodicRewards"] == 400
    assert reply["Data"]["ClaimedTaskRewards"] == reply["Data"]["ClaimableTaskRewards"] == 0


def test_total_for_one_period(session):
    reply = reward_total(session, HEADERS, {"Period": 4}, NOW)
    assert reply["Data"]["ClaimedPeriodicRewards"] == 0
    assert reply["Data"]["ClaimablePeriodicRewards"] == 400


@pytest.mark.parametrize("body", [None, {"Period": "4"}, {"Period": -1}])
def test_total_rejects_malformed_body(session, body):
    assert reward_total(session, HEADERS, body, NOW)["Code"] == FAIL


def test_claimable_list_skips_claimed_and_current(session):
    reply = reward_claimable_list(session, HEADERS, {}, NOW)
    assert reply["Data"]["List"] == [{"Period": 4, "MachineId": MACHINE_ID}]
    assert reply["Data"]["Total"] == len(reply["Data"]["List"])


def test_claimable_list_for_claimed_period_is_empty(session):
    reply = reward_claimable_list(session, HEADERS, {"Period": 3}, NOW)
    assert reply["Data"]["List"] == []


def test_claimable_list_rejects_malformed_body(session):
    assert reward_claimable_list(session, HEADERS, {"Period": "x"}, NOW)["Code"] == FAIL


def test_period_list_is_newest_first(session):
    reply = reward_period_list(session, HEADERS, None, NOW)
    items = reply["Data"]["List"]
    assert [item["Period"] for item in items] == [4, 3]
    assert {item["Period"]: item["PeriodicRewards"] for item in items} == {4: 400, 3: 300}
    assert reply["Data"]["Total"] == len(items)
    assert {item["StartTime"] for item in items} == {START.isoformat()}


def test_period_list_of_other_owner(session):
    reply = reward_period_list(session, {"Account": OTHER}, {}, NOW)
    assert [item["Period"] for item in reply["Data"]["List"]] == [4]


def test_machine_list_requires_period(session):
    assert reward_machine_list(session, HEADERS, {}, NOW)["Code"] == FAIL


def test_machine_list_joins_machine_details(session):
    reply = reward_machine_list(session, HEADERS, {"Period": 3}, NOW)
    [item] = reply["Data"]["List"]
    assert item["Period"] == 3
    assert item["Uuid"] == MACHINE_ID
    assert item["Owner"] == OWNER
    assert item["Pool"] == 1000
    assert item["PeriodicRewards"] == 300
    assert item["StartTime"] == START.isoformat()
    assert reply["Data"]["Total"] == len(reply["Data"]["List"])


def test_machine_list_excludes_current_period(session):
    reply = reward_machine_list(session, HEADERS, {"Period": CURRENT}, NOW)
    assert reply["Data"]["List"] == []
    assert reply["Data"]["Total"] == 0