import pytest

from distriindex.accounts import (
    Machine,
    Order,
    Reward,
    RewardMachine,
    Task,
    WrongDiscriminatorError,
)
from distriindex.borsh import BorshError, Decoder, Encoder, PublicKey, decode, encode
from distriindex.types import MachineStatus, OrderStatus

OWNER = PublicKey(bytes(range(32)))
OTHER = PublicKey(bytes(range(100, 132)))
UUID = bytes(range(16))
MACHINE_ID = bytes(range(16, 32))


def _machine():
    return Machine(
        owner=OWNER,
        uuid=UUID,
        metadata='{"GPUInfo":{"Model":"RTX 4090","Number":2}}',
        status=MachineStatus.FOR_RENT,
        price=10**9,
        max_duration=48,
        disk=512,
        completed_count=3,
        failed_count=1,
        score=99,
        claimed_periodic_rewards=7,
        claimed_task_rewards=8,
    )


def _order():
    return Order(
        order_id=UUID,
        buyer=OWNER,
        seller=OTHER,
        machine_id=MACHINE_ID,
        price=500,
        duration=3,
        total=1500,
        metadata="{}",
        status=OrderStatus.REFUNDED,
        order_time=1708992000,
        refund_time=-5,
    )


def _reward():
    return Reward(
        period=12,
        start_time=1708992000,
        pool=2**63,
        machine_num=4,
        unit_periodic_reward=25,
        task_num=9,
        unit_task_reward=3,
    )


def _reward_machine():
    return RewardMachine(
        period=12, owner=OWNER, machine_id=MACHINE_ID, task_num=6, claimed=True
    )


def _task():
    return Task(uuid=UUID, period=12, owner=OWNER, machine_id=MACHINE_ID, metadata="job")


@pytest.mark.parametrize(
    "factory", [_machine, _order, _reward, _reward_machine, _task, Machine, Order]
)
def test_round_trip(factory):
    account = factory()
    assert type(account).from_bytes(account.to_bytes()) == account
    assert decode(type(account), encode(account)) == account


@pytest.mark.parametrize(
    "cls, expected",
    [
        (Machine, [25, 102, 22, 13, 58, 243, 138, 79]),
        (Order, [134, 173, 223, 185, 77, 86, 28, 51]),
        (Reward, [174, 129, 42, 212, 190, 18, 45, 34]),
        (RewardMachine, [106, 87, 186, 254, 4, 139, 144, 74]),
        (Task, [79, 34, 229, 55, 88, 90, 55, 84]),
    ],
)
def test_discriminator_prefix(cls, expected):
    assert cls().to_bytes()[:8] == bytes(expected)


def test_wrong_discriminator():
    data = Order().to_bytes()
    with pytest.raises(WrongDiscriminatorError, match=r"wanted \[25 102 22 13 58 243 138 79\]"):
        Machine.from_bytes(data)


def test_wrong_discriminator_is_borsh_error():
    with pytest.raises(BorshError):
        Task.from_bytes(Reward().to_bytes())


def test_truncated_data():
    with pytest.raises(BorshError):
        Reward.from_bytes(_reward().to_bytes()[:-1])


def test_short_discriminator():
    with pytest.raises(BorshError):
        Machine.from_bytes(b"\x19\x66")


def test_unknown_machine_status():
    enc = Encoder()
    enc.write_bytes(Machine.DISCRIMINATOR)
    enc.write_pubkey(OWNER)
    enc.write_bytes(UUID)
    enc.write_string("")
    enc.write_u8(9)
    with pytest.raises(BorshError):
        Machine.from_bytes(enc.getvalue())


def test_uuid_must_be_sixteen_bytes():
    with pytest.raises(BorshError):
        Machine(uuid=bytes(15)).to_bytes()


def test_decode_consumes_exactly_the_account():
    dec = Decoder(_machine().to_bytes())
    assert Machine.decode(dec) == _machine()
    assert dec.has_remaining() is False


def test_trailing_bytes_are_ignored():
    assert Machine.from_bytes(_machine().to_bytes() + b"\x00\x00") == _machine()


def test_reward_field_order():
    reward = _reward()
    enc = Encoder()
    enc.write_bytes(Reward.DISCRIMINATOR)
    enc.write_u32(reward.period)
    enc.write_i64(reward.start_time)
    enc.write_u64(reward.pool)
    enc.write_u32(reward.machine_num)
    enc.write_u64(reward.unit_periodic_reward)
    enc.write_u32(reward.task_num)
    enc.write_u64(reward.unit_task_reward)
    assert reward.to_bytes() == enc.getvalue()


def test_decoded_status_is_enum():
    decoded = Machine.from_bytes(_machine().to_bytes())
    assert decoded.status is MachineStatus.FOR_RENT
    assert str(decoded.status) == "ForRent"