import random

import pytest

from distriindex.borsh import Decoder, Encoder, PublicKey
from distriindex.instructions import (
    CLAIM,
    SUBMIT_TASK,
    AccountMeta,
    Instruction,
    InstructionError,
    SubmitTask,
    decode_instruction,
    instruction_id_to_name,
    new_submit_task_instruction,
)


def _key(n):
    return PublicKey(bytes([n]) * 32)


def _full_task():
    return new_submit_task_instruction(
        bytes(range(16)),
        7,
        "meta",
        _key(1),
        _key(2),
        _key(3),
        _key(4),
        _key(5),
        _key(6),
    )


@pytest.mark.parametrize("seed", range(5))
def test_encode_decode_submit_task(seed):
    rng = random.Random(seed)
    params = SubmitTask(
        uuid=bytes(rng.randrange(256) for _ in range(16)),
        period=rng.randrange(2**32),
        metadata="".join(rng.choice("abcxyz é中{}\":,") for _ in range(rng.randrange(40))),
    )
    encoder = Encoder()
    params.encode(encoder)
    got = SubmitTask.decode(Decoder(encoder.getvalue()))
    assert got == params


def test_encoded_layout():
    task = SubmitTask(uuid=bytes(16), period=1, metadata="ab")
    encoder = Encoder()
    task.encode(encoder)
    assert encoder.getvalue() == bytes(16) + b"\x01\x00\x00\x00" + b"\x02\x00\x00\x00ab"


def test_instruction_data_starts_with_type_id():
    data = _full_task().build().data()
    assert data[:8] == SUBMIT_TASK
    assert data[8:24] == bytes(range(16))


def test_decode_instruction_round_trip_with_accounts():
    task = _full_task()
    data = task.build().data()
    metas = task.account_metas
    decoded = decode_instruction(metas, data)
    assert decoded.type_id == SUBMIT_TASK
    assert decoded.name == "SubmitTask"
    assert decoded.impl == task
    assert decoded.accounts() == metas


def test_new_instruction_account_flags():
    metas = _full_task().account_metas
    assert metas[0] == AccountMeta(_key(1), is_writable=True)
    assert metas[4] == AccountMeta(_key(5), is_writable=True, is_signer=True)
    assert metas[5] == AccountMeta(_key(6))


def test_validate_missing_parameter():
    with pytest.raises(InstructionError, match="Uuid parameter is not set"):
        SubmitTask(period=1, metadata="").validate()
    with pytest.raises(InstructionError, match="Period parameter is not set"):
        SubmitTask(uuid=bytes(16), metadata="").validate()


def test_validate_missing_account():
    task = _full_task()
    task.account_metas[3] = None
    with pytest.raises(InstructionError, match="accounts.RewardMachine is not set"):
        task.validate_and_build()


def test_validate_and_build_complete():
    instruction = _full_task().validate_and_build()
    assert instruction.type_id == SUBMIT_TASK


def test_instruction_id_to_name():
    assert instruction_id_to_name(SUBMIT_TASK) == "SubmitTask"
    assert instruction_id_to_name(CLAIM) == "Claim"
    assert instruction_id_to_name(bytes(8)) == ""


def test_decode_unknown_type_id():
    with pytest.raises(InstructionError, match="unable to decode instruction"):
        decode_instruction([], bytes(8) + bytes(30))


def test_decode_truncated_data():
    data = _full_task().build().data()
    with pytest.raises(InstructionError):
        decode_instruction([], data[:20])


def test_data_rejects_out_of_range_period():
    task = SubmitTask(uuid=bytes(16), period=2**32, metadata="")
    with pytest.raises(InstructionError, match="unable to encode instruction"):
        task.build().data()


def test_instruction_decode_classmethod():
    data = _full_task().build().data()
    instruction = Instruction.decode(Decoder(data))
    assert instruction.impl.period == 7
    assert instruction.impl.metadata == "meta"


def test_describe_mentions_program_and_accounts():
    program_id = _key(9)
    text = _full_task().describe(program_id)
    assert text.splitlines()[0] == f"Program: DistriAi {program_id}"
    assert "Instruction: SubmitTask" in text
    assert "Accounts[len=6]" in text
    assert f"owner: {_key(5)} [WRITE, SIGNER]" in text
    assert "Period: 7" in text