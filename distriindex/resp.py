"""The JSON envelope every API reply is wrapped in."""

from __future__ import annotations

from typing import Any

SUCCESS = 1
FAIL = 0
EXIST = -1


def success(data: Any) -> dict[str, Any]:
    return {"Code": SUCCESS, "Msg": "success", "Data": data}


def fail(msg: str) -> dict[str, Any]:
    return {"Code": FAIL, "Msg": msg, "Data": ""}


def exist(data: Any) -> dict[str, Any]:
    return {"Code": EXIST, "Msg": "exist", "Data": data}