"""Machine endpoints: market filters, the market listing and an owner's machines."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Machine
from .pagination import _field, _int_field, paginate
from .resp import fail, success
from .types import MachineStatus

log = logging.getLogger(__name__)

_ORDERINGS = {
    "price": Machine.price.asc(),
    "price DESC": Machine.price.desc(),
    "score DESC": Machine.score.desc(),
    "tflops DESC": Machine.tflops.desc(),
}
RELIABILITY = "reliability"


def _account(headers: Optional[Mapping[str, str]]) -> str:
    """Return the Account request header, matched case-insensitively, or ''."""
    if not headers:
        return ""
    value = _field(dict(headers.items()), "Account", "")
    return value if isinstance(value, str) else ""


def _body(body: Any) -> dict[str, Any]:
    """Return the request body as a mapping; raise ValueError when there is none."""
    if body is None:
        raise ValueError("EOF")
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


def _text_field(body: Any, name: str) -> str:
    value = _field(body, name, "")
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {value!r}")
    return value


def _uint_field(body: Any, name: str, bits: int) -> Optional[int]:
    """Return an optional unsigned integer field; raise ValueError when malformed."""
    value = _field(body, name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 1 << bits:
        raise ValueError(f"{name} must be an unsigned {bits}-bit integer, got {value!r}")
    return value


def _paging_fields(body: Any) -> None:
    _int_field(body, "Page")
    _int_field(body, "PageSize")


def _count(session: Session, query: Select) -> int:
    return session.scalar(select(func.count()).select_from(query.subquery())) or 0


def _list_reply(session: Session, query: Select, counted: Select, body: Any) -> dict[str, Any]:
    try:
        total = _count(session, counted)
        rows = session.scalars(paginate(query, body)).all()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")
    return success({"List": [row.to_dict() for row in rows], "Total": total})


def machine_filter(session: Session) -> dict[str, Any]:
    """List the distinct GPU models, GPU counts and regions on offer."""
    columns = (("Gpu", Machine.gpu), ("GpuCount", Machine.gpu_count), ("Region", Machine.region))
    try:
        data = {
            key: list(session.scalars(select(column).group_by(column)).all())
            for key, column in columns
        }
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")
    return success(data)


def machine_market(session: Session, body: Any) -> dict[str, Any]:
    """List machines on the market, filtered, ordered and paged by the request."""
    try:
        body = _body(body)
        gpu = _text_field(body, "Gpu")
        gpu_count = _uint_field(body, "GpuCount", 32) or 0
        region = _text_field(body, "Region")
        status = _uint_field(body, "Status", 8)
        order_by = _text_field(body, "OrderBy")
        _paging_fields(body)
    except ValueError:
        return fail("Parameter missing")

    query = select(Machine)
    if gpu:
        query = query.where(Machine.gpu == gpu)
    if gpu_count:
        query = query.where(Machine.gpu_count == gpu_count)
    if region:
        query = query.where(Machine.region == region)
    if status is None:
        query = query.where(Machine.status != int(MachineStatus.IDLE))
    else:
        query = query.where(Machine.status == status)

    ordered = query
    if order_by in _ORDERINGS:
        ordered = query.order_by(_ORDERINGS[order_by])
    elif order_by == RELIABILITY:
        ratio = (Machine.completed_count + 0.0) / (
            Machine.completed_count + Machine.failed_count
        )
        ordered = query.order_by(ratio.desc())
    return _list_reply(session, ordered, query, body)


def machine_mine(
    session: Session, headers: Optional[Mapping[str, str]], body: Any
) -> dict[str, Any]:
    """List the machines owned by the account named in the request headers."""
    account = _account(headers)
    query = select(Machine)
    if account:
        query = query.where(Machine.owner == account)
    return _list_reply(session, query, query, body)