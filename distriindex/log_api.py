"""Order log endpoints: append a log line and list an order's logs."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Log
from .pagination import _int_field, _required_text, paginate
from .resp import fail, success

log = logging.getLogger(__name__)


def log_add(session: Session, body: Any) -> dict[str, Any]:
    """Store a log line for an order."""
    order_uuid = _required_text(body, "OrderUuid")
    content = _required_text(body, "Content")
    if order_uuid is None or content is None:
        return fail("Parameter missing")

    try:
        session.add(Log(order_uuid=order_uuid, content=content))
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")
    return success("")


def log_list(session: Session, body: Any) -> dict[str, Any]:
    """List an order's logs, newest first, one page at a time."""
    order_uuid = _required_text(body, "OrderUuid")
    if order_uuid is None:
        return fail("Parameter missing")
    try:
        _int_field(body, "Page")
        _int_field(body, "PageSize")
    except ValueError:
        return fail("Parameter missing")

    query = select(Log).where(Log.order_uuid == order_uuid)
    try:
        total = session.scalar(select(func.count()).select_from(query.subquery()))
        rows = session.scalars(paginate(query.order_by(Log.created_at.desc()), body)).all()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")
    return success({"List": [row.to_dict() for row in rows], "Total": total})