"""Order endpoints: an account's orders and all orders."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .machine_api import _account, _body, _list_reply, _paging_fields, _text_field, _uint_field
from .models import Order
from .resp import fail


def _order_list(session: Session, query: Any, body: Any) -> dict[str, Any]:
    return _list_reply(session, query.order_by(Order.order_time.desc()), query, body)


def order_mine(
    session: Session, headers: Optional[Mapping[str, str]], body: Any
) -> dict[str, Any]:
    """List the account's orders, as buyer, seller or either, newest first."""
    account = _account(headers)
    try:
        body = _body(body)
        direction = _text_field(body, "Direction")
        status = _uint_field(body, "Status", 8)
        _paging_fields(body)
    except ValueError:
        return fail("Parameter missing")

    query = select(Order)
    if status is not None:
        query = query.where(Order.status == status)
    if direction == "buy":
        query = query.where(Order.buyer == account)
    elif direction == "sell":
        query = query.where(Order.seller == account)
    else:
        query = query.where(or_(Order.buyer == account, Order.seller == account))
    return _order_list(session, query, body)


def order_all(session: Session, body: Any) -> dict[str, Any]:
    """List every order, optionally of one status, newest first."""
    try:
        body = _body(body)
        status = _uint_field(body, "Status", 8)
        _paging_fields(body)
    except ValueError:
        return fail("Parameter missing")

    query = select(Order)
    if status is not None:
        query = query.where(Order.status == status)
    return _order_list(session, query, body)