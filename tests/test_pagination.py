from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from distriindex.models import Base, Log
from distriindex.pagination import (
    GENESIS_TIME,
    PERIOD_DURATION,
    current_period,
    page_bounds,
    paginate,
)


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        s.add_all(Log(order_uuid="0xabc", content=f"line {n}") for n in range(150))
        s.commit()
        yield s


def test_defaults_for_zero():
    assert page_bounds(0, 0) == (0, 10)


def test_page_size_capped():
    assert page_bounds(1, 1000) == (0, 100)


def test_negative_values_use_defaults():
    assert page_bounds(-3, -5) == page_bounds(1, 10)


def test_offset_grows_with_page():
    first, size = page_bounds(1, 25)
    second, _ = page_bounds(2, 25)
    assert first == 0
    assert second - first == size


def test_paginate_default_size(session):
    rows = session.scalars(paginate(select(Log).order_by(Log.id), {})).all()
    assert len(rows) == 10


def test_paginate_cap(session):
    rows = session.scalars(paginate(select(Log).order_by(Log.id), {"PageSize": 500})).all()
    assert len(rows) == 100


def test_paginate_pages_cover_all_rows(session):
    all_ids = session.scalars(select(Log.id).order_by(Log.id)).all()
    seen = []
    for page in (1, 2, 3):
        seen += session.scalars(
            paginate(select(Log.id).order_by(Log.id), {"page": page, "pagesize": 50})
        ).all()
    assert seen == list(all_ids)


def test_paginate_ignores_bad_types(session):
    query = select(Log.id).order_by(Log.id)
    bad = session.scalars(paginate(query, {"Page": "two", "PageSize": 2.5})).all()
    default = session.scalars(paginate(query, None)).all()
    assert bad == default


def test_period_at_genesis():
    assert current_period(GENESIS_TIME) == 0


@pytest.mark.parametrize("k", [1, 2, 30, 365])
def test_period_counts_days(k):
    assert current_period(GENESIS_TIME + k * PERIOD_DURATION) == k
    assert current_period(GENESIS_TIME + (k + 1) * PERIOD_DURATION - 1) == k


def test_period_from_datetime():
    assert current_period(datetime(2024, 2, 27, tzinfo=timezone.utc)) == 0


def test_period_just_before_genesis_truncates():
    assert current_period(GENESIS_TIME - 1) == 0


def test_period_wraps_before_genesis():
    assert current_period(GENESIS_TIME - PERIOD_DURATION) == 2**32 - 1