from datetime import datetime

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from distriindex.log_api import log_add, log_list
from distriindex.models import Base, Log


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def test_add_stores_log(session):
    result = log_add(session, {"OrderUuid": "0x01", "Content": "started"})
    assert result == {"Code": 1, "Msg": "success", "Data": ""}
    stored = session.scalars(select(Log)).all()
    assert [(row.order_uuid, row.content) for row in stored] == [("0x01", "started")]


def test_add_keys_are_case_insensitive(session):
    assert log_add(session, {"orderuuid": "0x02", "content": "x"})["Code"] == 1
    assert session.scalars(select(Log.order_uuid)).all() == ["0x02"]


@pytest.mark.parametrize(
    "body",
    [None, [], {"OrderUuid": "0x01"}, {"OrderUuid": "", "Content": "x"}, {"OrderUuid": 5, "Content": "x"}],
)
def test_add_missing_parameter(session, body):
    assert log_add(session, body) == {"Code": 0, "Msg": "Parameter missing", "Data": ""}


def test_add_database_error():
    engine = create_engine("sqlite://")
    with Session(engine) as s:
        assert log_add(s, {"OrderUuid": "0x01", "Content": "x"})["Msg"] == "Database error"


def test_list_newest_first(session):
    session.add_all(
        [
            Log(order_uuid="0x01", content="old", created_at=datetime(2024, 1, 1)),
            Log(order_uuid="0x01", content="new", created_at=datetime(2024, 3, 1)),
            Log(order_uuid="0x02", content="other", created_at=datetime(2024, 2, 1)),
        ]
    )
    session.commit()
    result = log_list(session, {"OrderUuid": "0x01"})
    assert result["Code"] == 1
    assert result["Data"]["Total"] == 2
    assert [item["Content"] for item in result["Data"]["List"]] == ["new", "old"]
    assert result["Data"]["List"][0]["OrderUuid"] == "0x01"


def test_list_pages(session):
    session.add_all(
        Log(order_uuid="0x01", content=str(day), created_at=datetime(2024, 1, day))
        for day in range(1, 6)
    )
    session.commit()
    pages = [
        log_list(session, {"OrderUuid": "0x01", "Page": page, "PageSize": 2})["Data"]
        for page in (1, 2, 3)
    ]
    assert all(page["Total"] == 5 for page in pages)
    contents = [item["Content"] for page in pages for item in page["List"]]
    assert contents == ["5", "4", "3", "2", "1"]


def test_list_empty(session):
    assert log_list(session, {"OrderUuid": "0x09"})["Data"] == {"List": [], "Total": 0}


def test_list_missing_uuid(session):
    assert log_list(session, {"Page": 1})["Msg"] == "Parameter missing"


def test_list_bad_page_type(session):
    assert log_list(session, {"OrderUuid": "0x01", "Page": "one"})["Msg"] == "Parameter missing"


def test_list_database_error():
    engine = create_engine("sqlite://")
    with Session(engine) as s:
        assert log_list(s, {"OrderUuid": "0x01"})["Msg"] == "Database error"