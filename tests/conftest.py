from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

import routine_tracker.periods as periods
from routine_tracker.db import connect, migrate
from routine_tracker.engine import RoutineEngine
from routine_tracker.models import Task, WEEKDAY_TAGS
from routine_tracker.repository import Repository


TZ = ZoneInfo("Europe/Lisbon")


def dt_local(y, m, d, hh=0, mm=0, ss=0):
    return datetime(y, m, d, hh, mm, ss, tzinfo=TZ)


def make_task(tid, category="health", days=WEEKDAY_TAGS, **kw):
    return Task(id=tid, title=f"Task {tid}", category=category, days_of_week=days, **kw)


@pytest.fixture
def lisbon(monkeypatch):
    monkeypatch.setattr(periods, "local_tz", lambda: TZ)
    return TZ


@pytest.fixture
def conn():
    c = connect(":memory:")
    migrate(c)
    yield c
    c.close()


@pytest.fixture
def repo(conn):
    return Repository(conn)


@pytest.fixture
def engine(repo, lisbon):
    return RoutineEngine(repo)
