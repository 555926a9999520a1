"""Shared fixtures: a controllable clock and one store per backend."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest

from app.database import create_tables, make_engine
from app.services.memory_storage import MemStorage
from app.services.seed import seed_zones
from app.services.sql_storage import SqlStorage

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta):
        self.now += timedelta(**delta)


@pytest.fixture
def clock():
    return FakeClock()


def build_store(backend: str, clock):
    if backend == "sql":
        engine = make_engine("sqlite://")
        create_tables(engine)
        return SqlStorage(engine, total_capacity=400, clock=clock)
    return MemStorage(total_capacity=400, clock=clock)


@pytest.fixture(params=["memory", "sql"])
def store(request, clock):
    """Empty store (no zones) on each backend."""
    return build_store(request.param, clock)


@pytest.fixture
def seeded_store(store):
    """Store holding the four default zones (ids 1-4)."""
    seed_zones(store)
    return store
