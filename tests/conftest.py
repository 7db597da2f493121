"""Pytest fixtures for correlator tests."""

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from correlator.schemas.alert import Alert, Attribute
from correlator.services.attribute_gate import AttributeGate
from correlator.services.correlation import CorrelationMap
from correlator.services.report_log import AlertSnapshotLog, ReportSectionLog
from correlator.services.store.memory import MemoryStore

T0 = datetime(2026, 3, 14, 10, 0, tzinfo=UTC)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sequential_ids(prefix: str):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def correlation(store, clock) -> CorrelationMap:
    return CorrelationMap(
        store,
        window=timedelta(hours=3),
        id_factory=sequential_ids("R"),
        clock=clock,
    )


@pytest.fixture
def gate(store, clock) -> AttributeGate:
    return AttributeGate(store, ttl=timedelta(hours=3), clock=clock)


@pytest.fixture
def alert_log(store, clock) -> AlertSnapshotLog:
    return AlertSnapshotLog(store, ttl=timedelta(hours=3), clock=clock)


@pytest.fixture
def section_log(store, clock) -> ReportSectionLog:
    return ReportSectionLog(store, ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def ip_attribute() -> Attribute:
    return Attribute(key="ip", type="ipv4", value="1.2.3.4")


@pytest.fixture
def sample_alert(ip_attribute) -> Alert:
    return Alert(
        detector="edr",
        rule_name="ruleA",
        rule_id="r-001",
        alert_key="host-7",
        description="Suspicious outbound connection",
        timestamp=T0,
        attributes=[
            ip_attribute,
            Attribute(key="user", type="username", value="jsmith"),
        ],
        body={"process": {"name": "cmd.exe"}},
    )
