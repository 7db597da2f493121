"""Tests for the in-memory keyed store."""

from datetime import timedelta

import pytest

from correlator.services.store.base import AbsentOrExpired, Conflict, StoreRecord, Written
from correlator.services.store.memory import MemoryStore


def _record(t0, sk="a", expires_in=timedelta(hours=1), **data):
    return StoreRecord(
        partition_key="p",
        sort_key=sk,
        expires_at=t0 + expires_in,
        created_at=t0,
        data=data,
    )


class TestConditionalPut:

    @pytest.mark.asyncio
    async def test_writes_when_absent(self, t0):
        store = MemoryStore()
        record = _record(t0, v=1)

        outcome = await store.conditional_put(record, AbsentOrExpired(at=t0))

        assert outcome == Written(record=record)
        assert await store.get("p", "a") == record

    @pytest.mark.asyncio
    async def test_conflict_carries_live_record(self, t0):
        store = MemoryStore()
        first = _record(t0, v=1)
        await store.conditional_put(first, AbsentOrExpired(at=t0))

        outcome = await store.conditional_put(_record(t0, v=2), AbsentOrExpired(at=t0))

        assert isinstance(outcome, Conflict)
        assert outcome.existing == first
        assert (await store.get("p", "a")).data == {"v": 1}

    @pytest.mark.asyncio
    async def test_replaces_record_expired_at_moment(self, t0):
        store = MemoryStore()
        await store.conditional_put(_record(t0, v=1), AbsentOrExpired(at=t0))

        at_expiry = t0 + timedelta(hours=1)
        outcome = await store.conditional_put(_record(at_expiry, v=2), AbsentOrExpired(at=at_expiry))

        assert isinstance(outcome, Written)
        assert (await store.get("p", "a")).data == {"v": 2}

    @pytest.mark.asyncio
    async def test_sort_keys_are_independent(self, t0):
        store = MemoryStore()
        await store.conditional_put(_record(t0, sk="a"), AbsentOrExpired(at=t0))

        outcome = await store.conditional_put(_record(t0, sk="b"), AbsentOrExpired(at=t0))
        assert isinstance(outcome, Written)


class TestReads:

    @pytest.mark.asyncio
    async def test_get_absent_returns_none(self):
        assert await MemoryStore().get("p", "missing") is None

    @pytest.mark.asyncio
    async def test_get_all_returns_partition_only(self, t0):
        store = MemoryStore()
        await store.put(_record(t0, sk="a"))
        await store.put(_record(t0, sk="b"))
        await store.put(
            StoreRecord(partition_key="other", sort_key="a", expires_at=t0 + timedelta(hours=1))
        )

        records = await store.get_all("p")
        assert sorted(r.sort_key for r in records) == ["a", "b"]
        assert await store.get_all("nothing") == []

    @pytest.mark.asyncio
    async def test_put_overwrites_unconditionally(self, t0):
        store = MemoryStore()
        await store.put(_record(t0, v=1))
        await store.put(_record(t0, v=2))

        assert (await store.get("p", "a")).data == {"v": 2}
        assert len(store) == 1


class TestPurge:

    @pytest.mark.asyncio
    async def test_purge_removes_only_expired(self, t0):
        store = MemoryStore()
        await store.put(_record(t0, sk="old", expires_in=timedelta(minutes=5)))
        await store.put(_record(t0, sk="new", expires_in=timedelta(hours=5)))

        removed = await store.purge_expired(t0 + timedelta(hours=1))

        assert removed == 1
        assert [r.sort_key for r in await store.get_all("p")] == ["new"]
