"""Tests for the append-only report logs."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from correlator.core.exceptions import DecodeError, MalformedInputError, StorageError
from correlator.schemas.alert import Attribute
from correlator.schemas.report import ReportSection
from correlator.services.report_log import AlertSnapshotLog
from correlator.services.store.base import StoreRecord


def _section(report_id: str, attribute: Attribute, author: str = "geoip") -> ReportSection:
    return ReportSection(
        report_id=report_id,
        attribute=attribute,
        author=author,
        type="host",
        content={"country": "NL"},
    )


class TestAlertSnapshotLog:

    @pytest.mark.asyncio
    async def test_accumulates_every_snapshot(self, alert_log, sample_alert):
        for _ in range(4):
            await alert_log.save("R1", sample_alert)

        alerts = await alert_log.fetch("R1")
        assert len(alerts) == 4
        assert all(alert == sample_alert for alert in alerts)

    @pytest.mark.asyncio
    async def test_fetch_is_repeatable(self, alert_log, sample_alert):
        other = sample_alert.model_copy(update={"alert_key": "host-9"})
        await alert_log.save("R1", sample_alert)
        await alert_log.save("R1", other)

        first = await alert_log.fetch("R1")
        second = await alert_log.fetch("R1")

        key = lambda a: a.alert_key  # noqa: E731
        assert sorted(first, key=key) == sorted(second, key=key)
        assert {a.alert_key for a in first} == {"host-7", "host-9"}

    @pytest.mark.asyncio
    async def test_empty_report_is_not_an_error(self, alert_log):
        assert await alert_log.fetch("R-unknown") == []

    @pytest.mark.asyncio
    async def test_reports_do_not_leak(self, alert_log, sample_alert):
        await alert_log.save("R1", sample_alert)
        assert await alert_log.fetch("R2") == []

    @pytest.mark.asyncio
    async def test_snapshot_expires_relative_to_event_time(self, alert_log, store, sample_alert, t0):
        sub_key = await alert_log.save("R1", sample_alert)

        record = await store.get("alertlog/R1", sub_key)
        assert record.expires_at == t0 + timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_each_save_gets_a_fresh_sub_key(self, alert_log, sample_alert):
        keys = {await alert_log.save("R1", sample_alert) for _ in range(10)}
        assert len(keys) == 10

    @pytest.mark.asyncio
    async def test_corrupt_record_aborts_fetch(self, alert_log, store, sample_alert, t0):
        await alert_log.save("R1", sample_alert)
        await store.put(
            StoreRecord(
                partition_key="alertlog/R1",
                sort_key="broken",
                expires_at=t0 + timedelta(hours=3),
                data={"alert": {"detector": "edr"}},
            )
        )

        with pytest.raises(DecodeError) as exc_info:
            await alert_log.fetch("R1")
        assert exc_info.value.sort_key == "broken"
        assert exc_info.value.partition_key == "alertlog/R1"

    @pytest.mark.asyncio
    async def test_storage_failure_on_append_is_raised(self, sample_alert):
        store = AsyncMock()
        store.put = AsyncMock(side_effect=StorageError("put", "alertlog/R1", "x", "down"))
        log = AlertSnapshotLog(store)

        with pytest.raises(StorageError):
            await log.save("R1", sample_alert)
        store.put.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_storage_failure_on_fetch_is_raised(self):
        store = AsyncMock()
        store.get_all = AsyncMock(side_effect=StorageError("get_all", "alertlog/R1", None, "down"))
        log = AlertSnapshotLog(store)

        with pytest.raises(StorageError):
            await log.fetch("R1")

    @pytest.mark.asyncio
    async def test_empty_sub_key_rejected(self, alert_log, sample_alert, t0):
        from correlator.schemas.records import AlertSnapshot

        with pytest.raises(MalformedInputError):
            await alert_log.append("R1", "", AlertSnapshot(alert=sample_alert), t0)


class TestReportSectionLog:

    @pytest.mark.asyncio
    async def test_sections_accumulate(self, section_log, ip_attribute):
        await section_log.save(_section("R1", ip_attribute, "geoip"))
        await section_log.save(_section("R1", ip_attribute, "reputation"))

        sections = await section_log.fetch("R1")
        assert sorted(s.author for s in sections) == ["geoip", "reputation"]

    @pytest.mark.asyncio
    async def test_sub_key_groups_by_attribute_hash(self, section_log, ip_attribute):
        sub_key = await section_log.save(_section("R1", ip_attribute))

        attr_hash, token = sub_key.split("/")
        assert attr_hash == ip_attribute.hash()
        assert token

    @pytest.mark.asyncio
    async def test_same_attribute_results_stay_distinct(self, section_log, ip_attribute):
        a = await section_log.save(_section("R1", ip_attribute))
        b = await section_log.save(_section("R1", ip_attribute))

        assert a != b
        assert len(await section_log.fetch("R1")) == 2

    @pytest.mark.asyncio
    async def test_fetch_grouped(self, section_log, ip_attribute):
        user = Attribute(key="user", type="username", value="jsmith")
        await section_log.save(_section("R1", ip_attribute, "geoip"))
        await section_log.save(_section("R1", ip_attribute, "reputation"))
        await section_log.save(_section("R1", user, "directory"))

        grouped = await section_log.fetch_grouped("R1")
        assert len(grouped[ip_attribute.hash()]) == 2
        assert [s.author for s in grouped[user.hash()]] == ["directory"]

    @pytest.mark.asyncio
    async def test_section_expires_relative_to_write_time(self, section_log, store, clock, ip_attribute):
        clock.advance(hours=5)
        sub_key = await section_log.save(_section("R1", ip_attribute))

        record = await store.get("sectionlog/R1", sub_key)
        assert record.expires_at == clock.now + timedelta(hours=24)
