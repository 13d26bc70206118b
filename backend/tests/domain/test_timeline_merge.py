"""Tests for merging stage changes and time entries into a timeline."""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from arqflow.domain.timeline import (
    StageChangeRecord,
    TimeEntryRecord,
    as_utc,
    build_timeline,
    collect_actor_ids,
    stage_change_from_changes,
)

pytestmark = pytest.mark.unit

BASE = datetime(2026, 10, 10, 12, 0, tzinfo=timezone.utc)
NAMES = {"user_ana": "Ana Souza", "user_bruno": "Bruno Lima"}


def _change(minutes: int, old: str, new: str, actor: str | None = "user_ana") -> StageChangeRecord:
    return StageChangeRecord(
        id=uuid.uuid4(),
        timestamp=BASE + timedelta(minutes=minutes),
        from_stage=old,
        to_stage=new,
        actor_id=actor,
    )


def _entry(
    minutes: int | None, stage: str | None, hours: str, author: str | None = "user_bruno"
) -> TimeEntryRecord:
    return TimeEntryRecord(
        id=uuid.uuid4(),
        stage_id=stage,
        hours=Decimal(hours),
        entry_date=date(2026, 10, 10),
        created_at=None if minutes is None else BASE + timedelta(minutes=minutes),
        description=None,
        author_id=author,
    )


class TestBuildTimeline:
    def test_one_entry_per_record_in_chronological_order(self):
        changes = [
            _change(30, "formulario", "reuniao_briefing"),
            _change(90, "reuniao_briefing", "levantamento"),
        ]
        entries = [_entry(10, "formulario", "1.5"), _entry(60, "reuniao_briefing", "2")]

        timeline = build_timeline(changes, entries, NAMES)

        assert len(timeline.entries) == 4
        assert [e.type for e in timeline.entries] == [
            "time_entry", "stage_change", "time_entry", "stage_change",
        ]
        timestamps = [e.timestamp for e in timeline.entries]
        assert timestamps == sorted(timestamps)

    def test_stage_change_precedes_time_entry_at_equal_timestamp(self):
        timeline = build_timeline([_change(5, "a", "b")], [_entry(5, "a", "1")], NAMES)
        assert [e.type for e in timeline.entries] == ["stage_change", "time_entry"]

    def test_actor_names_resolved(self):
        timeline = build_timeline(
            [_change(0, "a", "b", actor="user_ana")],
            [_entry(1, "a", "1", author="user_ghost"), _entry(2, "a", "1", author=None)],
            NAMES,
        )
        assert [e.actor_name for e in timeline.entries] == ["Ana Souza", None, None]

    def test_stage_change_fields(self):
        change = _change(0, "formulario", "reuniao_briefing")
        item = build_timeline([change], [], NAMES).entries[0]
        assert item.id == str(change.id)
        assert item.from_stage == "formulario"
        assert item.to_stage == "reuniao_briefing"
        assert item.hours is None

    def test_entry_without_created_at_uses_date_at_midnight_utc(self):
        item = build_timeline([], [_entry(None, "a", "1")], NAMES).entries[0]
        assert item.timestamp == datetime(2026, 10, 10, tzinfo=timezone.utc)

    def test_hours_by_stage_and_total(self):
        entries = [
            _entry(1, "formulario", "1.5"),
            _entry(2, "formulario", "2"),
            _entry(3, "reuniao_briefing", "0.25"),
            _entry(4, None, "1"),
        ]
        timeline = build_timeline([], entries, NAMES)
        assert timeline.hours_by_stage == {
            "formulario": Decimal("3.5"),
            "reuniao_briefing": Decimal("0.25"),
            "unknown": Decimal("1"),
        }
        assert timeline.total_hours == Decimal("4.75")

    def test_empty_sources(self):
        timeline = build_timeline([], [], {})
        assert timeline.entries == []
        assert timeline.hours_by_stage == {}
        assert timeline.total_hours == Decimal("0")

    def test_naive_and_aware_timestamps_compare(self):
        naive = StageChangeRecord(
            id=uuid.uuid4(),
            timestamp=datetime(2026, 10, 10, 12, 30),
            from_stage="a",
            to_stage="b",
            actor_id=None,
        )
        timeline = build_timeline([naive], [_entry(0, "a", "1"), _entry(60, "b", "1")], NAMES)
        assert [e.type for e in timeline.entries] == ["time_entry", "stage_change", "time_entry"]


class TestHelpers:
    def test_as_utc_converts_offsets(self):
        local = datetime(2026, 10, 10, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert as_utc(local) == datetime(2026, 10, 10, 12, 0, tzinfo=timezone.utc)
        assert as_utc(local).tzinfo == timezone.utc

    def test_stage_change_from_changes(self):
        record = stage_change_from_changes(
            uuid.uuid4(), BASE, {"old_stage": "a", "new_stage": "b", "old_status": "x"}, "user_ana"
        )
        assert (record.from_stage, record.to_stage, record.actor_id) == ("a", "b", "user_ana")

    def test_stage_change_from_empty_changes(self):
        record = stage_change_from_changes(uuid.uuid4(), BASE, None, None)
        assert record.from_stage is None and record.to_stage is None

    def test_collect_actor_ids(self):
        ids = collect_actor_ids(
            [_change(0, "a", "b", actor="user_ana"), _change(1, "b", "c", actor=None)],
            [_entry(0, "a", "1", author="user_bruno"), _entry(1, "a", "1", author="user_ana")],
        )
        assert ids == {"user_ana", "user_bruno"}
