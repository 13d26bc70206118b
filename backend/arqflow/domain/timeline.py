"""Timeline merge: stage changes + time entries into one chronological feed.

Pure functions over already-fetched records. Fetching lives in
TimelineService so the merge and aggregation can be tested without a database.
"""

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Literal

UNKNOWN_STAGE = "unknown"


@dataclass(frozen=True)
class StageChangeRecord:
    """A ``stage_changed`` activity-log row, reduced to what the timeline needs."""

    id: uuid.UUID
    timestamp: datetime
    from_stage: str | None
    to_stage: str | None
    actor_id: str | None


@dataclass(frozen=True)
class TimeEntryRecord:
    id: uuid.UUID
    stage_id: str | None
    hours: Decimal
    entry_date: date
    created_at: datetime | None
    description: str | None
    author_id: str | None


@dataclass(frozen=True)
class TimelineEntry:
    id: str
    type: Literal["stage_change", "time_entry"]
    timestamp: datetime
    from_stage: str | None = None
    to_stage: str | None = None
    stage_id: str | None = None
    hours: Decimal | None = None
    description: str | None = None
    actor_name: str | None = None


@dataclass(frozen=True)
class Timeline:
    entries: list[TimelineEntry]
    hours_by_stage: dict[str, Decimal]

    @property
    def total_hours(self) -> Decimal:
        return sum(self.hours_by_stage.values(), Decimal("0"))


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes so both sources compare consistently."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def stage_change_from_changes(
    record_id: uuid.UUID, timestamp: datetime, changes: Mapping | None, actor_id: str | None
) -> StageChangeRecord:
    """Read old/new stage ids out of an activity-log ``changes`` payload."""
    changes = changes or {}
    return StageChangeRecord(
        id=record_id,
        timestamp=timestamp,
        from_stage=changes.get("old_stage"),
        to_stage=changes.get("new_stage"),
        actor_id=actor_id,
    )


def collect_actor_ids(
    stage_changes: Sequence[StageChangeRecord], time_entries: Sequence[TimeEntryRecord]
) -> set[str]:
    """Distinct actor ids referenced by either source, for one batched lookup."""
    ids = {c.actor_id for c in stage_changes if c.actor_id}
    ids.update(e.author_id for e in time_entries if e.author_id)
    return ids


def _time_entry_timestamp(entry: TimeEntryRecord) -> datetime:
    if entry.created_at is not None:
        return as_utc(entry.created_at)
    return datetime.combine(entry.entry_date, time.min, tzinfo=timezone.utc)


def hours_by_stage(time_entries: Sequence[TimeEntryRecord]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for entry in time_entries:
        key = entry.stage_id or UNKNOWN_STAGE
        totals[key] = totals.get(key, Decimal("0")) + Decimal(entry.hours)
    return totals


def build_timeline(
    stage_changes: Sequence[StageChangeRecord],
    time_entries: Sequence[TimeEntryRecord],
    actor_names: Mapping[str, str],
) -> Timeline:
    """Merge both sources into one feed ordered by timestamp ascending.

    Exactly one entry per input record. The sort is stable and stage changes
    are listed first, so at equal timestamps stage changes precede time entries.
    """
    entries: list[TimelineEntry] = []

    for change in stage_changes:
        entries.append(TimelineEntry(
            id=str(change.id),
            type="stage_change",
            timestamp=as_utc(change.timestamp),
            from_stage=change.from_stage,
            to_stage=change.to_stage,
            actor_name=actor_names.get(change.actor_id) if change.actor_id else None,
        ))

    for entry in time_entries:
        entries.append(TimelineEntry(
            id=str(entry.id),
            type="time_entry",
            timestamp=_time_entry_timestamp(entry),
            stage_id=entry.stage_id,
            hours=Decimal(entry.hours),
            description=entry.description,
            actor_name=actor_names.get(entry.author_id) if entry.author_id else None,
        ))

    entries.sort(key=lambda e: e.timestamp)

    return Timeline(entries=entries, hours_by_stage=hours_by_stage(time_entries))
