"""Time entry validation rules."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from arqflow.core.exceptions import FutureDateError, InvalidHoursError, InvalidStageError
from arqflow.domain.catalog import contains
from arqflow.domain.workflow import Workflow

MAX_HOURS_PER_ENTRY = Decimal("24")
# Matches the Numeric(5, 2) column on time_entries.hours
HOURS_PRECISION = Decimal("0.01")


def studio_today(timezone_name: str) -> date:
    """Current calendar date in the studio's timezone."""
    return datetime.now(ZoneInfo(timezone_name)).date()


def normalize_hours(hours) -> Decimal:
    """Coerce ``hours`` to Decimal and enforce the (0, 24] range.

    Raises:
        InvalidHoursError: not a finite number, <= 0, > 24, or finer than 0.01
    """
    try:
        value = hours if isinstance(hours, Decimal) else Decimal(str(hours))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidHoursError(hours) from None
    if not value.is_finite() or value <= 0 or value > MAX_HOURS_PER_ENTRY:
        raise InvalidHoursError(hours)
    if value != value.quantize(HOURS_PRECISION):
        raise InvalidHoursError(hours)
    return value


def validate_time_entry(
    workflow: Workflow | None,
    stage_id: str,
    hours,
    entry_date: date,
    today: date,
) -> Decimal:
    """Check a time entry before it is recorded and return the normalized hours.

    Entries document work already performed, so ``entry_date`` may be today
    but not later. The stage check only applies when a workflow is configured.

    Raises:
        InvalidHoursError, FutureDateError, InvalidStageError
    """
    value = normalize_hours(hours)

    if entry_date > today:
        raise FutureDateError(entry_date)

    if workflow is not None and not contains(workflow.stages, stage_id):
        raise InvalidStageError(stage_id)

    return value
