# Overview: Schedule matching for clock-in; resolves shift type and schedule link deterministically.

"""
Schedule Matcher

Given a store, an employee and the time the employee entered at the kiosk,
decide which published ScheduledShift (if any) the clock-in belongs to and
what type of shift it is.

Resolution order (first hit wins):
1. exact     entered time within -5..+15 minutes of a scheduled start
2. double    any candidate from a double-coverage day
3. nearest   candidate with the smallest |diff|, regardless of window
4. template  store shift template start within +/-120 minutes (open, then close)
5. hint      shift type supplied by the caller
6. other

Steps 4-6 only run when the employee has no published row for the date;
that case is also what makes a clock-in UNSCHEDULED.

Candidates are ordered by (scheduled_start, id) before scanning and ties on
|diff| keep the first candidate, so the result never depends on fetch order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..extensions import db
from ..models import Schedule, ScheduledShift, Store
from ..models.timekeeping import SHIFT_TYPES
from ..time_utils import day_of_week, minute_of_day, parse_hhmm, round_to_30_minutes, to_local
from . import store_service


EARLY_TOLERANCE_MINUTES = 5
LATE_TOLERANCE_MINUTES = 15
TEMPLATE_TOLERANCE_MINUTES = 120


@dataclass(frozen=True)
class ScheduleMatch:
    shift_type: str
    reason: str
    scheduled_shift: ScheduledShift | None = None
    diff_minutes: int | None = None
    has_scheduled_shift: bool = False
    shift_date: date | None = None

    @property
    def scheduled_shift_id(self) -> int | None:
        return self.scheduled_shift.id if self.scheduled_shift is not None else None

    def to_dict(self) -> dict:
        return {
            "shift_type": self.shift_type,
            "reason": self.reason,
            "scheduled_shift_id": self.scheduled_shift_id,
            "diff_minutes": self.diff_minutes,
            "has_scheduled_shift": self.has_scheduled_shift,
            "shift_date": self.shift_date.isoformat() if self.shift_date else None,
        }


def _ordered(candidates):
    return sorted(candidates, key=lambda row: (parse_hhmm(row.scheduled_start), row.id or 0))


def in_exact_window(diff: int) -> bool:
    return -EARLY_TOLERANCE_MINUTES <= diff <= LATE_TOLERANCE_MINUTES


def infer_from_templates(templates, entered_minutes: int) -> str | None:
    """Open template is checked before close; each within +/-120 minutes."""
    by_type = {}
    for tpl in templates:
        by_type.setdefault(tpl.shift_type, tpl)
    for shift_type in ("open", "close"):
        tpl = by_type.get(shift_type)
        if tpl and abs(entered_minutes - parse_hhmm(tpl.start_time)) <= TEMPLATE_TOLERANCE_MINUTES:
            return shift_type
    return None


def resolve_match(
    candidates,
    entered_minutes: int,
    *,
    templates=(),
    hint: str | None = None,
    shift_date: date | None = None,
) -> ScheduleMatch:
    """Pure resolver over already-fetched rows; see module docstring for order."""
    rows = _ordered(candidates)

    exact = None
    exact_score = None
    nearest = None
    nearest_score = None
    double = None
    double_score = None

    for row in rows:
        diff = entered_minutes - parse_hhmm(row.scheduled_start)
        score = abs(diff)

        if in_exact_window(diff) and (exact is None or score < exact_score):
            exact, exact_score = (row, diff), score

        if nearest is None or score < nearest_score:
            nearest, nearest_score = (row, diff), score

        if row.resolved_type == "double" and (double is None or score < double_score):
            double, double_score = (row, diff), score

    has_rows = bool(rows)
    for reason, hit in (("exact", exact), ("double", double), ("nearest", nearest)):
        if hit is not None:
            row, diff = hit
            return ScheduleMatch(
                shift_type=row.resolved_type,
                reason=reason,
                scheduled_shift=row,
                diff_minutes=diff,
                has_scheduled_shift=has_rows,
                shift_date=shift_date,
            )

    inferred = infer_from_templates(templates, entered_minutes)
    if inferred:
        return ScheduleMatch(shift_type=inferred, reason="template", shift_date=shift_date)

    if hint in SHIFT_TYPES:
        return ScheduleMatch(shift_type=hint, reason="hint", shift_date=shift_date)

    return ScheduleMatch(shift_type="other", reason="other", shift_date=shift_date)


def published_candidates(*, store_id: int, profile_id: int, shift_date: date) -> list[ScheduledShift]:
    return (
        db.session.query(ScheduledShift)
        .join(Schedule, Schedule.id == ScheduledShift.schedule_id)
        .filter(
            ScheduledShift.store_id == store_id,
            ScheduledShift.profile_id == profile_id,
            ScheduledShift.shift_date == shift_date,
            Schedule.status == "published",
        )
        .order_by(ScheduledShift.scheduled_start.asc(), ScheduledShift.id.asc())
        .all()
    )


def match_clock_in(
    *,
    store: Store,
    profile_id: int,
    entered_at: datetime,
    hint: str | None = None,
) -> ScheduleMatch:
    """
    entered_at is UTC-naive. The calendar date comes from the rounded time;
    the minute diff uses the raw entered time.
    """
    tz = store_service.zone_for(store)
    local_entered = to_local(entered_at, tz)
    local_rounded = round_to_30_minutes(local_entered)
    shift_date = local_rounded.date()
    entered_minutes = minute_of_day(local_entered)

    candidates = published_candidates(store_id=store.id, profile_id=profile_id, shift_date=shift_date)

    templates = ()
    if not candidates:
        templates = store_service.templates_for_day(store.id, day_of_week(local_rounded))

    return resolve_match(
        candidates,
        entered_minutes,
        templates=templates,
        hint=hint,
        shift_date=shift_date,
    )


def create_schedule(*, store_id: int, period_start: date, period_end: date) -> Schedule:
    if period_end < period_start:
        raise ValueError("period_end must be on or after period_start")
    schedule = Schedule(store_id=store_id, period_start=period_start, period_end=period_end, status="draft")
    db.session.add(schedule)
    db.session.commit()
    return schedule


def add_scheduled_shift(
    *,
    schedule: Schedule,
    profile_id: int,
    shift_date: date,
    shift_type: str,
    scheduled_start: str,
    scheduled_end: str,
    shift_mode: str = "standard",
) -> ScheduledShift:
    if shift_type not in ("open", "close"):
        raise ValueError("shift_type must be open or close")
    if shift_mode not in ("standard", "double", "other"):
        raise ValueError("shift_mode must be standard, double or other")
    parse_hhmm(scheduled_start)
    parse_hhmm(scheduled_end)

    row = ScheduledShift(
        schedule_id=schedule.id,
        store_id=schedule.store_id,
        profile_id=profile_id,
        shift_date=shift_date,
        shift_type=shift_type,
        shift_mode=shift_mode,
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
    )
    db.session.add(row)
    db.session.commit()
    return row


def publish_schedule(schedule: Schedule, *, published_at: datetime) -> Schedule:
    schedule.status = "published"
    schedule.published_at = published_at
    db.session.commit()
    return schedule


def scheduled_duration_minutes(row: ScheduledShift) -> int:
    start = parse_hhmm(row.scheduled_start)
    end = parse_hhmm(row.scheduled_end)
    if end <= start:
        end += 24 * 60
    return end - start
