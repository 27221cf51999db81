from datetime import date, datetime
from types import SimpleNamespace

from shiftkeeper.services import schedule_service, store_service
from shiftkeeper.services.schedule_service import resolve_match


def _row(id, start, resolved_type="open"):
    return SimpleNamespace(id=id, scheduled_start=start, resolved_type=resolved_type)


def _tpl(shift_type, start):
    return SimpleNamespace(shift_type=shift_type, start_time=start)


def test_exact_match_within_tolerance():
    rows = [_row(2, "15:00", "close"), _row(1, "09:00", "open")]
    match = resolve_match(rows, 9 * 60 + 3)
    assert match.reason == "exact"
    assert match.shift_type == "open"
    assert match.scheduled_shift.id == 1
    assert match.diff_minutes == 3
    assert match.has_scheduled_shift


def test_early_and_late_tolerance_bounds():
    rows = [_row(1, "09:00")]
    assert resolve_match(rows, 8 * 60 + 55).reason == "exact"
    assert resolve_match(rows, 9 * 60 + 15).reason == "exact"
    assert resolve_match(rows, 8 * 60 + 54).reason == "nearest"
    assert resolve_match(rows, 9 * 60 + 16).reason == "nearest"


def test_exact_window_beats_a_nearer_row_outside_it():
    # 09:14 is 14 late for the 09:00 row but only 6 early for 09:20
    rows = [_row(2, "09:20", "close"), _row(1, "09:00", "open")]
    match = resolve_match(rows, 9 * 60 + 14)
    assert match.reason == "exact"
    assert match.scheduled_shift.id == 1
    assert match.shift_type == "open"
    assert match.diff_minutes == 14


def test_early_bound_with_two_rows():
    rows = [_row(1, "09:00", "open"), _row(2, "08:40", "close")]
    at_bound = resolve_match(rows, 8 * 60 + 55)
    assert at_bound.reason == "exact"
    assert at_bound.scheduled_shift.id == 1

    # 08:54 is 6 early for 09:00 and 14 late for 08:40
    past_bound = resolve_match(rows, 8 * 60 + 54)
    assert past_bound.reason == "exact"
    assert past_bound.scheduled_shift.id == 2

    only_nine = resolve_match([_row(1, "09:00", "open")], 8 * 60 + 54)
    assert only_nine.reason == "nearest"
    assert only_nine.diff_minutes == -6


def test_tie_keeps_earliest_start_regardless_of_input_order():
    rows = [_row(7, "09:10"), _row(3, "09:00")]
    match = resolve_match(rows, 9 * 60 + 5)
    assert match.scheduled_shift.id == 3
    match = resolve_match(list(reversed(rows)), 9 * 60 + 5)
    assert match.scheduled_shift.id == 3


def test_double_beats_nearest():
    rows = [_row(1, "09:00", "open"), _row(2, "15:00", "double")]
    match = resolve_match(rows, 8 * 60 + 30)
    assert match.reason == "double"
    assert match.shift_type == "double"
    assert match.scheduled_shift.id == 2


def test_nearest_when_nothing_in_window():
    rows = [_row(1, "09:00", "open"), _row(2, "15:00", "close")]
    match = resolve_match(rows, 13 * 60)
    assert match.reason == "nearest"
    assert match.scheduled_shift.id == 2
    assert match.diff_minutes == -120


def test_templates_only_without_rows():
    templates = [_tpl("close", "15:00"), _tpl("open", "09:00")]
    assert resolve_match([], 10 * 60 + 30, templates=templates).shift_type == "open"
    match = resolve_match([], 14 * 60, templates=templates)
    assert match.shift_type == "close"
    assert match.reason == "template"
    assert match.has_scheduled_shift is False
    assert match.scheduled_shift is None


def test_hint_then_other():
    assert resolve_match([], 3 * 60, hint="close").reason == "hint"
    match = resolve_match([], 3 * 60, hint="lunch")
    assert match.shift_type == "other"
    assert match.reason == "other"


def test_match_clock_in_ignores_draft_schedules(db_session, store, employee, open_slot):
    draft = schedule_service.create_schedule(
        store_id=store.id, period_start=date(2026, 3, 8), period_end=date(2026, 3, 14),
    )
    schedule_service.add_scheduled_shift(
        schedule=draft,
        profile_id=employee.id,
        shift_date=date(2026, 3, 10),
        shift_type="close",
        scheduled_start="15:00",
        scheduled_end="23:00",
    )
    # 15:02 CDT
    match = schedule_service.match_clock_in(
        store=store, profile_id=employee.id, entered_at=datetime(2026, 3, 10, 20, 2),
    )
    assert match.reason == "nearest"
    assert match.scheduled_shift_id == open_slot.id


def test_match_clock_in_uses_rounded_date(db_session, store, employee, schedule):
    late = schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=employee.id,
        shift_date=date(2026, 3, 11),
        shift_type="open",
        scheduled_start="00:00",
        scheduled_end="06:00",
    )
    # 23:50 CDT on the 10th rounds to midnight on the 11th
    match = schedule_service.match_clock_in(
        store=store, profile_id=employee.id, entered_at=datetime(2026, 3, 11, 4, 50),
    )
    assert match.shift_date == date(2026, 3, 11)
    assert match.scheduled_shift_id == late.id


def test_match_clock_in_falls_back_to_templates(db_session, store, employee):
    store_service.set_shift_template(store.id, day=2, shift_type="close", start_time="15:00", end_time="23:00")
    match = schedule_service.match_clock_in(
        store=store, profile_id=employee.id, entered_at=datetime(2026, 3, 10, 19, 30),
    )
    assert match.reason == "template"
    assert match.shift_type == "close"
    assert not match.has_scheduled_shift
