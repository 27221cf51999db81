from datetime import datetime

import pytest

from shiftkeeper.rules.clock_windows import (
    CLOCK_WINDOW_RULES,
    check_local_time,
    is_time_within_window,
    resolve_store_class,
)


def _check(store_class, shift_type, dow, hh, mm):
    return is_time_within_window(
        store_class=store_class,
        shift_type=shift_type,
        local_dow=dow,
        minutes=hh * 60 + mm,
    )


@pytest.mark.parametrize("dow", [1, 2, 3, 4, 5, 6])
def test_weekday_open_window_is_nine_am(dow):
    assert _check("LV1", "open", dow, 9, 0).ok
    assert _check("LV1", "open", dow, 8, 55).ok
    assert _check("LV1", "open", dow, 9, 5).ok
    assert not _check("LV1", "open", dow, 9, 6).ok


def test_sunday_open_window_is_noon():
    assert _check("LV2", "open", 0, 12, 0).ok
    result = _check("LV2", "open", 0, 9, 0)
    assert not result.ok
    assert result.label == "Open window 11:55 AM-12:05 PM"


def test_miss_still_reports_the_applicable_window():
    result = _check("LV1", "open", 2, 9, 30)
    assert result.ok is False
    assert result.rule is None
    assert result.label == "Open window 8:55 AM-9:05 AM"


def test_lv1_close_windows_by_day():
    # Mon-Wed close at 9 PM, Thu-Sat at 10 PM
    assert _check("LV1", "close", 1, 21, 0).ok
    assert not _check("LV1", "close", 1, 22, 0).ok
    assert _check("LV1", "close", 4, 22, 0).ok
    assert _check("LV1", "close", 6, 22, 15).ok
    assert not _check("LV1", "close", 6, 22, 16).ok


def test_lv2_weekend_close_crosses_midnight():
    assert _check("LV2", "close", 5, 23, 55).ok
    # 00:10 on Saturday belongs to Friday's late window
    result = _check("LV2", "close", 6, 0, 10)
    assert result.ok
    assert result.rule.day_of_week == 5
    assert result.label == "Close window 11:50 PM-12:15 AM"
    assert not _check("LV2", "close", 6, 0, 16).ok


def test_lv1_never_crosses_midnight():
    assert not any(r.crosses_midnight for r in CLOCK_WINDOW_RULES if r.store_class == "LV1")
    assert not _check("LV1", "close", 6, 0, 10).ok


def test_unknown_store_class_has_generic_label():
    result = _check("LV9", "open", 2, 9, 0)
    assert not result.ok
    assert result.label == "Outside allowed clock window"


def test_custom_rule_table():
    rules = [r for r in CLOCK_WINDOW_RULES if r.store_class == "LV1" and r.day_of_week == 2]
    assert is_time_within_window(
        store_class="LV1", shift_type="open", local_dow=2, minutes=9 * 60, rules=rules,
    ).ok
    assert not is_time_within_window(
        store_class="LV1", shift_type="open", local_dow=3, minutes=9 * 60, rules=rules,
    ).ok


@pytest.mark.parametrize("explicit,name,expected", [
    ("LV2", "LV1 Downtown", "LV2"),
    (None, "lv1 downtown", "LV1"),
    (None, " LV2-Mall", "LV2"),
    (None, "Main Street", None),
    ("", None, None),
])
def test_resolve_store_class(explicit, name, expected):
    assert resolve_store_class(explicit, name) == expected


def test_check_local_time_uses_local_day_of_week():
    # 2026-03-10 is a Tuesday
    assert check_local_time(store_class="LV1", shift_type="open", local_dt=datetime(2026, 3, 10, 9, 0)).ok
    # 2026-03-15 is a Sunday
    assert not check_local_time(store_class="LV1", shift_type="open", local_dt=datetime(2026, 3, 15, 9, 0)).ok
