# Overview: Per-store-class clock windows in store-local time.
# Each rule is: (store_class, shift_type, day_of_week, start_minute, end_minute, crosses_midnight)
# day_of_week: 0 = Sunday ... 6 = Saturday.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..time_utils import day_of_week, minute_of_day


@dataclass(frozen=True)
class ClockWindowRule:
    store_class: str
    shift_type: str
    day_of_week: int
    start_minute: int
    end_minute: int
    crosses_midnight: bool = False

    @property
    def label(self) -> str:
        kind = "Open" if self.shift_type == "open" else "Close"
        return f"{kind} window {_clock_label(self.start_minute)}-{_clock_label(self.end_minute)}"

    def matches(self, local_dow: int, minutes: int) -> bool:
        if not self.crosses_midnight:
            return local_dow == self.day_of_week and self.start_minute <= minutes <= self.end_minute
        if local_dow == self.day_of_week:
            return minutes >= self.start_minute
        # Early-morning minutes of the next calendar day belong to this rule
        return local_dow == (self.day_of_week + 1) % 7 and minutes <= self.end_minute


@dataclass(frozen=True)
class WindowCheck:
    ok: bool
    label: str
    rule: ClockWindowRule | None = None


def _clock_label(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    hours = hours % 12 or 12
    return f"{hours}:{mins:02d} {suffix}"


OPEN_9 = (8 * 60 + 55, 9 * 60 + 5)
OPEN_12 = (11 * 60 + 55, 12 * 60 + 5)
CLOSE_9 = (20 * 60 + 50, 21 * 60 + 15)
CLOSE_10 = (21 * 60 + 50, 22 * 60 + 15)
CLOSE_12_CROSS = (23 * 60 + 50, 0 * 60 + 15)

STORE_CLASSES = ("LV1", "LV2")

# Close window per store class, indexed by day_of_week
_CLOSE_WINDOWS = {
    "LV1": [CLOSE_9, CLOSE_9, CLOSE_9, CLOSE_9, CLOSE_10, CLOSE_10, CLOSE_10],
    "LV2": [CLOSE_9, CLOSE_9, CLOSE_9, CLOSE_9, CLOSE_10, CLOSE_12_CROSS, CLOSE_12_CROSS],
}


def _build_rules() -> list[ClockWindowRule]:
    rules: list[ClockWindowRule] = []

    # -- OPEN: Mon-Sat 9:00, Sun 12:00 --
    for dow in (1, 2, 3, 4, 5, 6):
        for store_class in STORE_CLASSES:
            rules.append(ClockWindowRule(store_class, "open", dow, *OPEN_9))
    for store_class in STORE_CLASSES:
        rules.append(ClockWindowRule(store_class, "open", 0, *OPEN_12))

    # -- CLOSE --
    for store_class in STORE_CLASSES:
        for dow, (start, end) in enumerate(_CLOSE_WINDOWS[store_class]):
            rules.append(
                ClockWindowRule(
                    store_class, "close", dow, start, end,
                    crosses_midnight=end < start,
                )
            )
    return rules


CLOCK_WINDOW_RULES: list[ClockWindowRule] = _build_rules()


def resolve_store_class(explicit: str | None, store_name: str | None) -> str | None:
    """Explicit class wins; otherwise infer from an 'LV1'/'LV2' name prefix."""
    for candidate in (explicit, store_name):
        if not candidate:
            continue
        norm = candidate.strip().upper()
        for store_class in STORE_CLASSES:
            if norm.startswith(store_class):
                return store_class
    return None


def is_time_within_window(
    *,
    store_class: str,
    shift_type: str,
    local_dow: int,
    minutes: int,
    rules: list[ClockWindowRule] | None = None,
) -> WindowCheck:
    """
    First matching rule wins. On a miss the label of the closest rule is
    still returned so the kiosk can tell the employee which window applies.
    """
    table = CLOCK_WINDOW_RULES if rules is None else rules
    candidates = [r for r in table if r.store_class == store_class and r.shift_type == shift_type]

    for rule in candidates:
        if rule.matches(local_dow, minutes):
            return WindowCheck(ok=True, label=rule.label, rule=rule)

    fallback = (
        next((r for r in candidates if r.day_of_week == local_dow), None)
        or next((r for r in candidates if r.crosses_midnight and (r.day_of_week + 1) % 7 == local_dow), None)
        or (candidates[0] if candidates else None)
    )
    label = fallback.label if fallback else "Outside allowed clock window"
    return WindowCheck(ok=False, label=label, rule=None)


def check_local_time(*, store_class: str, shift_type: str, local_dt: datetime) -> WindowCheck:
    return is_time_within_window(
        store_class=store_class,
        shift_type=shift_type,
        local_dow=day_of_week(local_dt),
        minutes=minute_of_day(local_dt),
    )
