# Overview: Declarative rule tables evaluated by single resolver functions.

from .clock_windows import (
    CLOCK_WINDOW_RULES,
    ClockWindowRule,
    WindowCheck,
    is_time_within_window,
    resolve_store_class,
)
from .drawer_thresholds import (
    DEFAULT_EXPECTED_CHANGE_CENTS,
    DEFAULT_EXPECTED_DRAWER_CENTS,
    DRAWER_THRESHOLDS,
    OVER_THRESHOLD_CENTS,
    UNDER_THRESHOLD_CENTS,
    DrawerCheck,
    check_drawer,
    is_out_of_threshold,
    threshold_message,
)

__all__ = [
    "CLOCK_WINDOW_RULES",
    "ClockWindowRule",
    "WindowCheck",
    "is_time_within_window",
    "resolve_store_class",
    "DEFAULT_EXPECTED_CHANGE_CENTS",
    "DEFAULT_EXPECTED_DRAWER_CENTS",
    "DRAWER_THRESHOLDS",
    "OVER_THRESHOLD_CENTS",
    "UNDER_THRESHOLD_CENTS",
    "DrawerCheck",
    "check_drawer",
    "is_out_of_threshold",
    "threshold_message",
]
