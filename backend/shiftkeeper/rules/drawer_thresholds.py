# Overview: Drawer variance thresholds and the confirm-to-override gate for drawer counts.

from __future__ import annotations

from dataclasses import dataclass

from ..outcomes import CHANGE_FUND, DRAWER_THRESHOLD, ConfirmationRequired


DEFAULT_EXPECTED_DRAWER_CENTS = 20000
DEFAULT_EXPECTED_CHANGE_CENTS = 20000

# Asymmetric: a short drawer is treated as more suspicious than a long one.
UNDER_THRESHOLD_CENTS = 500
OVER_THRESHOLD_CENTS = 1500

DRAWER_THRESHOLDS = {
    "under": UNDER_THRESHOLD_CENTS,
    "over": OVER_THRESHOLD_CENTS,
}


def is_out_of_threshold(actual_cents: int, expected_cents: int, thresholds: dict | None = None) -> bool:
    """Boundary values (expected - under, expected + over) are within threshold."""
    limits = thresholds or DRAWER_THRESHOLDS
    return actual_cents < expected_cents - limits["under"] or actual_cents > expected_cents + limits["over"]


def threshold_message(actual_cents: int, expected_cents: int, thresholds: dict | None = None) -> str | None:
    limits = thresholds or DRAWER_THRESHOLDS
    if actual_cents < expected_cents - limits["under"]:
        return f"Drawer is UNDER by more than ${limits['under'] / 100:.0f}. Confirm count + notify manager."
    if actual_cents > expected_cents + limits["over"]:
        return f"Drawer is OVER by more than ${limits['over'] / 100:.0f}. Confirm count + notify manager."
    return None


@dataclass(frozen=True)
class DrawerCheck:
    out_of_threshold: bool
    change_mismatch: bool
    confirmation: ConfirmationRequired | None = None

    @property
    def ok(self) -> bool:
        return self.confirmation is None


def check_drawer(
    *,
    drawer_cents: int,
    expected_drawer_cents: int = DEFAULT_EXPECTED_DRAWER_CENTS,
    change_cents: int | None = None,
    expected_change_cents: int = DEFAULT_EXPECTED_CHANGE_CENTS,
    confirmed: bool = False,
    notified_manager: bool = False,
) -> DrawerCheck:
    """
    Classify a drawer count and decide whether it may be persisted.

    - Outside threshold: needs both `confirmed` and `notified_manager`.
    - Change fund different from the expected fund: needs `notified_manager`.
    """
    out = is_out_of_threshold(drawer_cents, expected_drawer_cents)
    change_mismatch = change_cents is not None and change_cents != expected_change_cents

    if out and not (confirmed and notified_manager):
        return DrawerCheck(
            out_of_threshold=True,
            change_mismatch=change_mismatch,
            confirmation=ConfirmationRequired(
                code=DRAWER_THRESHOLD,
                message=threshold_message(drawer_cents, expected_drawer_cents),
                details={
                    "drawer_cents": drawer_cents,
                    "expected_drawer_cents": expected_drawer_cents,
                    "variance_cents": drawer_cents - expected_drawer_cents,
                },
            ),
        )

    if change_mismatch and not notified_manager:
        return DrawerCheck(
            out_of_threshold=out,
            change_mismatch=True,
            confirmation=ConfirmationRequired(
                code=CHANGE_FUND,
                message=(
                    f"Change drawer must be ${expected_change_cents / 100:.2f}. "
                    "Notify a manager to record a different amount."
                ),
                details={
                    "change_cents": change_cents,
                    "expected_change_cents": expected_change_cents,
                },
            ),
        )

    return DrawerCheck(out_of_threshold=out, change_mismatch=change_mismatch)
