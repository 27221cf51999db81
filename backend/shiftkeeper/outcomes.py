# Overview: Result variant for policy violations the caller may override.

"""
A ConfirmationRequired is returned (never raised) when a write breaks a
soft policy: drawer outside threshold, change fund short, sales not
balancing, rollover entries disagreeing, or a clock-in with no schedule.
Nothing is persisted for the request that produced it, except a failed safe
closeout submit, which still counts a validation attempt. The caller re-submits
with the matching acknowledgement flag(s) to proceed.
"""

from __future__ import annotations

from dataclasses import dataclass, field


DRAWER_THRESHOLD = "DRAWER_THRESHOLD"
CHANGE_FUND = "CHANGE_FUND"
SALES_MISMATCH = "SALES_MISMATCH"
ROLLOVER_MISMATCH = "ROLLOVER_MISMATCH"
DEPOSIT_VARIANCE = "DEPOSIT_VARIANCE"
UNSCHEDULED = "UNSCHEDULED"


@dataclass(frozen=True)
class ConfirmationRequired:
    code: str
    message: str
    details: dict = field(default_factory=dict)
    # Unscheduled clock-in needs a manager-style approval rather than a
    # simple "I confirm" re-prompt; it is rendered as 409.
    requires_approval: bool = False

    @property
    def http_status(self) -> int:
        return 409 if self.requires_approval else 400

    def to_dict(self) -> dict:
        body = {
            "error": self.message,
            "code": self.code,
            "requires_confirm": not self.requires_approval,
            "requires_approval": self.requires_approval,
        }
        body.update(self.details)
        return body


def is_confirmation(result) -> bool:
    return isinstance(result, ConfirmationRequired)
