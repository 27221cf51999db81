"""
Safe closeout wizard tests: deposit formulas, eligibility window,
resumable drafts, submit status and manager lock.
"""

from datetime import date, datetime

import pytest

from conftest import SHIFT_DATE, make_shift
from shiftkeeper.extensions import db
from shiftkeeper.models import DailySalesRecord
from shiftkeeper.outcomes import DEPOSIT_VARIANCE
from shiftkeeper.services import closeout_service, schedule_service, store_service
from shiftkeeper.services.closeout_service import (
    denom_total_cents,
    derive_status,
    expected_deposit_cents,
    photo_purge_date,
)
from shiftkeeper.validation import ConflictError, ValidationError


# 22:45 CDT on the 10th, inside the 22:30 closeout window for a 23:00 close
OPEN_NOW = datetime(2026, 3, 11, 3, 45)
EARLY_NOW = datetime(2026, 3, 11, 3, 0)

DENOMS_223 = {"100": 2, "20": 1, "1": 3}
SLIP = [{"photo_type": "deposit_required", "storage_path": "closeouts/slip.jpg"}]


@pytest.fixture
def close_shift(store, closer, close_slot):
    return make_shift(store, closer, shift_type="close", start=datetime(2026, 3, 10, 20, 0), scheduled_shift=close_slot)


def _submit(shift, profile, **payload):
    body = {"denoms": DENOMS_223, "drawer_count_cents": 20000, "photos": SLIP}
    body.update(payload)
    return closeout_service.submit(shift=shift, payload=body, actor_profile_id=profile.id, now=OPEN_NOW)


def _draft(shift, profile, payload, now=OPEN_NOW):
    return closeout_service.save_draft(shift=shift, payload=payload, actor_profile_id=profile.id, now=now)


@pytest.mark.parametrize("cash,expenses,expected", [
    (1000, 37, 1000),
    (50, 100, 0),
    (0, 0, 0),
    (22301, 0, 22400),
    (100000, 0, 100000),
])
def test_expected_deposit_rounds_up_to_the_dollar(cash, expenses, expected):
    assert expected_deposit_cents(cash, expenses) == expected


def test_denom_total():
    assert denom_total_cents(DENOMS_223) == 22300
    assert denom_total_cents({}) == 0


@pytest.mark.parametrize("variance,denom_variance,justification,status", [
    (0, 0, None, "pass"),
    (0, 50, None, "warn"),
    (-100, -100, None, "warn"),
    (-7700, -7700, None, "fail"),
    (-7700, -7700, "Paid a vendor in cash", "warn"),
])
def test_derive_status(variance, denom_variance, justification, status):
    assert derive_status(
        variance_cents=variance,
        denom_variance_cents=denom_variance,
        deposit_tolerance_cents=100,
        denom_tolerance_cents=0,
        justification=justification,
    ) == status


def test_photo_purge_date():
    assert photo_purge_date(date(2026, 3, 10), 8) == date(2026, 4, 8)
    assert photo_purge_date(date(2026, 12, 31), 8) == date(2027, 1, 8)
    assert photo_purge_date(date(2026, 1, 15), 31) == date(2026, 2, 28)


def test_window_opens_thirty_minutes_before_end(store, closer, close_shift):
    window = closeout_service.closeout_window(close_shift)
    assert window.business_date == SHIFT_DATE
    assert window.effective_end_local == "23:00"
    assert window.opens_at_local == "22:30"
    assert window.opens_at_utc == datetime(2026, 3, 11, 3, 30)
    assert not window.is_open(EARLY_NOW)
    assert window.is_open(OPEN_NOW)

    with pytest.raises(ValidationError) as exc_info:
        _draft(close_shift, closer, {"prior_x_report_cents": 50000}, now=EARLY_NOW)
    assert str(exc_info.value) == "Safe closeout opens at 22:30, 30 minutes before scheduled end (23:00)."


def test_overnight_close_window(store, closer, schedule):
    slot = schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=closer.id,
        shift_date=SHIFT_DATE,
        shift_type="close",
        scheduled_start="17:00",
        scheduled_end="01:00",
    )
    shift = make_shift(store, closer, shift_type="close", start=datetime(2026, 3, 10, 22, 0), scheduled_shift=slot)
    window = closeout_service.closeout_window(shift)
    assert window.business_date == SHIFT_DATE
    assert window.effective_end_utc == datetime(2026, 3, 11, 6, 0)
    assert window.opens_at_local == "00:30"


def test_rollover_night_pins_register_close(store, close_shift):
    store_service.update_settings(store.id, sales_rollover_enabled=True)
    store_service.set_rollover_day(store.id, 2, True)
    window = closeout_service.closeout_window(close_shift)
    assert window.rollover_night is True
    assert window.effective_end_local == "22:00"
    assert window.opens_at_local == "21:30"


def test_only_scheduled_closing_shifts(store, employee, closer, open_slot):
    opener = make_shift(store, employee, shift_type="open", start=datetime(2026, 3, 10, 14, 0), scheduled_shift=open_slot)
    with pytest.raises(ValidationError):
        closeout_service.closeout_window(opener)

    unlinked = make_shift(store, closer, shift_type="close", start=datetime(2026, 3, 10, 20, 0))
    with pytest.raises(ValidationError):
        closeout_service.closeout_window(unlinked)


def test_context_prefills_prior_x_from_sales(store, close_shift):
    db.session.add(DailySalesRecord(store_id=store.id, business_date=SHIFT_DATE, prior_x_report_cents=48000))
    db.session.commit()

    context = closeout_service.get_context(close_shift, now=EARLY_NOW)
    assert context["business_date"] == "2026-03-10"
    assert context["prior_x_report_cents"] == 48000
    assert context["window"]["is_open"] is False
    assert context["closeout"] is None


def test_draft_is_resumable_step_by_step(store, closer, close_shift):
    first = _draft(close_shift, closer, {"prior_x_report_cents": 50000})
    assert first.status == "draft"
    assert first.wizard_step == 1

    second = _draft(close_shift, closer, {
        "cash_sales_cents": 100000,
        "expenses": [{"amount_cents": 37, "category": "supplies", "note": "paper towels"}],
    })
    assert second.id == first.id
    assert second.wizard_step == 2
    assert second.prior_x_report_cents == 50000
    assert second.expense_total_cents == 37
    assert second.expected_deposit_cents == 100000

    third = _draft(close_shift, closer, {"denoms": DENOMS_223})
    assert third.wizard_step == 3
    assert third.denom_total_cents == 22300
    assert third.denom_variance_cents == 22300 - 100000

    # Going back in the wizard never lowers the saved step
    again = _draft(close_shift, closer, {"wizard_step": 1})
    assert again.wizard_step == 3
    assert [e.category for e in again.expenses] == ["supplies"]


def test_draft_rejects_wrong_business_date(closer, close_shift):
    with pytest.raises(ValidationError):
        _draft(close_shift, closer, {"business_date": "2026-03-09"})


def test_passing_submit_is_read_only(closer, close_shift):
    result = _submit(close_shift, closer, cash_sales_cents=22300)
    assert result.status == "pass"
    assert result.confirmation is None
    assert result.http_status == 200

    closeout = result.closeout
    assert closeout.expected_deposit_cents == 22300
    assert closeout.actual_deposit_cents == 22300
    assert closeout.variance_cents == 0
    assert closeout.wizard_step == 5
    assert closeout.photos[0].purge_after == date(2026, 4, 8)

    with pytest.raises(ConflictError) as exc_info:
        _draft(close_shift, closer, {"cash_sales_cents": 1})
    assert exc_info.value.code == "READ_ONLY"
    with pytest.raises(ConflictError):
        _submit(close_shift, closer, cash_sales_cents=22300)


def test_submit_falls_back_to_draft_values(closer, close_shift):
    _draft(close_shift, closer, {"cash_sales_cents": 22300, "denoms": DENOMS_223})
    result = closeout_service.submit(
        shift=close_shift,
        payload={"drawer_count_cents": 20000, "photos": SLIP},
        actor_profile_id=closer.id,
        now=OPEN_NOW,
    )
    assert result.status == "pass"


def test_submit_requires_deposit_photo_and_drawer(closer, close_shift):
    with pytest.raises(ValidationError):
        _submit(close_shift, closer, cash_sales_cents=22300, photos=[])
    with pytest.raises(ValidationError):
        _submit(
            close_shift, closer, cash_sales_cents=22300,
            photos=[{"photo_type": "pos_optional", "storage_path": "closeouts/pos.jpg"}],
        )
    with pytest.raises(ValidationError):
        _submit(close_shift, closer, cash_sales_cents=22300, drawer_count_cents=0)


def test_repeated_failures_escalate_to_review(closer, close_shift):
    first = _submit(close_shift, closer, cash_sales_cents=30000)
    assert first.status == "fail"
    assert first.confirmation.code == DEPOSIT_VARIANCE
    assert first.http_status == 400
    assert first.closeout.validation_attempts == 1
    assert first.closeout.requires_manager_review is False
    assert first.to_dict()["requires_justification"] is True

    second = _submit(close_shift, closer, cash_sales_cents=30000)
    assert second.closeout.validation_attempts == 2
    assert second.closeout.requires_manager_review is True

    justified = _submit(close_shift, closer, cash_sales_cents=30000, variance_justification="Bank bag short, called DM")
    assert justified.status == "warn"
    assert justified.closeout.deposit_override_reason == "Bank bag short, called DM"


def test_justified_variance_needs_review(closer, close_shift):
    result = _submit(close_shift, closer, cash_sales_cents=30000, variance_justification="Paid a vendor in cash")
    assert result.status == "warn"
    assert result.closeout.requires_manager_review is True
    assert result.closeout.validation_attempts == 0


def test_small_variance_warns_without_review(closer, close_shift):
    result = _submit(close_shift, closer, cash_sales_cents=22350)
    assert result.closeout.expected_deposit_cents == 22400
    assert result.status == "warn"
    assert result.closeout.requires_manager_review is False


def test_review_locks_and_closes_sales_day(store, closer, manager, close_shift):
    db.session.add(DailySalesRecord(store_id=store.id, business_date=SHIFT_DATE))
    db.session.commit()
    closeout = _submit(close_shift, closer, cash_sales_cents=30000, variance_justification="Short").closeout
    assert closeout_service.list_closeouts({store.id}, needs_review=True) == [closeout]

    locked = closeout_service.review_closeout(closeout_id=closeout.id, manager_profile_id=manager.id, note="Verified")
    assert locked.status == "locked"
    assert locked.requires_manager_review is False
    assert locked.reviewed_by == manager.id
    record = db.session.query(DailySalesRecord).filter_by(store_id=store.id, business_date=SHIFT_DATE).one()
    assert record.closed_at is not None

    again = closeout_service.review_closeout(closeout_id=closeout.id, manager_profile_id=manager.id)
    assert again.reviewed_at == locked.reviewed_at
    assert closeout_service.list_closeouts({store.id}, needs_review=True) == []


def test_draft_cannot_be_reviewed(closer, manager, close_shift):
    draft = _draft(close_shift, closer, {"prior_x_report_cents": 50000})
    with pytest.raises(ValidationError):
        closeout_service.review_closeout(closeout_id=draft.id, manager_profile_id=manager.id)


def test_backfill_and_duplicate(store, manager):
    payload = {
        "business_date": "2026-03-01",
        "cash_sales_cents": 10000,
        "denoms": {"100": 1},
    }
    closeout = closeout_service.backfill(store=store, payload=payload, manager_profile_id=manager.id)
    assert closeout.is_historical_backfill is True
    assert closeout.status == "pass"
    assert closeout.shift_id is None

    with pytest.raises(ConflictError) as exc_info:
        closeout_service.backfill(store=store, payload=payload, manager_profile_id=manager.id)
    assert exc_info.value.code == "DUPLICATE_CLOSEOUT"
