from datetime import date, datetime

import pytest

from conftest import SHIFT_DATE, make_shift
from shiftkeeper.extensions import db
from shiftkeeper.models import ShiftSalesCount
from shiftkeeper.outcomes import ROLLOVER_MISMATCH, SALES_MISMATCH, is_confirmation
from shiftkeeper.services import sales_checkpoint_service as sales
from shiftkeeper.services import schedule_service, store_service
from shiftkeeper.validation import ConflictError, ValidationError


NEXT_DATE = date(2026, 3, 11)


@pytest.fixture
def open_shift(store, employee, open_slot, sales_enabled):
    return make_shift(store, employee, shift_type="open", start=datetime(2026, 3, 10, 14, 0), scheduled_shift=open_slot)


@pytest.fixture
def close_shift(store, closer, close_slot, sales_enabled):
    return make_shift(store, closer, shift_type="close", start=datetime(2026, 3, 10, 20, 0), scheduled_shift=close_slot)


@pytest.fixture
def rollover_tuesday(store, sales_enabled):
    store_service.update_settings(store.id, sales_rollover_enabled=True)
    store_service.set_rollover_day(store.id, 2, True)


@pytest.fixture
def next_open_shift(store, employee, rollover_tuesday):
    # 09:00 CDT on the 11th, no schedule link
    return make_shift(store, employee, shift_type="open", start=datetime(2026, 3, 11, 14, 0))


def test_compute_balance_formula():
    result = sales.compute_balance(
        open_x_report_cents=50000,
        rollover_from_previous_cents=3000,
        close_sales_cents=70000,
        z_report_cents=117500,
        threshold_cents=100,
    )
    assert result["verified_open_sales_cents"] == 47000
    assert result["verified_total_cents"] == 117000
    assert result["balance_variance_cents"] == -500
    assert result["out_of_balance"] is True


def test_compute_balance_with_missing_end_never_flags():
    result = sales.compute_balance(
        open_x_report_cents=None,
        rollover_from_previous_cents=0,
        close_sales_cents=70000,
        z_report_cents=120000,
        threshold_cents=100,
    )
    assert result["verified_total_cents"] is None
    assert result["out_of_balance"] is False


def test_business_date_prefers_schedule(store, closer, schedule):
    slot = schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=closer.id,
        shift_date=SHIFT_DATE,
        shift_type="close",
        scheduled_start="17:00",
        scheduled_end="01:00",
    )
    # Clocked in after midnight local time, still the 10th's shift
    shift = make_shift(store, closer, shift_type="close", start=datetime(2026, 3, 11, 5, 30), scheduled_shift=slot)
    assert sales.shift_business_date(shift) == SHIFT_DATE

    unlinked = make_shift(
        store, closer, shift_type="close", start=datetime(2026, 3, 11, 5, 30), ended_at=datetime(2026, 3, 11, 7, 0),
    )
    assert sales.shift_business_date(unlinked) == NEXT_DATE


def test_balanced_day(open_shift, close_shift, employee, closer):
    record = sales.submit_x_report(shift=open_shift, x_report_cents=50000, actor_profile_id=employee.id)
    assert record.open_x_report_cents == 50000
    assert record.open_shift_id == open_shift.id

    record = sales.submit_close_checkpoint(
        shift=close_shift, z_report_cents=120000, prior_x_report_cents=50000, actor_profile_id=closer.id,
    )
    assert record.close_sales_cents == 70000
    assert record.verified_open_sales_cents == 50000
    assert record.verified_total_cents == 120000
    assert record.balance_variance_cents == 0
    assert record.out_of_balance is False
    assert db.session.query(ShiftSalesCount).filter_by(shift_id=close_shift.id, entry_type="z_report").one().amount_cents == 120000


def test_unbalanced_z_needs_confirmation(store, open_shift, close_shift, employee, closer):
    sales.submit_x_report(shift=open_shift, x_report_cents=50000, actor_profile_id=employee.id)

    result = sales.submit_close_checkpoint(
        shift=close_shift, z_report_cents=120000, prior_x_report_cents=48000, actor_profile_id=closer.id,
    )
    assert is_confirmation(result)
    assert result.code == SALES_MISMATCH
    assert result.details["balance_variance_cents"] == 2000
    assert sales.get_daily_record(store.id, SHIFT_DATE).z_report_cents is None

    record = sales.submit_close_checkpoint(
        shift=close_shift,
        z_report_cents=120000,
        prior_x_report_cents=48000,
        actor_profile_id=closer.id,
        sales_confirmed=True,
    )
    assert record.out_of_balance is True
    assert record.balance_variance_cents == 2000
    assert record.sales_confirmed is True


def test_variance_at_threshold_is_balanced(open_shift, close_shift, employee, closer):
    sales.submit_x_report(shift=open_shift, x_report_cents=50000, actor_profile_id=employee.id)
    record = sales.submit_close_checkpoint(
        shift=close_shift, z_report_cents=120000, prior_x_report_cents=49900, actor_profile_id=closer.id,
    )
    assert record.balance_variance_cents == 100
    assert record.out_of_balance is False


def test_checkpoint_validation(store, open_shift, close_shift, employee, closer):
    with pytest.raises(ValidationError):
        sales.submit_close_checkpoint(
            shift=close_shift, z_report_cents=1000, prior_x_report_cents=2000, actor_profile_id=closer.id,
        )
    with pytest.raises(ValidationError):
        sales.submit_x_report(shift=close_shift, x_report_cents=1000, actor_profile_id=closer.id)
    with pytest.raises(ValidationError):
        sales.submit_x_report(shift=open_shift, x_report_cents=1000, actor_profile_id=employee.id, mid_shift=True)
    with pytest.raises(ValidationError):
        sales.submit_close_checkpoint(
            shift=open_shift, z_report_cents=2000, prior_x_report_cents=1000, actor_profile_id=employee.id,
        )

    store_service.update_settings(store.id, sales_tracking_enabled=False)
    with pytest.raises(ValidationError):
        sales.submit_close_checkpoint(
            shift=close_shift, z_report_cents=2000, prior_x_report_cents=1000, actor_profile_id=closer.id,
        )


def test_mid_shift_x_report_on_double(store, employee, schedule, sales_enabled):
    slot = schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=employee.id,
        shift_date=SHIFT_DATE,
        shift_type="open",
        shift_mode="double",
        scheduled_start="09:00",
        scheduled_end="22:00",
    )
    shift = make_shift(store, employee, shift_type="double", start=datetime(2026, 3, 10, 14, 0), scheduled_shift=slot)
    sales.submit_x_report(shift=shift, x_report_cents=50000, actor_profile_id=employee.id)
    record = sales.submit_x_report(shift=shift, x_report_cents=80000, actor_profile_id=employee.id, mid_shift=True)
    assert record.open_x_report_cents == 50000
    assert record.mid_x_report_cents == 80000


def test_closed_day_rejects_checkpoints(store, open_shift, employee):
    sales.submit_x_report(shift=open_shift, x_report_cents=50000, actor_profile_id=employee.id)
    sales.close_sales_day(store.id, SHIFT_DATE)
    db.session.commit()

    with pytest.raises(ConflictError) as exc_info:
        sales.submit_x_report(shift=open_shift, x_report_cents=51000, actor_profile_id=employee.id)
    assert exc_info.value.code == "DAY_CLOSED"


def test_matching_rollover_carries_into_next_day(store, close_shift, next_open_shift, closer, employee):
    record = sales.submit_close_checkpoint(
        shift=close_shift, z_report_cents=120000, prior_x_report_cents=50000, actor_profile_id=closer.id,
    )
    assert record.is_rollover_night is True

    first = sales.submit_rollover_entry(shift=close_shift, role="closer", amount_cents=3000, actor_profile_id=closer.id)
    assert first["status"] == "pending"
    assert sales.get_daily_record(store.id, NEXT_DATE) is None

    second = sales.submit_rollover_entry(
        shift=next_open_shift, role="opener", amount_cents=3000, actor_profile_id=employee.id,
    )
    assert second["status"] == "matched"
    assert second["record"].business_date == SHIFT_DATE
    assert second["record"].rollover_to_next_cents == 3000
    assert sales.get_daily_record(store.id, NEXT_DATE).rollover_from_previous_cents == 3000

    sales.submit_x_report(shift=next_open_shift, x_report_cents=40000, actor_profile_id=employee.id)
    assert sales.shift_sales_summary(next_open_shift)["sales_cents"] == 37000
    assert sales.shift_sales_summary(close_shift)["sales_cents"] == 73000


def test_rollover_mismatch_needs_force(store, close_shift, next_open_shift, closer, employee):
    sales.submit_rollover_entry(shift=next_open_shift, role="opener", amount_cents=2500, actor_profile_id=employee.id)

    result = sales.submit_rollover_entry(shift=close_shift, role="closer", amount_cents=3000, actor_profile_id=closer.id)
    assert is_confirmation(result)
    assert result.code == ROLLOVER_MISMATCH
    assert result.http_status == 400
    assert sales.get_daily_record(store.id, SHIFT_DATE).closer_rollover_cents is None

    flagged = sales.submit_rollover_entry(
        shift=close_shift, role="closer", amount_cents=3000, actor_profile_id=closer.id, force_mismatch=True,
    )
    assert flagged["status"] == "saved_with_flag"
    assert flagged["record"].rollover_mismatch is True
    assert flagged["record"].rollover_needs_review is True
    assert sales.get_daily_record(store.id, NEXT_DATE) is None


def test_rollover_only_on_configured_nights(store, open_shift, employee, rollover_tuesday):
    # The opener on the 10th would be entering Monday's carry
    with pytest.raises(ValidationError):
        sales.submit_rollover_entry(shift=open_shift, role="opener", amount_cents=100, actor_profile_id=employee.id)
    with pytest.raises(ValidationError):
        sales.submit_rollover_entry(shift=open_shift, role="manager", amount_cents=100, actor_profile_id=employee.id)
