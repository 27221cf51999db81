from shiftkeeper.extensions import db
from shiftkeeper.models import Schedule, ScheduledShift, Store, StoreRolloverConfig


def test_bootstrap_store_and_schedule(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["stores", "create", "--name", "LV2 Mall", "--qr-token", "mall", "--lat", "41.9", "--lon", "-87.6"])
    assert "PASS Created store: LV2 Mall" in result.output
    store = db.session.query(Store).filter_by(name="LV2 Mall").one()
    assert store.latitude == 41.9

    result = runner.invoke(args=["stores", "set-rollover", "--store-id", str(store.id), "--day", "5"])
    assert result.output.startswith("PASS")
    assert db.session.query(StoreRolloverConfig).filter_by(store_id=store.id, day_of_week=5).one().has_rollover

    result = runner.invoke(args=["profiles", "create", "--name", "Dana"])
    assert result.output.startswith("PASS")
    profile_id = int(result.output.split("ID: ")[1].rstrip(")\n"))

    runner.invoke(args=["profiles", "add-membership", "--profile-id", str(profile_id), "--store-id", str(store.id)])
    result = runner.invoke(args=["schedules", "create", "--store-id", str(store.id), "--start", "2026-03-08", "--end", "2026-03-14"])
    assert result.output.startswith("PASS")
    schedule = db.session.query(Schedule).filter_by(store_id=store.id).one()

    result = runner.invoke(args=[
        "schedules", "add-shift", "--schedule-id", str(schedule.id), "--profile-id", str(profile_id),
        "--date", "2026-03-13", "--type", "close", "--start", "17:00", "--end", "00:30",
    ])
    assert "PASS Scheduled shift" in result.output
    assert db.session.query(ScheduledShift).filter_by(schedule_id=schedule.id).count() == 1

    result = runner.invoke(args=["schedules", "publish", "--schedule-id", str(schedule.id)])
    assert result.output.startswith("PASS")
    db.session.refresh(schedule)
    assert schedule.status == "published"


def test_issue_session_prints_token(app, db_session, employee):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["profiles", "issue-session", "--profile-id", str(employee.id)])
    lines = result.output.strip().splitlines()
    assert lines[0].startswith("PASS Session")
    assert len(lines[1]) == 64


def test_invalid_input_reports_fail(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["stores", "set-template", "--store-id", "999", "--day", "1", "--type", "open", "--start", "09:00", "--end", "17:00"])
    assert result.output.startswith("FAIL")
    assert "No shifts found." in runner.invoke(args=["shifts", "open"]).output
