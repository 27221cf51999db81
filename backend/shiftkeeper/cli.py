# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/shiftkeeper/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Stores:
# - python -m flask stores list
# - python -m flask stores create --name "LV1 Main St" --timezone America/Chicago --qr-token main-st
# - python -m flask stores set-rollover --store-id 1 --day 5 --enabled
#   Day of week: 0 = Sunday ... 6 = Saturday.
# - python -m flask stores configure --store-id 1 --sales-tracking --rollover
# - python -m flask stores set-template --store-id 1 --day 1 --type open --start 09:00 --end 17:00
#
# Profiles:
# - python -m flask profiles create --name "Dana"
# - python -m flask profiles add-membership --profile-id 2 --store-id 1
# - python -m flask profiles grant-manager --profile-id 1 --store-id 1
# - python -m flask profiles issue-session --profile-id 1 --kind manager
#   Registers a session handed over by the login service and prints the token.
#
# Schedules:
# - python -m flask schedules create --store-id 1 --start 2026-03-01 --end 2026-03-07
# - python -m flask schedules add-shift --schedule-id 1 --profile-id 2 --date 2026-03-02 --type open --start 09:00 --end 17:00
# - python -m flask schedules publish --schedule-id 1
#
# Inspection:
# - python -m flask shifts open [--store-id 1]
# - python -m flask shifts pending-overrides [--store-id 1]
# - python -m flask closeouts pending-review [--store-id 1]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Profile, Schedule, Store
from .services import closeout_service, schedule_service, session_service, store_access_service, store_service
from .services import timekeeping_service
from .time_utils import to_utc_z, utcnow


def _store_ids(store_id):
    if store_id:
        return {store_id}
    return {row[0] for row in db.session.query(Store.id).all()}


@click.group('stores')
def stores_group():
    """Store bootstrap and configuration commands."""


@stores_group.command('list')
@with_appcontext
def list_stores_cli():
    """List stores with their clock-window class and rollover settings."""
    stores = db.session.query(Store).order_by(Store.id).all()
    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Timezone':<20} {'Class':<6} {'Float':<10} {'Sales':<6} {'Rollover'}")
    click.echo("="*90)
    for store in stores:
        settings = store_service.get_settings(store.id)
        click.echo(
            f"{store.id:<5} {store.name:<25} {store.timezone:<20} {store.clock_window_class or '-':<6} "
            f"{store.expected_drawer_cents:<10} {'Yes' if settings.sales_tracking_enabled else 'No':<6} "
            f"{'Yes' if settings.sales_rollover_enabled else 'No'}"
        )
    click.echo("="*90 + "\n")


@stores_group.command('create')
@click.option('--name', required=True, help='Store name (LV1/LV2 prefix selects the clock-window class)')
@click.option('--timezone', default='America/Chicago', show_default=True)
@click.option('--float-cents', 'expected_drawer_cents', type=int, default=20000, show_default=True)
@click.option('--qr-token', help='Kiosk QR token')
@click.option('--window-class', type=click.Choice(['LV1', 'LV2']), help='Clock-window class override')
@click.option('--lat', type=float, help='Latitude for weather')
@click.option('--lon', type=float, help='Longitude for weather')
@with_appcontext
def create_store_cli(name, timezone, expected_drawer_cents, qr_token, window_class, lat, lon):
    """Create a store."""
    try:
        store = store_service.create_store(
            name,
            timezone=timezone,
            expected_drawer_cents=expected_drawer_cents,
            qr_token=qr_token,
            clock_window_class=window_class,
        )
        if lat is not None and lon is not None:
            store_service.set_location(store.id, latitude=lat, longitude=lon)
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@stores_group.command('set-rollover')
@click.option('--store-id', type=int, required=True)
@click.option('--day', type=click.IntRange(0, 6), required=True, help='0 = Sunday ... 6 = Saturday')
@click.option('--enabled/--disabled', default=True)
@with_appcontext
def set_rollover_cli(store_id, day, enabled):
    """Mark a day of week as a rollover night."""
    try:
        store_service.set_rollover_day(store_id, day, enabled)
        click.echo(f"PASS Store {store_id} day {day}: rollover {'on' if enabled else 'off'}")
    except (ValueError, LookupError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@stores_group.command('configure')
@click.option('--store-id', type=int, required=True)
@click.option('--sales-tracking/--no-sales-tracking', default=None)
@click.option('--rollover/--no-rollover', default=None)
@click.option('--variance-threshold-cents', type=int)
@click.option('--deposit-tolerance-cents', type=int)
@with_appcontext
def configure_store_cli(store_id, sales_tracking, rollover, variance_threshold_cents, deposit_tolerance_cents):
    """Update per-store sales and safe settings."""
    changes = {}
    if sales_tracking is not None:
        changes["sales_tracking_enabled"] = sales_tracking
    if rollover is not None:
        changes["sales_rollover_enabled"] = rollover
    if variance_threshold_cents is not None:
        changes["sales_variance_threshold_cents"] = variance_threshold_cents
    if deposit_tolerance_cents is not None:
        changes["safe_deposit_tolerance_cents"] = deposit_tolerance_cents
    if not changes:
        click.echo("Nothing to change.")
        return
    try:
        store_service.update_settings(store_id, **changes)
        click.echo(f"PASS Updated store {store_id}: {', '.join(sorted(changes))}")
    except (ValueError, LookupError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@stores_group.command('set-template')
@click.option('--store-id', type=int, required=True)
@click.option('--day', type=click.IntRange(0, 6), required=True)
@click.option('--type', 'shift_type', type=click.Choice(['open', 'close']), required=True)
@click.option('--start', 'start_time', required=True, help='HH:MM local')
@click.option('--end', 'end_time', required=True, help='HH:MM local')
@with_appcontext
def set_template_cli(store_id, day, shift_type, start_time, end_time):
    """Set the template hours used to infer unscheduled shift types."""
    try:
        row = store_service.set_shift_template(
            store_id, day=day, shift_type=shift_type, start_time=start_time, end_time=end_time,
        )
        click.echo(f"PASS Template {row.shift_type} {row.start_time}-{row.end_time} (day {row.day_of_week})")
    except (ValueError, LookupError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@click.group('profiles')
def profiles_group():
    """Employee / manager profile commands."""


@profiles_group.command('create')
@click.option('--name', required=True)
@with_appcontext
def create_profile_cli(name):
    try:
        profile = store_access_service.create_profile(name)
        click.echo(f"PASS Created profile: {profile.display_name} (ID: {profile.id})")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@profiles_group.command('add-membership')
@click.option('--profile-id', type=int, required=True)
@click.option('--store-id', type=int, required=True)
@with_appcontext
def add_membership_cli(profile_id, store_id):
    try:
        store_access_service.add_membership(profile_id=profile_id, store_id=store_id)
        click.echo(f"PASS Profile {profile_id} assigned to store {store_id}")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@profiles_group.command('grant-manager')
@click.option('--profile-id', type=int, required=True)
@click.option('--store-id', type=int, required=True)
@click.option('--granted-by', type=int, help='Granting profile ID')
@with_appcontext
def grant_manager_cli(profile_id, store_id, granted_by):
    try:
        store_access_service.grant_manager_access(
            profile_id=profile_id, store_id=store_id, granted_by_profile_id=granted_by,
        )
        click.echo(f"PASS Profile {profile_id} manages store {store_id}")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@profiles_group.command('issue-session')
@click.option('--profile-id', type=int, required=True)
@click.option('--kind', type=click.Choice(list(session_service.SESSION_KINDS)), default='employee', show_default=True)
@click.option('--store-id', type=int, help='Pin an employee session to one store')
@with_appcontext
def issue_session_cli(profile_id, kind, store_id):
    """DEV: register a session without the external login service and print its token."""
    try:
        session, token = session_service.register_session(profile_id, kind=kind, store_id=store_id)
        click.echo(f"PASS Session {session.id} expires {to_utc_z(session.expires_at)}")
        click.echo(token)
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@click.group('schedules')
def schedules_group():
    """Schedule bootstrap commands."""


@schedules_group.command('create')
@click.option('--store-id', type=int, required=True)
@click.option('--start', 'period_start', type=click.DateTime(formats=['%Y-%m-%d']), required=True)
@click.option('--end', 'period_end', type=click.DateTime(formats=['%Y-%m-%d']), required=True)
@with_appcontext
def create_schedule_cli(store_id, period_start, period_end):
    try:
        store_service.get_store(store_id)
        schedule = schedule_service.create_schedule(
            store_id=store_id, period_start=period_start.date(), period_end=period_end.date(),
        )
        click.echo(f"PASS Created draft schedule {schedule.id}")
    except (ValueError, LookupError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@schedules_group.command('add-shift')
@click.option('--schedule-id', type=int, required=True)
@click.option('--profile-id', type=int, required=True)
@click.option('--date', 'shift_date', type=click.DateTime(formats=['%Y-%m-%d']), required=True)
@click.option('--type', 'shift_type', type=click.Choice(['open', 'close']), required=True)
@click.option('--mode', 'shift_mode', type=click.Choice(['standard', 'double', 'other']), default='standard')
@click.option('--start', 'scheduled_start', required=True, help='HH:MM local')
@click.option('--end', 'scheduled_end', required=True, help='HH:MM local')
@with_appcontext
def add_shift_cli(schedule_id, profile_id, shift_date, shift_type, shift_mode, scheduled_start, scheduled_end):
    schedule = db.session.get(Schedule, schedule_id)
    if not schedule:
        click.echo(f"FAIL Schedule {schedule_id} not found")
        return
    if not db.session.get(Profile, profile_id):
        click.echo(f"FAIL Profile {profile_id} not found")
        return
    try:
        row = schedule_service.add_scheduled_shift(
            schedule=schedule,
            profile_id=profile_id,
            shift_date=shift_date.date(),
            shift_type=shift_type,
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            shift_mode=shift_mode,
        )
        click.echo(f"PASS Scheduled shift {row.id}: {row.resolved_type} {row.scheduled_start}-{row.scheduled_end}")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@schedules_group.command('publish')
@click.option('--schedule-id', type=int, required=True)
@with_appcontext
def publish_schedule_cli(schedule_id):
    schedule = db.session.get(Schedule, schedule_id)
    if not schedule:
        click.echo(f"FAIL Schedule {schedule_id} not found")
        return
    schedule_service.publish_schedule(schedule, published_at=utcnow())
    click.echo(f"PASS Published schedule {schedule.id}")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


def _echo_shifts(shifts):
    if not shifts:
        click.echo("No shifts found.")
        return
    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Store':<6} {'Profile':<8} {'Type':<8} {'Started':<22} {'Ended':<22} {'Override'}")
    click.echo("="*100)
    for shift in shifts:
        click.echo(
            f"{shift.id:<6} {shift.store_id:<6} {shift.profile_id:<8} {shift.shift_type:<8} "
            f"{to_utc_z(shift.started_at):<22} {to_utc_z(shift.ended_at) or '-':<22} "
            f"{shift.override_reason or '-' if shift.requires_override else '-'}"
        )
    click.echo("="*100 + "\n")


@shifts_group.command('open')
@click.option('--store-id', type=int, help='Filter by store ID')
@with_appcontext
def open_shifts_cli(store_id):
    _echo_shifts(timekeeping_service.list_open_shifts(_store_ids(store_id)))


@shifts_group.command('pending-overrides')
@click.option('--store-id', type=int, help='Filter by store ID')
@with_appcontext
def pending_overrides_cli(store_id):
    _echo_shifts(timekeeping_service.list_pending_overrides(_store_ids(store_id)))


@click.group('closeouts')
def closeouts_group():
    """Safe closeout inspection commands."""


@closeouts_group.command('pending-review')
@click.option('--store-id', type=int, help='Filter by store ID')
@click.option('--since', type=click.DateTime(formats=['%Y-%m-%d']), help='Earliest business date')
@with_appcontext
def pending_review_cli(store_id, since):
    closeouts = closeout_service.list_closeouts(
        _store_ids(store_id),
        needs_review=True,
        start=since.date() if since else None,
    )
    if not closeouts:
        click.echo("No closeouts awaiting review.")
        return
    for c in closeouts:
        click.echo(
            f"{c.id:<6} store={c.store_id:<4} date={c.business_date.isoformat()} status={c.status:<6} "
            f"variance={c.variance_cents} attempts={c.validation_attempts}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(stores_group)
    app.cli.add_command(profiles_group)
    app.cli.add_command(schedules_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(closeouts_group)
