"""initial shift lifecycle and cash reconciliation schema

Revision ID: sk001
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the complete schema from scratch:
- stores, store_settings, store_rollover_config, shift_templates
- profiles, store_memberships, store_managers, session_tokens
- schedules, scheduled_shifts
- shifts (+ partial unique index: one open shift per profile), shift_drawer_counts
- daily_sales_records, shift_sales_counts
- safe_closeouts, safe_closeout_expenses, safe_closeout_photos
- shift_audit_events
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sk001'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def upgrade():
    # ============================================================================
    # Stores and per-store configuration
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False),
        sa.Column('expected_drawer_cents', sa.Integer(), nullable=False),
        sa.Column('qr_token', sa.String(length=64), nullable=True),
        sa.Column('clock_window_class', sa.String(length=16), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stores_qr_token', 'stores', ['qr_token'], unique=True)

    op.create_table(
        'store_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('sales_tracking_enabled', sa.Boolean(), nullable=False),
        sa.Column('sales_rollover_enabled', sa.Boolean(), nullable=False),
        sa.Column('sales_variance_threshold_cents', sa.Integer(), nullable=False),
        sa.Column('expected_change_cents', sa.Integer(), nullable=False),
        sa.Column('safe_deposit_tolerance_cents', sa.Integer(), nullable=False),
        sa.Column('safe_denom_tolerance_cents', sa.Integer(), nullable=False),
        sa.Column('safe_photo_retention_days', sa.Integer(), nullable=False),
        sa.Column('safe_photo_purge_day_of_month', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'store_rollover_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('has_rollover', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'day_of_week', name='uq_store_rollover_config_store_dow'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_rollover_config_store_id', 'store_rollover_config', ['store_id'])

    op.create_table(
        'shift_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('shift_type', sa.String(length=16), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('is_overnight', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'day_of_week', 'shift_type', name='uq_shift_templates_store_dow_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shift_templates_store_id', 'shift_templates', ['store_id'])

    # ============================================================================
    # Profiles, store scope and sessions
    # ============================================================================
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_profiles_is_active', 'profiles', ['is_active'])

    op.create_table(
        'store_memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'profile_id', name='uq_store_memberships_store_profile'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_memberships_store_id', 'store_memberships', ['store_id'])
    op.create_index('ix_store_memberships_profile', 'store_memberships', ['profile_id'])

    op.create_table(
        'store_managers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('granted_by_profile_id', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['granted_by_profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'store_id', name='uq_store_managers_profile_store'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_managers_store_id', 'store_managers', ['store_id'])
    op.create_index('ix_store_managers_profile', 'store_managers', ['profile_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_profile_id', 'session_tokens', ['profile_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_profile_active', 'session_tokens', ['profile_id', 'is_revoked'])

    # ============================================================================
    # Schedules
    # ============================================================================
    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_schedules_store_id', 'schedules', ['store_id'])
    op.create_index('ix_schedules_status', 'schedules', ['status'])
    op.create_index('ix_schedules_store_period', 'schedules', ['store_id', 'period_start'])

    op.create_table(
        'scheduled_shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('schedule_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('shift_type', sa.String(length=16), nullable=False),
        sa.Column('shift_mode', sa.String(length=16), nullable=False),
        sa.Column('scheduled_start', sa.String(length=5), nullable=False),
        sa.Column('scheduled_end', sa.String(length=5), nullable=False),
        sa.ForeignKeyConstraint(['schedule_id'], ['schedules.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_scheduled_shifts_schedule_id', 'scheduled_shifts', ['schedule_id'])
    op.create_index('ix_scheduled_shifts_lookup', 'scheduled_shifts', ['store_id', 'profile_id', 'shift_date'])

    # ============================================================================
    # Shifts and drawer counts
    # ============================================================================
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('shift_type', sa.String(length=16), nullable=False),
        sa.Column('shift_source', sa.String(length=16), nullable=False),
        sa.Column('scheduled_shift_id', sa.Integer(), nullable=True),
        sa.Column('match_reason', sa.String(length=16), nullable=True),
        sa.Column('entered_start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('planned_start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('planned_end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('requires_override', sa.Boolean(), nullable=False),
        sa.Column('override_reason', sa.String(length=32), nullable=True),
        sa.Column('override_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('override_by', sa.Integer(), nullable=True),
        sa.Column('override_note', sa.Text(), nullable=True),
        sa.Column('manual_closed', sa.Boolean(), nullable=False),
        sa.Column('manual_closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manual_closed_by', sa.Integer(), nullable=True),
        sa.Column('manual_close_review_status', sa.String(length=16), nullable=True),
        sa.Column('manual_close_reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manual_close_reviewed_by', sa.Integer(), nullable=True),
        sa.Column('manual_close_review_note', sa.Text(), nullable=True),
        sa.Column('start_weather_condition', sa.String(length=64), nullable=True),
        sa.Column('start_weather_desc', sa.String(length=128), nullable=True),
        sa.Column('start_temp_f', sa.Integer(), nullable=True),
        sa.Column('end_weather_condition', sa.String(length=64), nullable=True),
        sa.Column('end_weather_desc', sa.String(length=128), nullable=True),
        sa.Column('end_temp_f', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['scheduled_shift_id'], ['scheduled_shifts.id']),
        sa.ForeignKeyConstraint(['override_by'], ['profiles.id']),
        sa.ForeignKeyConstraint(['manual_closed_by'], ['profiles.id']),
        sa.ForeignKeyConstraint(['manual_close_reviewed_by'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shifts_store_id', 'shifts', ['store_id'])
    op.create_index('ix_shifts_scheduled_shift_id', 'shifts', ['scheduled_shift_id'])
    op.create_index('ix_shifts_requires_override', 'shifts', ['requires_override'])
    op.create_index('ix_shifts_store_started', 'shifts', ['store_id', 'started_at'])
    # CRITICAL: at most one open shift per profile. Racing clock-ins are
    # resolved here, not in application code.
    op.create_index(
        'uq_shifts_one_open_per_profile',
        'shifts',
        ['profile_id'],
        unique=True,
        sqlite_where=sa.text('ended_at IS NULL'),
        postgresql_where=sa.text('ended_at IS NULL'),
    )

    op.create_table(
        'shift_drawer_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('count_type', sa.String(length=16), nullable=False),
        sa.Column('drawer_cents', sa.Integer(), nullable=False),
        sa.Column('change_cents', sa.Integer(), nullable=True),
        sa.Column('expected_drawer_cents', sa.Integer(), nullable=False),
        sa.Column('confirmed', sa.Boolean(), nullable=False),
        sa.Column('notified_manager', sa.Boolean(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('out_of_threshold', sa.Boolean(), nullable=False),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'count_type', name='uq_shift_drawer_counts_shift_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shift_drawer_counts_shift_id', 'shift_drawer_counts', ['shift_id'])

    # ============================================================================
    # Sales ledger
    # ============================================================================
    op.create_table(
        'daily_sales_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('open_shift_id', sa.Integer(), nullable=True),
        sa.Column('close_shift_id', sa.Integer(), nullable=True),
        sa.Column('open_x_report_cents', sa.Integer(), nullable=True),
        sa.Column('mid_x_report_cents', sa.Integer(), nullable=True),
        sa.Column('close_sales_cents', sa.Integer(), nullable=True),
        sa.Column('z_report_cents', sa.Integer(), nullable=True),
        sa.Column('prior_x_report_cents', sa.Integer(), nullable=True),
        sa.Column('closer_rollover_cents', sa.Integer(), nullable=True),
        sa.Column('opener_rollover_cents', sa.Integer(), nullable=True),
        sa.Column('rollover_cents', sa.Integer(), nullable=True),
        sa.Column('rollover_from_previous_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rollover_to_next_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rollover_mismatch', sa.Boolean(), nullable=False),
        sa.Column('rollover_needs_review', sa.Boolean(), nullable=False),
        sa.Column('is_rollover_night', sa.Boolean(), nullable=False),
        sa.Column('verified_open_sales_cents', sa.Integer(), nullable=True),
        sa.Column('verified_close_sales_cents', sa.Integer(), nullable=True),
        sa.Column('verified_total_cents', sa.Integer(), nullable=True),
        sa.Column('balance_variance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('out_of_balance', sa.Boolean(), nullable=False),
        sa.Column('sales_confirmed', sa.Boolean(), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['open_shift_id'], ['shifts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['close_shift_id'], ['shifts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'business_date', name='uq_daily_sales_records_store_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_daily_sales_records_store_id', 'daily_sales_records', ['store_id'])

    op.create_table(
        'shift_sales_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('daily_sales_record_id', sa.Integer(), nullable=True),
        sa.Column('entry_type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('prior_x_report_cents', sa.Integer(), nullable=True),
        sa.Column('confirmed', sa.Boolean(), nullable=False),
        sa.Column('counted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['daily_sales_record_id'], ['daily_sales_records.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'entry_type', name='uq_shift_sales_counts_shift_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shift_sales_counts_shift_id', 'shift_sales_counts', ['shift_id'])
    op.create_index('ix_shift_sales_counts_daily_sales_record_id', 'shift_sales_counts', ['daily_sales_record_id'])

    # ============================================================================
    # Safe closeouts
    # ============================================================================
    op.create_table(
        'safe_closeouts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('wizard_step', sa.Integer(), nullable=False),
        sa.Column('prior_x_report_cents', sa.Integer(), nullable=True),
        sa.Column('cash_sales_cents', sa.Integer(), nullable=True),
        sa.Column('card_sales_cents', sa.Integer(), nullable=True),
        sa.Column('other_sales_cents', sa.Integer(), nullable=True),
        sa.Column('expense_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expected_deposit_cents', sa.Integer(), nullable=True),
        sa.Column('denoms', sa.JSON(), nullable=True),
        sa.Column('denom_total_cents', sa.Integer(), nullable=True),
        sa.Column('denom_variance_cents', sa.Integer(), nullable=True),
        sa.Column('actual_deposit_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
        sa.Column('drawer_count_cents', sa.Integer(), nullable=True),
        sa.Column('deposit_override_reason', sa.Text(), nullable=True),
        sa.Column('requires_manager_review', sa.Boolean(), nullable=False),
        sa.Column('validation_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_historical_backfill', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'business_date', name='uq_safe_closeouts_store_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_safe_closeouts_store_id', 'safe_closeouts', ['store_id'])
    op.create_index('ix_safe_closeouts_status', 'safe_closeouts', ['status'])
    op.create_index('ix_safe_closeouts_review', 'safe_closeouts', ['requires_manager_review', 'status'])

    op.create_table(
        'safe_closeout_expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('closeout_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['closeout_id'], ['safe_closeouts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_safe_closeout_expenses_closeout_id', 'safe_closeout_expenses', ['closeout_id'])

    op.create_table(
        'safe_closeout_photos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('closeout_id', sa.Integer(), nullable=False),
        sa.Column('photo_type', sa.String(length=32), nullable=False),
        sa.Column('storage_path', sa.String(length=512), nullable=False),
        sa.Column('thumb_path', sa.String(length=512), nullable=True),
        sa.Column('purge_after', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['closeout_id'], ['safe_closeouts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_safe_closeout_photos_closeout_id', 'safe_closeout_photos', ['closeout_id'])

    # ============================================================================
    # shift_audit_events: append-only
    # ============================================================================
    op.create_table(
        'shift_audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_profile_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['actor_profile_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shift_audit_events_store_id', 'shift_audit_events', ['store_id'])
    op.create_index('ix_shift_audit_events_event_type', 'shift_audit_events', ['event_type'])
    op.create_index('ix_shift_audit_events_actor_profile_id', 'shift_audit_events', ['actor_profile_id'])
    op.create_index('ix_shift_audit_store_occurred', 'shift_audit_events', ['store_id', 'occurred_at'])
    op.create_index('ix_shift_audit_entity', 'shift_audit_events', ['entity_type', 'entity_id'])


def downgrade():
    op.drop_table('shift_audit_events')
    op.drop_table('safe_closeout_photos')
    op.drop_table('safe_closeout_expenses')
    op.drop_table('safe_closeouts')
    op.drop_table('shift_sales_counts')
    op.drop_table('daily_sales_records')
    op.drop_table('shift_drawer_counts')
    op.drop_index('uq_shifts_one_open_per_profile', table_name='shifts')
    op.drop_table('shifts')
    op.drop_table('scheduled_shifts')
    op.drop_table('schedules')
    op.drop_table('session_tokens')
    op.drop_table('store_managers')
    op.drop_table('store_memberships')
    op.drop_table('profiles')
    op.drop_table('shift_templates')
    op.drop_table('store_rollover_config')
    op.drop_table('store_settings')
    op.drop_table('stores')
