"""Initial schema: ad inventory, watch ledger, profiles, withdrawals.

Also creates the role projection, app settings and the admin audit log,
and seeds the default app settings.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Ads ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ads (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(100) NOT NULL,
            description VARCHAR(500),
            ad_type VARCHAR(16) NOT NULL DEFAULT 'video',
            video_url TEXT NOT NULL DEFAULT '',
            image_url TEXT,
            link_url TEXT,
            duration INTEGER NOT NULL,
            reward_amount NUMERIC(14, 6) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            placement JSON NOT NULL DEFAULT '["watch_page"]',
            priority INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ,
            CONSTRAINT ck_ads_duration_positive CHECK (duration > 0),
            CONSTRAINT ck_ads_reward_non_negative CHECK (reward_amount >= 0)
        )
    """)

    # --- Profiles (ledger aggregate) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            user_id VARCHAR(36) PRIMARY KEY,
            full_name VARCHAR(128),
            avatar_url TEXT,
            total_earnings NUMERIC(14, 6) NOT NULL DEFAULT 0,
            total_watch_time INTEGER NOT NULL DEFAULT 0,
            ads_watched INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_streak_date DATE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_profiles_earnings_non_negative CHECK (total_earnings >= 0),
            CONSTRAINT ck_profiles_watch_time_non_negative CHECK (total_watch_time >= 0),
            CONSTRAINT ck_profiles_ads_watched_non_negative CHECK (ads_watched >= 0)
        )
    """)

    # --- Watch ledger (append-only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS watch_history (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            ad_id VARCHAR(36) REFERENCES ads(id) ON DELETE SET NULL,
            watch_time INTEGER NOT NULL,
            earned_amount NUMERIC(14, 6) NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_watch_history_watch_time_non_negative CHECK (watch_time >= 0),
            CONSTRAINT ck_watch_history_earned_non_negative CHECK (earned_amount >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_watch_history_user_created
        ON watch_history(user_id, created_at)
    """)

    # --- Withdrawals ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS withdrawals (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            amount NUMERIC(14, 6) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            payment_method VARCHAR(32) NOT NULL,
            payment_details TEXT NOT NULL,
            admin_notes TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            processed_at TIMESTAMPTZ,
            CONSTRAINT ck_withdrawals_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_withdrawals_status_valid CHECK (status IN ('pending', 'approved', 'rejected'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_withdrawals_user_status
        ON withdrawals(user_id, status)
    """)

    # --- Roles, settings, audit ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_roles (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            CONSTRAINT uq_user_roles_user_id UNIQUE (user_id, role)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_roles_user_id ON user_roles(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS app_settings (
            key VARCHAR(64) PRIMARY KEY,
            value TEXT NOT NULL,
            description TEXT,
            updated_at TIMESTAMPTZ
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS admin_audit_log (
            id VARCHAR(36) PRIMARY KEY,
            actor_user_id VARCHAR(36) NOT NULL,
            action VARCHAR(64) NOT NULL,
            resource_type VARCHAR(32) NOT NULL,
            resource_id VARCHAR(64),
            meta JSON NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_admin_audit_log_actor_user_id ON admin_audit_log(actor_user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_admin_audit_log_action ON admin_audit_log(action)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_admin_audit_log_resource_id ON admin_audit_log(resource_id)")

    # --- Default settings ---
    op.execute("""
        INSERT INTO app_settings (key, value, description, updated_at) VALUES
            ('min_withdrawal', '100', 'Smallest withdrawal amount a user may request', NOW()),
            ('revenue_share_percent', '50', 'Share of ad revenue paid out to viewers (display only)', NOW()),
            ('landing_text', '', 'Landing page copy', NOW()),
            ('how_it_works_content', '', 'How-it-works page copy', NOW())
        ON CONFLICT (key) DO NOTHING
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS admin_audit_log")
    op.execute("DROP TABLE IF EXISTS app_settings")
    op.execute("DROP TABLE IF EXISTS user_roles")
    op.execute("DROP TABLE IF EXISTS withdrawals")
    op.execute("DROP TABLE IF EXISTS watch_history")
    op.execute("DROP TABLE IF EXISTS profiles")
    op.execute("DROP TABLE IF EXISTS ads")
