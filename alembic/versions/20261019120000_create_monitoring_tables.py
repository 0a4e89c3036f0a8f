"""create devices, monitoring_sessions and activity_logs

Revision ID: 20261019120000
Revises:
Create Date: 2026-10-19 12:00:00

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019120000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "devices",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("parent_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("allow_privacy_mode", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("allow_end_call", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_call_duration_minutes", sa.Integer, nullable=True),
        sa.Column("auto_accept_calls", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("admin_locked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_connection_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_devices_id", "devices", ["id"])
    op.create_index("ix_devices_parent_id", "devices", ["parent_id"])

    op.create_table(
        "monitoring_sessions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("session_id", sa.String(length=96), nullable=False),
        sa.Column(
            "device_id",
            sa.String(length=64),
            sa.ForeignKey("devices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("parent_id", sa.String(length=64), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer, nullable=True),
        sa.Column("ended_by", sa.String(length=16), nullable=True),
    )
    op.create_index("ix_monitoring_sessions_id", "monitoring_sessions", ["id"])
    op.create_index(
        "ix_monitoring_sessions_session_id",
        "monitoring_sessions",
        ["session_id"],
        unique=True,
    )
    op.create_index("ix_monitoring_sessions_device_id", "monitoring_sessions", ["device_id"])
    op.create_index("ix_monitoring_sessions_parent_id", "monitoring_sessions", ["parent_id"])
    # no máximo uma sessão aberta por device
    op.create_index(
        "uq_monitoring_sessions_open_device",
        "monitoring_sessions",
        ["device_id"],
        unique=True,
        sqlite_where=sa.text("ended_at IS NULL"),
        postgresql_where=sa.text("ended_at IS NULL"),
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "device_id",
            sa.String(length=64),
            sa.ForeignKey("devices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("parent_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=96), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer, nullable=True),
        sa.Column("details", sa.JSON, nullable=False),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"])
    op.create_index("ix_activity_logs_device_id", "activity_logs", ["device_id"])
    op.create_index("ix_activity_logs_session_id", "activity_logs", ["session_id"])
    op.create_index(
        "uq_activity_logs_ongoing_device",
        "activity_logs",
        ["device_id"],
        unique=True,
        sqlite_where=sa.text("status = 'ongoing'"),
        postgresql_where=sa.text("status = 'ongoing'"),
    )


def downgrade():
    op.drop_index("uq_activity_logs_ongoing_device", table_name="activity_logs")
    op.drop_index("ix_activity_logs_session_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_device_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_id", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_index("uq_monitoring_sessions_open_device", table_name="monitoring_sessions")
    op.drop_index("ix_monitoring_sessions_parent_id", table_name="monitoring_sessions")
    op.drop_index("ix_monitoring_sessions_device_id", table_name="monitoring_sessions")
    op.drop_index("ix_monitoring_sessions_session_id", table_name="monitoring_sessions")
    op.drop_index("ix_monitoring_sessions_id", table_name="monitoring_sessions")
    op.drop_table("monitoring_sessions")

    op.drop_index("ix_devices_parent_id", table_name="devices")
    op.drop_index("ix_devices_id", table_name="devices")
    op.drop_table("devices")
