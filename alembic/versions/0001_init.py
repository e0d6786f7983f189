"""init schema"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("emergency_contacts", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "deviceregistration",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_id", sa.String(length=64), nullable=False),
        sa.Column("label", sa.String(length=64)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_deviceregistration_user_id", "deviceregistration", ["user_id"])
    op.create_index("ix_deviceregistration_device_id", "deviceregistration", ["device_id"], unique=True)

    op.create_table(
        "telemetry_sample",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_id", sa.String(length=64), nullable=False),
        sa.Column("accel_x", sa.Float(), nullable=False),
        sa.Column("accel_y", sa.Float(), nullable=False),
        sa.Column("accel_z", sa.Float(), nullable=False),
        sa.Column("gyro_x", sa.Float(), nullable=False),
        sa.Column("gyro_y", sa.Float(), nullable=False),
        sa.Column("gyro_z", sa.Float(), nullable=False),
        sa.Column("heart_rate", sa.Float()),
        sa.Column("temperature", sa.Float()),
        sa.Column("battery_level", sa.Float()),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("accuracy", sa.Float()),
        sa.Column("emergency_triggered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fall_detected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_telemetry_sample_user_id", "telemetry_sample", ["user_id"])
    op.create_index("ix_telemetry_sample_device_id", "telemetry_sample", ["device_id"])
    op.create_index("ix_telemetry_sample_created_at", "telemetry_sample", ["created_at"])
    op.create_index("ix_telemetry_user_created", "telemetry_sample", ["user_id", "created_at"])

    op.create_table(
        "activity",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("message", sa.String(length=512), nullable=False),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_user_id", "activity", ["user_id"])
    op.create_index("ix_activity_user_type_created", "activity", ["user_id", "type", "created_at"])


def downgrade() -> None:
    op.drop_table("activity")
    op.drop_table("telemetry_sample")
    op.drop_table("deviceregistration")
    op.drop_table("user")
