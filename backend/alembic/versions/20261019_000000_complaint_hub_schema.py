"""Create profiles, roles, workers and complaints tables"""

revision = "20261019_000000"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# Enum labels are the Python member names, as SQLAlchemy stores them
APP_ROLE = sa.Enum("RESIDENT", "ADMINISTRATOR", "WORKER", name="app_role")
STAFF_TYPE = sa.Enum(
    "ELECTRICIAN", "PLUMBER", "CLEANER", "TECHNICIAN", "MAINTENANCE", name="staff_type"
)
COMPLAINT_STATUS = sa.Enum(
    "PENDING", "IN_PROGRESS", "WAITING_CONFIRMATION", "RESOLVED", name="complaint_status"
)
COMPLAINT_PRIORITY = sa.Enum("LOW", "MEDIUM", "HIGH", name="complaint_priority")
COMPLAINT_CATEGORY = sa.Enum(
    "ELECTRICITY",
    "WATER",
    "CLEANING",
    "WIFI",
    "PLUMBING",
    "FURNITURE",
    "OTHER",
    name="complaint_category",
)


def upgrade():
    """Create the complaint workflow tables."""
    op.create_table(
        "profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("hostel_name", sa.String(255)),
        sa.Column("block", sa.String(50)),
        sa.Column("floor", sa.String(50)),
        sa.Column("room_number", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), unique=True, nullable=False, index=True),
        sa.Column("role", APP_ROLE, nullable=False, server_default="RESIDENT"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "workers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), unique=True, nullable=False, index=True),
        sa.Column("worker_type", STAFF_TYPE, nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "complaints",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", COMPLAINT_CATEGORY, nullable=False),
        sa.Column("photo_url", sa.String(1024)),
        sa.Column("status", COMPLAINT_STATUS, nullable=False, server_default="PENDING", index=True),
        sa.Column("priority", COMPLAINT_PRIORITY, nullable=False, server_default="MEDIUM"),
        # Weak reference: worker removal clears it, there is no foreign key
        sa.Column("assigned_worker_id", UUID(as_uuid=True), index=True),
        sa.Column("assigned_staff", sa.String(50)),
        sa.Column("admin_notes", sa.Text),
        sa.Column("hostel_name", sa.String(255)),
        sa.Column("block", sa.String(50)),
        sa.Column("floor", sa.String(50)),
        sa.Column("room_number", sa.String(50)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "assigned_worker_id IS NULL OR status <> 'PENDING'",
            name="ck_complaints_not_assigned_while_pending",
        ),
    )


def downgrade():
    """Drop the complaint workflow tables and their enum types."""
    op.drop_table("complaints")
    op.drop_table("workers")
    op.drop_table("user_roles")
    op.drop_table("profiles")

    bind = op.get_bind()
    for enum_type in (
        COMPLAINT_CATEGORY,
        COMPLAINT_PRIORITY,
        COMPLAINT_STATUS,
        STAFF_TYPE,
        APP_ROLE,
    ):
        enum_type.drop(bind, checkfirst=True)
