"""Initial schema: bookables, bookings and their association table.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Bookables table. Rows are maintained outside the API.
    op.create_table(
        "bookables",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False, server_default=sa.text("''")),
        sa.Column("bookable_type", sa.String(20), nullable=False),
        sa.CheckConstraint("bookable_type IN ('lokal', 'inventarie')", name="check_bookable_type"),
    )
    op.create_index("ix_bookables_id", "bookables", ["id"])
    # Every listing pages through ORDER BY title, id; facilities and
    # inventories add WHERE bookable_type = ... in front of that.
    op.create_index("ix_bookables_type_title_id", "bookables", ["bookable_type", "title", "id"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("booker_id", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("end_time > start_time", name="check_booking_time_range"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_booker_id", "bookings", ["booker_id"])
    op.create_index("ix_bookings_title_id", "bookings", ["title", "id"])

    # Association table: (bookable_id, booking_id) is the primary key, so the
    # bookable -> bookings direction is served by the key itself.
    op.create_table(
        "bookable_bookings",
        sa.Column("bookable_id", sa.Integer(), sa.ForeignKey("bookables.id"), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_bookable_bookings_booking_id", "bookable_bookings", ["booking_id"])


def downgrade() -> None:
    op.drop_table("bookable_bookings")
    op.drop_table("bookings")
    op.drop_table("bookables")
