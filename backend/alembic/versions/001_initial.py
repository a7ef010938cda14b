"""Initial schema: bookings and reviews

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- bookings ---
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("room_type", sa.String(50), nullable=False),
        sa.Column("check_in", sa.Date, nullable=False),
        sa.Column("check_out", sa.Date, nullable=False),
        sa.Column("guests", sa.Integer, nullable=False),
        sa.Column("breakfast", sa.Boolean, server_default=sa.false()),
        sa.Column("nights", sa.Integer, nullable=False),
        sa.Column("nightly_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="EUR"),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_reference", sa.String(200)),
        sa.Column("payment_url", sa.String(1000)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("confirmation_sent_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("check_in < check_out", name="ck_bookings_stay_not_empty"),
    )
    op.create_index("idx_bookings_room_dates", "bookings", ["room_type", "check_in", "check_out"])
    op.create_index("ix_bookings_payment_status", "bookings", ["payment_status"])

    # Two live bookings of one room may not share a night
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT excl_bookings_room_overlap "
            "EXCLUDE USING gist (room_type WITH =, daterange(check_in, check_out, '[)') WITH &&) "
            "WHERE (payment_status IN ('pending', 'paid'))"
        )

    # --- reviews ---
    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("comment", sa.Text, nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_date", "reviews", ["date"])


def downgrade() -> None:
    op.drop_index("ix_reviews_date", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_bookings_payment_status", table_name="bookings")
    op.drop_index("idx_bookings_room_dates", table_name="bookings")
    op.drop_table("bookings")
