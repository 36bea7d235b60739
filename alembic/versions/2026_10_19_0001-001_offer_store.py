"""offer store schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Both tables as defined in app/models/database_models.py:
business_profiles, offers.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    offer_status = sa.Enum("draft", "sent", "archived", name="offerstatus")
    offer_status.create(op.get_bind(), checkfirst=True)

    # ── business_profiles ─────────────────────────────────────────────────
    op.create_table(
        "business_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("industry", sa.String(255), nullable=False, server_default=""),
        sa.Column("facts", sa.JSON, nullable=False),
        sa.Column("proof_points", sa.JSON, nullable=False),
        sa.Column("style_examples", sa.JSON, nullable=False),
        sa.Column("branding", sa.JSON, nullable=False),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── offers ────────────────────────────────────────────────────────────
    op.create_table(
        "offers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "business_id",
            sa.String(36),
            sa.ForeignKey("business_profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("client_request", sa.Text, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column(
            "status",
            sa.Enum("draft", "sent", "archived", name="offerstatus", create_type=False),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("offer_data", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            index=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("offers")
    op.drop_table("business_profiles")
    sa.Enum(name="offerstatus").drop(op.get_bind(), checkfirst=True)
