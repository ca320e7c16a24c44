"""initial schema - vendors, rfps, dispatch records, proposals, scores

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

For databases already created by the app's startup create_all:
run `alembic stamp 001_initial` (skip DDL, just mark as current).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_vendors_email", "vendors", ["email"], unique=True)

    op.create_table(
        "rfps",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("budget", sa.Numeric(14, 2)),
        sa.Column("deadline", sa.Date()),
        sa.Column("delivery_date", sa.Date()),
        sa.Column("payment_terms", sa.String(255)),
        sa.Column("warranty_period", sa.String(255)),
        sa.Column("requirements", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        *_timestamps(),
    )
    op.create_index("ix_rfps_status", "rfps", ["status"])
    op.create_index("ix_rfps_created", "rfps", ["created_at"])

    op.create_table(
        "rfp_vendors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rfp_id", sa.Integer(), sa.ForeignKey("rfps.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sent_at", sa.DateTime()),
        sa.Column("email_subject", sa.String(500)),
        sa.Column("email_body", sa.Text()),
        sa.Column("email_message_id", sa.String(500)),
        sa.UniqueConstraint("rfp_id", "vendor_id", name="uq_rfp_vendor"),
    )
    op.create_index("ix_rfp_vendors_vendor_sent", "rfp_vendors", ["vendor_id", "sent_at"])

    op.create_table(
        "proposals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rfp_id", sa.Integer(), sa.ForeignKey("rfps.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email_message_id", sa.String(500)),
        sa.Column("email_subject", sa.String(500)),
        sa.Column("email_body", sa.Text()),
        sa.Column("total_price", sa.Numeric(14, 2)),
        sa.Column("line_items", sa.Text()),
        sa.Column("payment_terms", sa.String(255)),
        sa.Column("warranty_period", sa.String(255)),
        sa.Column("delivery_date", sa.Date()),
        sa.Column("additional_notes", sa.Text()),
        sa.Column("extracted_data", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("rfp_id", "vendor_id", name="uq_proposal_rfp_vendor"),
    )
    op.create_index("ix_proposals_rfp", "proposals", ["rfp_id"])

    op.create_table(
        "proposal_scores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "proposal_id",
            sa.Integer(),
            sa.ForeignKey("proposals.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("overall_score", sa.Float()),
        sa.Column("price_score", sa.Float()),
        sa.Column("terms_score", sa.Float()),
        sa.Column("completeness_score", sa.Float()),
        sa.Column("recommendation_reason", sa.Text()),
        sa.Column("ai_analysis", sa.Text()),
        sa.Column("created_at", sa.DateTime()),
    )


def downgrade() -> None:
    """Drop all tables. DESTRUCTIVE — only for dev/test environments."""
    op.drop_table("proposal_scores")
    op.drop_table("proposals")
    op.drop_index("ix_rfp_vendors_vendor_sent", table_name="rfp_vendors")
    op.drop_table("rfp_vendors")
    op.drop_table("rfps")
    op.drop_table("vendors")
