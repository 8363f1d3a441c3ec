"""Create profiles, challenges and solutions tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema for the solution lifecycle.
How:   PostgreSQL UUID keys, TIMESTAMP WITH TIME ZONE, enum-like status
       columns stored as VARCHAR (values mirror the Python enums).

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, comment="student, architect, company"),
        sa.Column("display_name", sa.String(200), nullable=False, server_default=sa.text("''")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role", name="uq_profiles_user_role"),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"])

    op.create_table(
        "challenges",
        _uuid_pk(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'active'"),
            comment="draft, active, closed",
        ),
        sa.Column("deadline", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("max_winners", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("max_winners >= 1", name="ck_challenges_max_winners_positive"),
    )
    op.create_index("ix_challenges_company_id", "challenges", ["company_id"])

    op.create_table(
        "solutions",
        _uuid_pk(),
        sa.Column("challenge_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("challenges.id"), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("submission_url", sa.String(2048), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'submitted'"),
            comment="submitted, claimed, approved, rejected, selected",
        ),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("company_feedback", sa.Text(), nullable=True),
        sa.Column("selection_reason", sa.Text(), nullable=True),
        sa.Column("selected_at", sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # A bound reviewer exists exactly when the solution has left SUBMITTED
        sa.CheckConstraint(
            "(status = 'submitted') = (reviewer_id IS NULL)",
            name="ck_solutions_reviewer_matches_status",
        ),
    )
    op.create_index("idx_solutions_student_created", "solutions", ["student_id", "created_at"])
    op.create_index("idx_solutions_challenge_status", "solutions", ["challenge_id", "status"])
    op.create_index("idx_solutions_reviewer", "solutions", ["reviewer_id"])


def downgrade() -> None:
    op.drop_index("idx_solutions_reviewer", table_name="solutions")
    op.drop_index("idx_solutions_challenge_status", table_name="solutions")
    op.drop_index("idx_solutions_student_created", table_name="solutions")
    op.drop_table("solutions")
    op.drop_index("ix_challenges_company_id", table_name="challenges")
    op.drop_table("challenges")
    op.drop_index("ix_profiles_user_id", table_name="profiles")
    op.drop_table("profiles")
