"""Create submissions table

Revision ID: 3f1c9a7b2d40
Revises:
Create Date: 2025-09-01 10:12:44.318207

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7b2d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    status_enum = sa.Enum(
        "new",
        "exported",
        "in_progress",
        "accepted",
        "rejected",
        "archived",
        name="submission_status",
    )

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("form_key", sa.VARCHAR(length=100), nullable=False),
        sa.Column("form_version", sa.VARCHAR(length=50), nullable=True),
        sa.Column("name", sa.VARCHAR(length=255), nullable=True),
        sa.Column("email", sa.VARCHAR(length=255), nullable=True),
        sa.Column("status", status_enum, nullable=False, server_default="new"),
        sa.Column("data", sa.TEXT(), nullable=True),
        sa.Column("pdf_config", sa.TEXT(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_submissions_form_key"), "submissions", ["form_key"], unique=False
    )
    op.create_index(
        op.f("ix_submissions_created_at"), "submissions", ["created_at"], unique=False
    )
    op.create_index(
        op.f("ix_submissions_deleted"), "submissions", ["deleted"], unique=False
    )
    op.create_index(
        "idx_submissions_status_deleted",
        "submissions",
        ["status", "deleted"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_submissions_status_deleted", table_name="submissions")
    op.drop_index(op.f("ix_submissions_deleted"), table_name="submissions")
    op.drop_index(op.f("ix_submissions_created_at"), table_name="submissions")
    op.drop_index(op.f("ix_submissions_form_key"), table_name="submissions")
    op.drop_table("submissions")
    sa.Enum(name="submission_status").drop(op.get_bind(), checkfirst=True)
