"""prayer journal, faith diary, bible studies and profile fields

Revision ID: 0002_spiritual_features
Revises: 0001_init_tables
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_spiritual_features"
down_revision = "0001_init_tables"
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _owner() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.Uuid(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.add_column("users", sa.Column("avatar_url", sa.String(500), nullable=True))
    op.add_column("users", _timestamp("updated_at"))

    op.create_table(
        "prayers",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("emotions", sa.JSON(), nullable=True),
        sa.Column("minutes_spent", sa.Integer(), nullable=True),
        sa.Column("privacy", sa.String(20), nullable=False, server_default="privada"),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_prayers_user_id", "prayers", ["user_id"])
    op.create_index("ix_prayers_user_created", "prayers", ["user_id", "created_at"])

    op.create_table(
        "diary_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("emotions", sa.JSON(), nullable=True),
        sa.Column("verses", sa.JSON(), nullable=True),
        sa.Column("gratitude", sa.JSON(), nullable=True),
        sa.Column("prayers", sa.JSON(), nullable=True),
        sa.Column("reflections", sa.Text(), nullable=True),
        sa.Column("climate", sa.String(30), nullable=True),
        sa.Column("privacy", sa.String(20), nullable=False, server_default="privada"),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_diary_entries_user_id", "diary_entries", ["user_id"])
    op.create_index(
        "ix_diary_entries_user_created", "diary_entries", ["user_id", "created_at"]
    )

    op.create_table(
        "studies",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("estimated_minutes", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_studies_category", "studies", ["category"])

    op.create_table(
        "study_lessons",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "study_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("verse", sa.Text(), nullable=True),
        sa.Column("reflection", sa.Text(), nullable=False),
        sa.UniqueConstraint("study_id", "number", name="uq_study_lesson_number"),
    )
    op.create_index("ix_study_lessons_study_id", "study_lessons", ["study_id"])

    op.create_table(
        "study_participations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column(
            "study_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("current_lesson", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("answers", sa.JSON(), nullable=True),
        _timestamp("started_at"),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_id", "study_id", name="uq_study_participation_user_study"),
    )
    op.create_index("ix_study_participations_user_id", "study_participations", ["user_id"])
    op.create_index("ix_study_participations_study_id", "study_participations", ["study_id"])


def downgrade() -> None:
    op.drop_table("study_participations")
    op.drop_table("study_lessons")
    op.drop_table("studies")
    op.drop_table("diary_entries")
    op.drop_table("prayers")
    op.drop_column("users", "updated_at")
    op.drop_column("users", "avatar_url")
