"""Create users, exams, regions, subjects and answer keys

Revision ID: 001
Revises:
Create Date: 2026-02-02 10:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="USER"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "exams",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_exams_is_active", "exams", ["is_active"])

    op.create_table(
        "regions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("recruit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recruit_count_career", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("applicant_count", sa.Integer(), nullable=True),
        sa.Column("applicant_count_career", sa.Integer(), nullable=True),
        sa.CheckConstraint("recruit_count >= 0", name="ck_regions_recruit_count"),
        sa.CheckConstraint("recruit_count_career >= 0", name="ck_regions_recruit_count_career"),
    )

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("track", sa.String(16), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("question_count", sa.Integer(), nullable=False),
        sa.Column("point_per_question", sa.Float(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.UniqueConstraint("track", "name", name="uq_subjects_track_name"),
    )

    op.create_table(
        "answer_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("exam_id", sa.Integer(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "subject_id", sa.Integer(), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("question_number", sa.Integer(), nullable=False),
        sa.Column("correct_answer", sa.Integer(), nullable=False),
        sa.Column("is_confirmed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "exam_id", "subject_id", "question_number", name="uq_answer_keys_exam_subject_question"
        ),
        sa.CheckConstraint("correct_answer BETWEEN 1 AND 4", name="ck_answer_keys_correct_answer"),
    )
    op.create_index("ix_answer_keys_exam_id", "answer_keys", ["exam_id"])

    # Rule-table subjects for both tracks
    subjects = sa.table(
        "subjects",
        sa.column("track", sa.String),
        sa.column("name", sa.String),
        sa.column("question_count", sa.Integer),
        sa.column("point_per_question", sa.Float),
        sa.column("max_score", sa.Float),
    )
    op.bulk_insert(
        subjects,
        [
            {"track": "PUBLIC", "name": "헌법", "question_count": 20, "point_per_question": 2.5, "max_score": 50.0},
            {"track": "PUBLIC", "name": "형사법", "question_count": 40, "point_per_question": 2.5, "max_score": 100.0},
            {"track": "PUBLIC", "name": "경찰학", "question_count": 40, "point_per_question": 2.5, "max_score": 100.0},
            {"track": "CAREER", "name": "범죄학", "question_count": 20, "point_per_question": 2.5, "max_score": 50.0},
            {"track": "CAREER", "name": "형사법", "question_count": 40, "point_per_question": 2.5, "max_score": 100.0},
            {"track": "CAREER", "name": "경찰학", "question_count": 40, "point_per_question": 2.5, "max_score": 100.0},
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_answer_keys_exam_id", table_name="answer_keys")
    op.drop_table("answer_keys")
    op.drop_table("subjects")
    op.drop_table("regions")
    op.drop_index("ix_exams_is_active", table_name="exams")
    op.drop_table("exams")
    op.drop_table("users")
