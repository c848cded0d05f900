"""Create submissions, user answers, subject scores and final predictions

Revision ID: 002
Revises: 001
Create Date: 2026-02-02 11:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("exam_id", sa.Integer(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("region_id", sa.Integer(), sa.ForeignKey("regions.id"), nullable=False),
        sa.Column("track", sa.String(16), nullable=False),
        sa.Column("gender", sa.String(16), nullable=True),
        sa.Column("exam_number", sa.String(50), nullable=True),
        sa.Column("total_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("bonus_type", sa.String(16), nullable=False, server_default="NONE"),
        sa.Column("bonus_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("final_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("edit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_suspicious", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("suspicious_reasons", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("exam_id", "user_id", name="uq_submissions_exam_user"),
    )
    op.create_index("ix_submissions_exam_region_track", "submissions", ["exam_id", "region_id", "track"])
    op.create_index(
        "ix_submissions_exam_track_final_score", "submissions", ["exam_id", "track", "final_score"]
    )

    op.create_table(
        "user_answers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id", sa.Integer(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("question_number", sa.Integer(), nullable=False),
        sa.Column("selected_answer", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint(
            "submission_id", "subject_id", "question_number", name="uq_user_answers_question"
        ),
    )

    op.create_table(
        "subject_scores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id", sa.Integer(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("raw_score", sa.Float(), nullable=False),
        sa.Column("is_failed", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint("submission_id", "subject_id", name="uq_subject_scores_submission_subject"),
    )
    op.create_index("ix_subject_scores_subject_id", "subject_scores", ["subject_id"])

    op.create_table(
        "final_predictions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("fitness_score", sa.Float(), nullable=True),
        sa.Column("interview_score", sa.Float(), nullable=True),
        sa.Column("interview_grade", sa.String(20), nullable=True),
        sa.Column("final_score", sa.Float(), nullable=True),
        sa.Column("final_rank", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )


def downgrade() -> None:
    op.drop_table("final_predictions")
    op.drop_index("ix_subject_scores_subject_id", table_name="subject_scores")
    op.drop_table("subject_scores")
    op.drop_table("user_answers")
    op.drop_index("ix_submissions_exam_track_final_score", table_name="submissions")
    op.drop_index("ix_submissions_exam_region_track", table_name="submissions")
    op.drop_table("submissions")
