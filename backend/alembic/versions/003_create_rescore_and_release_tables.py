"""Create rescore audit, pass-cut release, notice and site setting tables

Revision ID: 003
Revises: 002
Create Date: 2026-02-03 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rescore_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("exam_id", sa.Integer(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("track", sa.String(16), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("summary", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_rescore_events_exam_id", "rescore_events", ["exam_id"])

    op.create_table(
        "rescore_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "rescore_event_id",
            sa.Integer(),
            sa.ForeignKey("rescore_events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "submission_id", sa.Integer(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("old_total_score", sa.Float(), nullable=False),
        sa.Column("new_total_score", sa.Float(), nullable=False),
        sa.Column("old_final_score", sa.Float(), nullable=False),
        sa.Column("new_final_score", sa.Float(), nullable=False),
        sa.Column("old_rank", sa.Integer(), nullable=True),
        sa.Column("new_rank", sa.Integer(), nullable=True),
        sa.Column("score_delta", sa.Float(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "rescore_event_id", "submission_id", name="uq_rescore_details_event_submission"
        ),
    )
    op.create_index("ix_rescore_details_user_read", "rescore_details", ["user_id", "is_read"])

    op.create_table(
        "pass_cut_releases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("exam_id", sa.Integer(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("release_number", sa.Integer(), nullable=False),
        sa.Column(
            "released_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("participant_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("source", sa.String(16), nullable=False, server_default="ADMIN"),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("exam_id", "release_number", name="uq_pass_cut_releases_exam_number"),
        sa.CheckConstraint("release_number BETWEEN 1 AND 4", name="ck_pass_cut_releases_number"),
    )

    op.create_table(
        "pass_cut_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "release_id",
            sa.Integer(),
            sa.ForeignKey("pass_cut_releases.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("region_id", sa.Integer(), sa.ForeignKey("regions.id"), nullable=False),
        sa.Column("track", sa.String(16), nullable=False),
        sa.Column("status", sa.String(48), nullable=True),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("participant_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recruit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("applicant_count", sa.Integer(), nullable=True),
        sa.Column("target_participant_count", sa.Integer(), nullable=True),
        sa.Column("coverage_rate", sa.Float(), nullable=True),
        sa.Column("stability_score", sa.Float(), nullable=True),
        sa.Column("average_score", sa.Float(), nullable=True),
        sa.Column("one_multiple_cut_score", sa.Float(), nullable=True),
        sa.Column("sure_min_score", sa.Float(), nullable=True),
        sa.Column("likely_min_score", sa.Float(), nullable=True),
        sa.Column("possible_min_score", sa.Float(), nullable=True),
        sa.UniqueConstraint("release_id", "region_id", "track", name="uq_pass_cut_snapshots_row"),
    )

    op.create_table(
        "notices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "site_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )


def downgrade() -> None:
    op.drop_table("site_settings")
    op.drop_table("notices")
    op.drop_table("pass_cut_snapshots")
    op.drop_table("pass_cut_releases")
    op.drop_index("ix_rescore_details_user_read", table_name="rescore_details")
    op.drop_table("rescore_details")
    op.drop_index("ix_rescore_events_exam_id", table_name="rescore_events")
    op.drop_table("rescore_events")
