"""case study persistence: records, version ledger, search projection, audit

Revision ID: 20261019_case_study_persistence
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_case_study_persistence"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "case_studies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_image_url", sa.String(length=1024), nullable=True),
        sa.Column("sections", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'archived')",
            name="case_study_status",
        ),
    )
    op.create_index("ix_case_studies_owner_id", "case_studies", ["owner_id"])
    op.create_index("ix_case_studies_status", "case_studies", ["status"])
    op.create_index("ix_case_studies_order_updated", "case_studies", ["order_index", "updated_at"])

    op.create_table(
        "case_study_versions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "case_study_id",
            sa.Uuid(),
            sa.ForeignKey("case_studies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("content", postgresql.JSONB(), nullable=False),
        sa.Column("change_summary", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("case_study_id", "version_number", name="uq_case_study_versions_number"),
    )
    op.create_index("ix_case_study_versions_case_study_id", "case_study_versions", ["case_study_id"])
    op.create_index("ix_case_study_versions_created_at", "case_study_versions", ["created_at"])
    op.create_index(
        "uq_case_study_versions_one_current",
        "case_study_versions",
        ["case_study_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "version_comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "version_id",
            sa.Uuid(),
            sa.ForeignKey("case_study_versions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
    )
    op.create_index("ix_version_comments_version_id", "version_comments", ["version_id"])
    op.create_index("ix_version_comments_user_id", "version_comments", ["user_id"])

    op.create_table(
        "search_index",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("content_type", sa.String(length=50), nullable=False),
        sa.Column("content_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=True),
        sa.Column("search_vector", postgresql.TSVECTOR(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.UniqueConstraint("content_type", "content_id", name="uq_search_index_content"),
        sa.CheckConstraint(
            "content_type IN ('case_study', 'project', 'template')",
            name="ck_search_index_content_type",
        ),
    )
    op.create_index("ix_search_index_content_type", "search_index", ["content_type"])
    op.create_index("ix_search_index_content_id", "search_index", ["content_id"])
    op.create_index("ix_search_index_owner_id", "search_index", ["owner_id"])
    op.create_index(
        "ix_search_index_search_vector",
        "search_index",
        ["search_vector"],
        postgresql_using="gin",
    )

    op.create_table(
        "action_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=120), nullable=True),
        sa.Column("from_state", sa.String(length=64), nullable=True),
        sa.Column("to_state", sa.String(length=64), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("details_json", postgresql.JSONB(), nullable=True),
        sa.Column("actor_user_id", sa.String(length=64), nullable=True),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_action_audit_logs_action", "action_audit_logs", ["action"])
    op.create_index("ix_action_audit_logs_entity_type", "action_audit_logs", ["entity_type"])
    op.create_index("ix_action_audit_logs_entity_id", "action_audit_logs", ["entity_id"])
    op.create_index("ix_action_audit_logs_actor_user_id", "action_audit_logs", ["actor_user_id"])
    op.create_index("ix_action_audit_logs_correlation_id", "action_audit_logs", ["correlation_id"])
    op.create_index("ix_action_audit_logs_request_id", "action_audit_logs", ["request_id"])
    op.create_index("ix_action_audit_logs_created_at", "action_audit_logs", ["created_at"])
    op.create_index(
        "ix_action_audit_entity_created",
        "action_audit_logs",
        ["entity_type", "entity_id", "created_at"],
    )


def downgrade():
    op.drop_table("action_audit_logs")
    op.drop_index("ix_search_index_search_vector", table_name="search_index")
    op.drop_table("search_index")
    op.drop_table("version_comments")
    op.drop_table("case_study_versions")
    op.drop_table("case_studies")
