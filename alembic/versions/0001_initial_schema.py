"""initial schema: users, industry insights, resumes, assessments, cover letters

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:40:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

demand_level = sa.Enum("HIGH", "MEDIUM", "LOW", name="demand_level")
market_outlook = sa.Enum("POSITIVE", "NEUTRAL", "NEGATIVE", name="market_outlook")


def upgrade() -> None:
    op.create_table(
        "industry_insights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("industry", sa.String(), nullable=False),
        sa.Column("salary_ranges", sa.JSON(), nullable=False),
        sa.Column("growth_rate", sa.Float(), nullable=False),
        sa.Column("demand_level", demand_level, nullable=False),
        sa.Column("top_skills", sa.JSON(), nullable=False),
        sa.Column("market_outlook", market_outlook, nullable=False),
        sa.Column("key_trends", sa.JSON(), nullable=False),
        sa.Column("recommended_skills", sa.JSON(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("next_update", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_industry_insights_id", "industry_insights", ["id"])
    op.create_index("ix_industry_insights_industry", "industry_insights", ["industry"], unique=True)
    op.create_index("ix_industry_insights_next_update", "industry_insights", ["next_update"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cognito_sub", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("industry", sa.String(), sa.ForeignKey("industry_insights.industry"), nullable=True),
        sa.Column("experience", sa.Integer(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_cognito_sub", "users", ["cognito_sub"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "resumes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_resumes_id", "resumes", ["id"])

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("quiz_score", sa.Float(), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("improvement_tip", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_assessments_id", "assessments", ["id"])
    op.create_index("ix_assessments_user_id", "assessments", ["user_id"])

    op.create_table(
        "cover_letters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("job_title", sa.String(), nullable=False),
        sa.Column("company_name", sa.String(), nullable=False),
        sa.Column("job_description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_cover_letters_id", "cover_letters", ["id"])
    op.create_index("ix_cover_letters_user_id", "cover_letters", ["user_id"])


def downgrade() -> None:
    op.drop_table("cover_letters")
    op.drop_table("assessments")
    op.drop_table("resumes")
    op.drop_table("users")
    op.drop_table("industry_insights")
    demand_level.drop(op.get_bind(), checkfirst=True)
    market_outlook.drop(op.get_bind(), checkfirst=True)
