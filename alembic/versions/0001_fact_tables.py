"""fact cache, reports and school memories

Revision ID: 0001_fact_tables
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '0001_fact_tables'
down_revision = None
branch_labels = None
depends_on = None


def _has_table(conn, name):
    return inspect(conn).has_table(name)


def upgrade():
    conn = op.get_bind()
    # create_db_and_tables() may already have run at app startup
    if not _has_table(conn, 'cached_facts'):
        op.create_table(
            'cached_facts',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('country', sa.String(), nullable=False),
            sa.Column('graduation_year', sa.Integer(), nullable=False),
            sa.Column('facts_data', sa.JSON(), nullable=False),
            sa.Column('education_system_problems', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('country', 'graduation_year', name='uq_cached_facts_country_year'),
        )
        op.create_index('ix_cached_facts_country', 'cached_facts', ['country'])

    if not _has_table(conn, 'fact_reports'):
        op.create_table(
            'fact_reports',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('fact_hash', sa.String(), nullable=False),
            sa.Column('country', sa.String(), nullable=False),
            sa.Column('graduation_year', sa.Integer(), nullable=False),
            sa.Column('fact_content', sa.String(), nullable=False),
            sa.Column('report_reason', sa.String(), nullable=False),
            sa.Column('user_fingerprint', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('reported_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_fact_reports_fact_hash', 'fact_reports', ['fact_hash'])

    if not _has_table(conn, 'fact_quality_stats'):
        op.create_table(
            'fact_quality_stats',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('fact_hash', sa.String(), nullable=False),
            sa.Column('country', sa.String(), nullable=False),
            sa.Column('graduation_year', sa.Integer(), nullable=False),
            sa.Column('total_reports', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('fact_hash', 'country', 'graduation_year', name='uq_fact_quality_stats_key'),
        )
        op.create_index('ix_fact_quality_stats_fact_hash', 'fact_quality_stats', ['fact_hash'])

    if not _has_table(conn, 'school_memories'):
        op.create_table(
            'school_memories',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('school_name', sa.String(), nullable=False),
            sa.Column('city', sa.String(), nullable=False),
            sa.Column('country', sa.String(), nullable=False),
            sa.Column('graduation_year', sa.Integer(), nullable=False),
            sa.Column('school_memories_data', sa.JSON(), nullable=False),
            sa.Column('shareable_content', sa.JSON(), nullable=False),
            sa.Column('research_sources', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('school_name', 'city', 'graduation_year', name='uq_school_memories_key'),
        )
        op.create_index('ix_school_memories_school_name', 'school_memories', ['school_name'])


def downgrade():
    for table in ('school_memories', 'fact_quality_stats', 'fact_reports', 'cached_facts'):
        op.drop_table(table)
