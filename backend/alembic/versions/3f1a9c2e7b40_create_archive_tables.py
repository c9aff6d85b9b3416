"""create_archive_tables

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2025-10-02 09:14:27.118240

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('incidents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('incident_code', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('city', sa.Text(), nullable=False),
        sa.Column('state', sa.String(length=2), nullable=False),
        sa.Column('location_type', sa.Text(), nullable=False),
        sa.Column('fatalities', sa.Integer(), nullable=False),
        sa.Column('injuries', sa.Integer(), nullable=False),
        sa.Column('involves_children', sa.Boolean(), nullable=False),
        sa.Column('involves_women_and_children', sa.Boolean(), nullable=False),
        sa.Column('hate_crime', sa.Boolean(), nullable=False),
        sa.Column('hate_crime_target', sa.Text(), nullable=True),
        sa.Column('context', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('last_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('incident_code')
    )
    op.create_index('ix_incidents_date', 'incidents', ['date'], unique=False)
    op.create_index('ix_incidents_state_date', 'incidents', ['state', 'date'], unique=False)
    op.create_index('ix_incidents_is_published', 'incidents', ['is_published'], unique=False)

    op.create_table('suspects',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('incident_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.Text(), nullable=False),
        sa.Column('race', sa.Text(), nullable=False),
        sa.Column('nationality', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('motive', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['incident_id'], ['incidents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_suspects_incident_id'), 'suspects', ['incident_id'], unique=False)

    op.create_table('suspect_weapons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('suspect_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('legally_purchased', sa.Boolean(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['suspect_id'], ['suspects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_suspect_weapons_id'), 'suspect_weapons', ['id'], unique=False)
    op.create_index(op.f('ix_suspect_weapons_suspect_id'), 'suspect_weapons', ['suspect_id'], unique=False)

    op.create_table('suspect_prior_history',
        sa.Column('suspect_id', sa.String(length=36), nullable=False),
        sa.Column('criminal_record', sa.Boolean(), nullable=True),
        sa.Column('prior_mental_health_issues', sa.Boolean(), nullable=True),
        sa.Column('prior_domestic_violence', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['suspect_id'], ['suspects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('suspect_id')
    )

    op.create_table('legislation',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('law_code', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('jurisdiction', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('last_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('law_code')
    )
    op.create_index('ix_legislation_jurisdiction', 'legislation', ['jurisdiction'], unique=False)
    op.create_index('ix_legislation_jurisdiction_category', 'legislation', ['jurisdiction', 'category'], unique=False)
    op.create_index('ix_legislation_is_published', 'legislation', ['is_published'], unique=False)

    op.create_table('corrections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('incident_id', sa.String(length=36), nullable=True),
        sa.Column('legislation_id', sa.String(length=36), nullable=True),
        sa.Column('correction_type', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('suggested_correction', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('submitted_by', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['incident_id'], ['incidents.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['legislation_id'], ['legislation.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_corrections_id'), 'corrections', ['id'], unique=False)

    op.create_table('admin_allowlist',
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('added_by', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('email')
    )

    op.create_table('audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_name', sa.Text(), nullable=False),
        sa.Column('row_id', sa.Text(), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('actor_email', sa.Text(), nullable=True),
        sa.Column('at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('diff', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_log_id'), 'audit_log', ['id'], unique=False)
    op.create_index(op.f('ix_audit_log_table_name'), 'audit_log', ['table_name'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_audit_log_table_name'), table_name='audit_log')
    op.drop_index(op.f('ix_audit_log_id'), table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_table('admin_allowlist')
    op.drop_index(op.f('ix_corrections_id'), table_name='corrections')
    op.drop_table('corrections')
    op.drop_index('ix_legislation_is_published', table_name='legislation')
    op.drop_index('ix_legislation_jurisdiction_category', table_name='legislation')
    op.drop_index('ix_legislation_jurisdiction', table_name='legislation')
    op.drop_table('legislation')
    op.drop_table('suspect_prior_history')
    op.drop_index(op.f('ix_suspect_weapons_suspect_id'), table_name='suspect_weapons')
    op.drop_index(op.f('ix_suspect_weapons_id'), table_name='suspect_weapons')
    op.drop_table('suspect_weapons')
    op.drop_index(op.f('ix_suspects_incident_id'), table_name='suspects')
    op.drop_table('suspects')
    op.drop_index('ix_incidents_is_published', table_name='incidents')
    op.drop_index('ix_incidents_state_date', table_name='incidents')
    op.drop_index('ix_incidents_date', table_name='incidents')
    op.drop_table('incidents')
