"""Create documents, generations and validations tables

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-18 12:00:00.000000

Governance corpus, pipeline run records and append-only compliance verdicts.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'e1f2a3b4c5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('doc_type', sa.String(20), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('file_key', sa.Text(), nullable=True),
        sa.Column('vectorized', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_documents_owner_id', 'documents', ['owner_id'])

    op.create_table(
        'generations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('context_query', sa.Text(), nullable=False),
        sa.Column('cot_reasoning', sa.Text(), nullable=True),
        sa.Column('generated_code', sa.Text(), nullable=True),
        sa.Column('generated_tests', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('generation_time_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_generations_owner_id', 'generations', ['owner_id'])
    op.create_index('ix_generations_status', 'generations', ['status'])

    op.create_table(
        'validations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('generation_id', sa.Integer(),
                  sa.ForeignKey('generations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tests_passed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('test_coverage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('adr_compliant', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cp_ap_violations', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pii_masking_enforced', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('validation_details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_validations_generation_id', 'validations', ['generation_id'])


def downgrade() -> None:
    op.drop_index('ix_validations_generation_id', table_name='validations')
    op.drop_table('validations')
    op.drop_index('ix_generations_status', table_name='generations')
    op.drop_index('ix_generations_owner_id', table_name='generations')
    op.drop_table('generations')
    op.drop_index('ix_documents_owner_id', table_name='documents')
    op.drop_table('documents')
