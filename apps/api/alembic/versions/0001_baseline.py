"""Baseline migration - packages, clients and project review state

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates the catalogue, client and review-state tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create packages, clients, deliverable_status, photo_comments and workflow_toggles."""
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Packages
    # ==========================================================================
    op.create_table(
        'packages',
        sa.Column('id', sa.Uuid(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_edited_photos', sa.Integer(), nullable=False),
        sa.Column('includes', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=False),
        sa.Column('deliverables', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('max_edited_photos >= 0', name='ck_packages_max_edited_photos'),
        sa.PrimaryKeyConstraint('id', name='pk_packages'),
    )

    # ==========================================================================
    # Clients
    # ==========================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('photographer_id', sa.Uuid(), nullable=False),
        sa.Column('package_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_type', sa.String(length=50), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('payment_status', sa.String(length=20), server_default='unpaid', nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid')", name='ck_clients_payment_status'
        ),
        sa.ForeignKeyConstraint(
            ['package_id'], ['packages.id'],
            name='fk_clients_package_id_packages', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_clients'),
    )
    op.create_index('idx_clients_photographer', 'clients', ['photographer_id'])

    # ==========================================================================
    # Review State
    # ==========================================================================
    op.create_table(
        'deliverable_status',
        sa.Column('id', sa.Uuid(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('deliverable_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=30), server_default='not-started', nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('not-started', 'pending-review', 'revisions-needed', 'approved')",
            name='ck_deliverable_status_status',
        ),
        sa.ForeignKeyConstraint(
            ['client_id'], ['clients.id'],
            name='fk_deliverable_status_client_id_clients', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_deliverable_status'),
        sa.UniqueConstraint('client_id', 'deliverable_name', name='uq_deliverable_status_client_name'),
    )

    op.create_table(
        'photo_comments',
        sa.Column('id', sa.Uuid(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('photo_path', sa.String(length=512), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('commenter_name', sa.String(length=255), nullable=True),
        sa.Column('commenter_email', sa.String(length=255), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_photo_comments'),
    )
    op.create_index('idx_photo_comments_client_path', 'photo_comments', ['client_id', 'photo_path'])

    op.create_table(
        'workflow_toggles',
        sa.Column('id', sa.Uuid(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('item_key', sa.String(length=50), nullable=False),
        sa.Column('is_done', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['client_id'], ['clients.id'],
            name='fk_workflow_toggles_client_id_clients', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_workflow_toggles'),
        sa.UniqueConstraint('client_id', 'item_key', name='uq_workflow_toggles_client_item'),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('workflow_toggles')
    op.drop_index('idx_photo_comments_client_path', table_name='photo_comments')
    op.drop_table('photo_comments')
    op.drop_table('deliverable_status')
    op.drop_index('idx_clients_photographer', table_name='clients')
    op.drop_table('clients')
    op.drop_table('packages')
