"""Baseline migration - users, records, timelines and counters

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table of the lien recovery service.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from lien_recovery.db.types import UTCDateTime


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(30), nullable=False, server_default=sa.text("'collector'")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('TRUE')),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ==========================================================================
    # Counters (reference ids)
    # ==========================================================================
    op.create_table(
        'record_counters',
        sa.Column('name', sa.String(50), primary_key=True),
        sa.Column('current_value', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )

    # ==========================================================================
    # Records
    # ==========================================================================
    op.create_table(
        'records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference_id', sa.String(20), nullable=True, unique=True),
        sa.Column('provider', sa.String(255), nullable=False),
        sa.Column('rendering_facility', sa.String(255)),
        sa.Column('tax_id', sa.String(50)),
        sa.Column('pt_name', sa.String(255), nullable=False),
        sa.Column('dob', sa.Date()),
        sa.Column('ssn', sa.String(20)),
        sa.Column('employer', sa.String(255)),
        sa.Column('doi', sa.JSON(), nullable=False),
        sa.Column('adj_number', sa.JSON(), nullable=False),
        sa.Column('claim_no', sa.JSON(), nullable=False),
        sa.Column('bill', sa.Numeric(12, 2)),
        sa.Column('paid', sa.Numeric(12, 2)),
        sa.Column('outstanding', sa.Numeric(12, 2)),
        sa.Column('fds', sa.Date()),
        sa.Column('lds', sa.Date()),
        sa.Column('sol_date', sa.Date()),
        sa.Column('ledger', sa.String(20), nullable=False),
        sa.Column('hcf', sa.String(20), nullable=False),
        sa.Column('invoice', sa.String(20), nullable=False),
        sa.Column('signin_sheet', sa.String(20), nullable=False),
        sa.Column('insurance', sa.String(255)),
        sa.Column('adjuster', sa.String(255)),
        sa.Column('adjuster_phone', sa.String(50)),
        sa.Column('adjuster_fax', sa.String(50)),
        sa.Column('adjuster_email', sa.String(255)),
        sa.Column('defense_attorney', sa.String(255)),
        sa.Column('defense_attorney_phone', sa.String(50)),
        sa.Column('defense_attorney_fax', sa.String(50)),
        sa.Column('defense_attorney_email', sa.String(255)),
        sa.Column('hearing_status', sa.String(100)),
        sa.Column('hearing_date', sa.Date()),
        sa.Column('hearing_time', sa.String(2)),
        sa.Column('judge_name', sa.String(255)),
        sa.Column('court_room_link', sa.Text()),
        sa.Column('judge_phone', sa.String(50)),
        sa.Column('access_code', sa.String(100)),
        sa.Column('board_location', sa.String(255)),
        sa.Column('lien_status', sa.String(30)),
        sa.Column('case_status', sa.String(50)),
        sa.Column('case_date', sa.Date()),
        sa.Column('cr_amount', sa.Numeric(12, 2)),
        sa.Column('dor_filed_by', sa.String(30)),
        sa.Column('status_4903_8', sa.String(3)),
        sa.Column('pmr_status', sa.String(3)),
        sa.Column('judge_order_status', sa.String(10)),
        _user_fk('assigned_collector_id'),
        sa.Column('assigned_at', UTCDateTime()),
        _user_fk('assigned_by_id'),
        _user_fk('assigned_payment_redeemer_id'),
        sa.Column('payment_assigned_at', UTCDateTime()),
        _user_fk('payment_assigned_by_id'),
        sa.Column('record_created_at', UTCDateTime(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_records_provider', 'records', ['provider'])
    op.create_index('ix_records_pt_name', 'records', ['pt_name'])
    op.create_index('ix_records_lien_status', 'records', ['lien_status'])
    op.create_index('ix_records_case_status', 'records', ['case_status'])
    op.create_index('idx_records_provider_pt_name', 'records', ['provider', 'pt_name'])
    op.create_index('idx_records_collector_assigned', 'records', ['assigned_collector_id', 'assigned_at'])
    op.create_index(
        'idx_records_redeemer_assigned',
        'records',
        ['assigned_payment_redeemer_id', 'payment_assigned_at'],
    )
    op.create_index('idx_records_hearing_date', 'records', ['hearing_date'])

    # ==========================================================================
    # Timeline comments
    # ==========================================================================
    op.create_table(
        'record_comments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('record_id', sa.Uuid(), sa.ForeignKey('records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        _user_fk('author_id'),
        sa.Column('scheduled_date', sa.Date()),
        sa.Column('scheduled_time', sa.String(5)),
        sa.Column('offer_amount', sa.Numeric(12, 2)),
        sa.Column('check_number', sa.String(100)),
        sa.Column('check_date', sa.Date()),
        sa.Column('check_amount', sa.Numeric(12, 2)),
        sa.Column('check_copy', sa.JSON(), comment='{file_name, mime_type, base64}'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.text('FALSE')),
        sa.Column('completed_at', UTCDateTime()),
        sa.Column('is_from_merged_record', sa.Boolean(), nullable=False, server_default=sa.text('FALSE')),
        sa.Column('source_record_id', sa.Uuid()),
        sa.Column('source_comment_id', sa.Uuid()),
        sa.Column('source_record_snapshot', sa.JSON()),
        sa.Column('merged_at', UTCDateTime()),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('idx_record_comments_position', 'record_comments', ['record_id', 'position'])
    op.create_index(
        'idx_record_comments_open',
        'record_comments',
        ['record_id', 'is_completed', 'scheduled_date'],
    )
    op.create_index('idx_record_comments_author', 'record_comments', ['author_id', 'created_at'])

    # ==========================================================================
    # Assignment history
    # ==========================================================================
    op.create_table(
        'record_assignment_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('record_id', sa.Uuid(), sa.ForeignKey('records.id', ondelete='CASCADE'), nullable=False),
        _user_fk('from_collector_id'),
        _user_fk('to_collector_id'),
        _user_fk('assigned_by_id'),
        sa.Column('assigned_at', UTCDateTime(), nullable=False),
    )
    op.create_index(
        'idx_assignment_history_record',
        'record_assignment_history',
        ['record_id', 'assigned_at'],
    )


def downgrade() -> None:
    op.drop_table('record_assignment_history')
    op.drop_table('record_comments')
    op.drop_table('records')
    op.drop_table('record_counters')
    op.drop_table('users')
