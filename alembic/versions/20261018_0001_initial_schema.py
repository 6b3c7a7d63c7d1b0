"""Initial schema - identity, profiles, content and audit log

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _lifecycle():
    """Columns every publishable table carries."""
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False, default='draft', index=True),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('views', sa.Integer(), nullable=False, default=0),
        sa.Column('review_notes', sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # One role per user
    op.create_table(
        'user_roles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Refresh tokens table
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('token_hash', sa.String(255), unique=True, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('profile_photo', sa.String(1000), nullable=True),
        sa.Column('department_id', sa.Uuid(), nullable=True),
        sa.Column('faculty_id', sa.Uuid(), nullable=True),
        sa.Column('designation', sa.String(255), nullable=True),
        sa.Column('employee_id', sa.String(100), nullable=True),
        sa.Column('academic_background', sa.Text(), nullable=True),
        sa.Column('professional_experience', sa.Text(), nullable=True),
        sa.Column('student_id', sa.String(100), nullable=True),
        sa.Column('batch', sa.String(50), nullable=True),
        sa.Column('semester', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, default=False),
        *_timestamps(),
    )

    # Notice categories table
    op.create_table(
        'notice_categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, default=0),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Notices table
    op.create_table(
        'notices',
        *_lifecycle(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, default=''),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('notice_categories.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('target_audience', sa.JSON(), nullable=False),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, default=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False, default=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_notices_status_published', 'notices', ['status', 'published_at'])

    # News table
    op.create_table(
        'news',
        *_lifecycle(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(500), unique=True, nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=False, default=''),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('featured_image', sa.String(1000), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False, default=False),
        *_timestamps(),
    )

    # Events table
    op.create_table(
        'events',
        *_lifecycle(),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('venue', sa.String(500), nullable=True),
        sa.Column('organizer', sa.String(255), nullable=True),
        sa.Column('featured_image', sa.String(1000), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False, default=False),
        *_timestamps(),
    )

    # Research papers table
    op.create_table(
        'research_papers',
        *_lifecycle(),
        sa.Column('submitted_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('department_id', sa.Uuid(), nullable=True),
        sa.Column('publication_type', sa.String(30), nullable=False, default='journal'),
        sa.Column('title', sa.String(1000), nullable=False),
        sa.Column('authors', sa.JSON(), nullable=False),
        sa.Column('abstract', sa.Text(), nullable=True),
        sa.Column('keywords', sa.JSON(), nullable=False),
        sa.Column('journal_conference_name', sa.String(500), nullable=True),
        sa.Column('publisher', sa.String(500), nullable=True),
        sa.Column('publication_date', sa.Date(), nullable=True),
        sa.Column('doi_link', sa.String(1000), nullable=True),
        sa.Column('pdf_url', sa.String(1000), nullable=True),
        sa.Column('citation_count', sa.Integer(), nullable=False, default=0),
        sa.Column('impact_factor', sa.Float(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Event log table (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_user_time', 'event_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_event_logs_user_time', table_name='event_logs')
    op.drop_index('ix_event_logs_entity', table_name='event_logs')
    op.drop_table('event_logs')
    op.drop_table('research_papers')
    op.drop_table('events')
    op.drop_table('news')
    op.drop_index('ix_notices_status_published', table_name='notices')
    op.drop_table('notices')
    op.drop_table('notice_categories')
    op.drop_table('profiles')
    op.drop_table('refresh_tokens')
    op.drop_table('user_roles')
    op.drop_table('users')
