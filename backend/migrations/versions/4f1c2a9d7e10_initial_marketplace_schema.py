"""initial_marketplace_schema

Revision ID: 4f1c2a9d7e10
Revises:
Create Date: 2026-10-18 10:12:41.207315

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SERVICE_NAMES = (
    'HOME_CLEANING', 'PLUMBING_REPAIRS', 'ELECTRICAL_WORK',
    'CAREGIVING', 'HANDYMAN', 'OUTDOOR_CARE',
)


def upgrade() -> None:
    """Upgrade schema."""
    user_role = sa.Enum('CUSTOMER', 'PROVIDER', 'ADMIN', name='user_role')
    service_name = sa.Enum(*SERVICE_NAMES, name='service_name')
    booking_status = sa.Enum('REQUESTED', 'ACCEPTED', 'DECLINED', 'COMPLETED', name='booking_status')
    application_status = sa.Enum(
        'PENDING_VERIFICATION', 'MANUAL_REVIEW_PENDING', 'APPROVED', 'NEEDS_MORE_INFO', 'REJECTED',
        name='application_status',
    )
    availability = sa.Enum(
        'WEEKDAYS', 'WEEKENDS', 'EVENINGS', 'FLEXIBLE', 'FULL_TIME',
        name='provider_availability',
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('google_subject', sa.String(length=255), nullable=True, comment="Stable Google account id ('sub' claim)"),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('google_subject'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)

    op.create_table(
        'provider_profiles',
        sa.Column('provider_id', sa.Uuid(), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('bio', sa.String(length=2000), nullable=False),
        sa.Column('accepting_bookings', sa.Boolean(), nullable=False),
        sa.Column('is_online', sa.Boolean(), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=False),
        sa.Column('rating', sa.Float(), nullable=False),
        sa.Column('review_count', sa.Integer(), nullable=False),
        sa.Column('rating_total', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('review_count >= 0', name='provider_review_count_non_negative'),
        sa.CheckConstraint('rating >= 0 AND rating <= 5', name='provider_rating_range'),
        sa.ForeignKeyConstraint(['provider_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('provider_id'),
    )
    op.create_index(op.f('ix_provider_profiles_is_approved'), 'provider_profiles', ['is_approved'], unique=False)

    op.create_table(
        'provider_services',
        sa.Column('provider_id', sa.Uuid(), nullable=False),
        sa.Column('service', service_name, nullable=False),
        sa.ForeignKeyConstraint(['provider_id'], ['provider_profiles.provider_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('provider_id', 'service'),
    )
    op.create_index(op.f('ix_provider_services_service'), 'provider_services', ['service'], unique=False)

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('provider_id', sa.Uuid(), nullable=False),
        sa.Column('provider_name', sa.String(length=255), nullable=False),
        sa.Column('service', postgresql.ENUM(*SERVICE_NAMES, name='service_name', create_type=False), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time', sa.Time(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('notes', sa.String(length=2000), nullable=True),
        sa.Column('status', booking_status, nullable=False),
        sa.Column('customer_rating', sa.Integer(), nullable=True),
        sa.Column('rated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('customer_rating IS NULL OR (customer_rating >= 1 AND customer_rating <= 5)', name='booking_rating_range'),
        sa.CheckConstraint("customer_rating IS NULL OR status = 'COMPLETED'", name='booking_rating_after_completion'),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['provider_id'], ['provider_profiles.provider_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bookings_customer_id'), 'bookings', ['customer_id'], unique=False)
    op.create_index(op.f('ix_bookings_provider_id'), 'bookings', ['provider_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)

    op.create_table(
        'provider_applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('provider_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('service', postgresql.ENUM(*SERVICE_NAMES, name='service_name', create_type=False), nullable=False),
        sa.Column('experience', sa.String(length=255), nullable=False),
        sa.Column('area', sa.String(length=255), nullable=False),
        sa.Column('availability', availability, nullable=False),
        sa.Column('has_insurance', sa.Boolean(), nullable=False),
        sa.Column('business', sa.String(length=255), nullable=False),
        sa.Column('bio', sa.String(length=2000), nullable=False),
        sa.Column('background_consent', sa.Boolean(), nullable=False),
        sa.Column('terms_consent', sa.Boolean(), nullable=False),
        sa.Column('documents', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('status', application_status, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['provider_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_provider_applications_provider_id'), 'provider_applications', ['provider_id'], unique=False)
    op.create_index(op.f('ix_provider_applications_status'), 'provider_applications', ['status'], unique=False)
    op.create_index(op.f('ix_provider_applications_created_at'), 'provider_applications', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('provider_applications')
    op.drop_table('bookings')
    op.drop_table('provider_services')
    op.drop_table('provider_profiles')
    op.drop_table('users')

    # Enum types outlive their tables in PostgreSQL
    for enum_name in (
        'provider_availability', 'application_status', 'booking_status',
        'service_name', 'user_role',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
