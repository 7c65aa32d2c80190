"""create admin tables and row change trigger

Revision ID: 3c1f9a2b7d10
Revises:
Create Date: 2026-10-19 09:12:44.518204
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1f9a2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOTIFY_FUNCTION = """
CREATE OR REPLACE FUNCTION notify_row_change() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(
        'row_changes',
        json_build_object(
            'schema', TG_TABLE_SCHEMA,
            'table', TG_TABLE_NAME,
            'event', TG_OP,
            'new', CASE WHEN TG_OP = 'DELETE' THEN NULL ELSE row_to_json(NEW) END,
            'old', CASE WHEN TG_OP = 'INSERT' THEN NULL ELSE row_to_json(OLD) END
        )::text
    );
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;
"""


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='user'),
        sa.Column('isVerified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('isCompany', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('isOwner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('isRenter', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'verification',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('national_id_image_url', sa.String(), nullable=True),
        sa.Column('license_image_url', sa.String(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_verification_id'), 'verification', ['id'])

    op.create_table(
        'vehicles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index(op.f('ix_vehicles_id'), 'vehicles', ['id'])

    op.create_table(
        'rental_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('vehicle_id', sa.Integer(),
                  sa.ForeignKey('vehicles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('payment', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_rental_requests_id'), 'rental_requests', ['id'])
    op.create_index(op.f('ix_rental_requests_status'), 'rental_requests', ['status'])

    op.create_table(
        'deals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('value', sa.Numeric(14, 2), nullable=True),
        sa.Column('stage', sa.String(length=50), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
    )

    op.create_table(
        'history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_history_id'), 'history', ['id'])
    op.create_index(op.f('ix_history_created_at'), 'history', ['created_at'])

    # --- realtime change feed ---
    op.execute(NOTIFY_FUNCTION)
    op.execute(
        "CREATE TRIGGER verification_row_changes "
        "AFTER INSERT OR UPDATE OR DELETE ON verification "
        "FOR EACH ROW EXECUTE FUNCTION notify_row_change()"
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS verification_row_changes ON verification")
    op.execute("DROP FUNCTION IF EXISTS notify_row_change()")

    op.drop_index(op.f('ix_history_created_at'), table_name='history')
    op.drop_index(op.f('ix_history_id'), table_name='history')
    op.drop_table('history')
    op.drop_table('deals')
    op.drop_index(op.f('ix_rental_requests_status'), table_name='rental_requests')
    op.drop_index(op.f('ix_rental_requests_id'), table_name='rental_requests')
    op.drop_table('rental_requests')
    op.drop_index(op.f('ix_vehicles_id'), table_name='vehicles')
    op.drop_table('vehicles')
    op.drop_index(op.f('ix_verification_id'), table_name='verification')
    op.drop_table('verification')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
