"""Scheduling tables: veterinarians, working hours and appointments

Revision ID: 001
Revises:
Create Date: 2025-01-21 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

APPOINTMENT_STATUSES = ('pending', 'confirmed', 'completed', 'cancelled')
APPOINTMENT_TYPES = ('consultation', 'vaccination', 'surgery', 'emergency', 'checkup', 'dental')


def _audit_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
    ]


def upgrade() -> None:
    # Create veterinarians table
    op.create_table('veterinarians',
        *_audit_columns(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('slot_duration_minutes > 0', name='ck_veterinarians_slot_duration_positive'),
    )
    op.create_index('idx_veterinarians_active_name', 'veterinarians', ['is_active', 'name'])

    # Create working_hours table
    op.create_table('working_hours',
        *_audit_columns(),
        sa.Column('veterinarian_id', sa.Uuid(), nullable=False),
        sa.Column('weekday', sa.SmallInteger(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['veterinarians.id'], ondelete='CASCADE'),
        sa.CheckConstraint('weekday >= 0 AND weekday <= 6', name='ck_working_hours_weekday_range'),
        sa.CheckConstraint("end_time > start_time OR end_time < '00:00:01'", name='ck_working_hours_end_after_start'),
    )
    op.create_index('ix_working_hours_veterinarian_id', 'working_hours', ['veterinarian_id'])
    op.create_index('idx_working_hours_vet_weekday', 'working_hours', ['veterinarian_id', 'weekday'])

    # Create appointments table
    op.create_table('appointments',
        *_audit_columns(),
        sa.Column('pet_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('veterinarian_id', sa.Uuid(), nullable=True),
        sa.Column('appointment_type', sa.Enum(*APPOINTMENT_TYPES, name='appointmenttype'), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(*APPOINTMENT_STATUSES, name='appointmentstatus'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['veterinarians.id'], ondelete='SET NULL'),
        sa.CheckConstraint('duration_minutes > 0', name='ck_appointments_duration_positive'),
        sa.CheckConstraint('duration_minutes <= 480', name='ck_appointments_duration_max'),
    )

    # Create indexes for appointments table
    op.create_index('ix_appointments_pet_id', 'appointments', ['pet_id'])
    op.create_index('ix_appointments_client_id', 'appointments', ['client_id'])
    op.create_index('ix_appointments_veterinarian_id', 'appointments', ['veterinarian_id'])
    op.create_index('ix_appointments_scheduled_at', 'appointments', ['scheduled_at'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('idx_appointments_vet_scheduled', 'appointments', ['veterinarian_id', 'scheduled_at'])
    op.create_index('idx_appointments_status_scheduled', 'appointments', ['status', 'scheduled_at'])
    op.create_index('idx_appointments_client_status', 'appointments', ['client_id', 'status'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('appointments')
    op.drop_table('working_hours')
    op.drop_table('veterinarians')

    # Drop enum types (no-op on backends without native enums)
    sa.Enum(name='appointmentstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='appointmenttype').drop(op.get_bind(), checkfirst=True)
