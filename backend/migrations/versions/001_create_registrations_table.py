"""Create registrations table

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _slot(name):
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=True)


def upgrade():
    """Create the registrations table with workflow columns and document slots."""

    op.create_table(
        'registrations',
        sa.Column('id', sa.String(255), nullable=False),

        # Contact / package
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('company_name_english', sa.String(255), nullable=True),
        sa.Column('company_name_local', sa.String(255), nullable=True, comment='Local-script company name'),
        sa.Column('contact_person_name', sa.String(255), nullable=True),
        sa.Column('contact_person_email', sa.String(255), nullable=True),
        sa.Column('contact_person_phone', sa.String(255), nullable=True),
        sa.Column('selected_package', sa.String(255), nullable=True),
        sa.Column('payment_method', sa.String(50), nullable=True),

        # Workflow
        sa.Column('current_step', sa.String(50), nullable=False, server_default='contact-details'),
        sa.Column('status', sa.String(50), nullable=False, server_default='payment-processing'),
        sa.Column('payment_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('details_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('documents_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('documents_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('documents_acknowledged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('documents_published_at', sa.TIMESTAMP(timezone=True), nullable=True),

        # Company details
        sa.Column('is_foreign_owned', sa.Boolean(), nullable=True),
        sa.Column('business_address_number', sa.String(255), nullable=True),
        sa.Column('business_address_street', sa.String(255), nullable=True),
        sa.Column('business_address_city', sa.String(255), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('share_price', sa.String(50), nullable=True),
        sa.Column('number_of_shareholders', sa.Integer(), nullable=True),
        _slot('shareholders'),
        sa.Column('appoint_company_secretary', sa.Boolean(), nullable=True),
        sa.Column('number_of_directors', sa.Integer(), nullable=True),
        _slot('directors'),
        sa.Column('import_export_status', sa.String(20), nullable=True),
        sa.Column('imports_to_add', sa.Text(), nullable=True),
        sa.Column('exports_to_add', sa.Text(), nullable=True),
        sa.Column('other_business_activities', sa.Text(), nullable=True),
        sa.Column('local_division', sa.String(255), nullable=True),
        sa.Column('business_email', sa.String(255), nullable=True),
        sa.Column('business_contact_number', sa.String(255), nullable=True),

        # Admin / payment document slots
        _slot('payment_receipt'),
        _slot('balance_payment_receipt'),
        _slot('form1'),
        _slot('letter_of_engagement'),
        _slot('aoa'),
        _slot('form18'),
        _slot('address_proof'),
        _slot('incorporation_certificate'),
        _slot('step3_additional_doc'),
        _slot('step3_signed_additional_doc'),
        _slot('step4_final_additional_doc'),

        # Customer-signed bundle
        _slot('customer_form1'),
        _slot('customer_letter_of_engagement'),
        _slot('customer_aoa'),
        _slot('customer_form18'),
        _slot('customer_address_proof'),

        # Timestamps / optimistic locking
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),

        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('ix_registrations_created_at', 'registrations', ['created_at'])
    op.create_index('ix_registrations_contact_person_email', 'registrations', ['contact_person_email'])


def downgrade():
    """Drop the registrations table."""
    op.drop_index('ix_registrations_contact_person_email', table_name='registrations')
    op.drop_index('ix_registrations_created_at', table_name='registrations')
    op.drop_table('registrations')
