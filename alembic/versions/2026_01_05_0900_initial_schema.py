"""initial_schema

Revision ID: 3f2a9c1d7b4e
Revises:
Create Date: 2026-01-05 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b4e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# =============================================================================
# HELPERS
# =============================================================================

JSONB = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def timestamps() -> list:
    """Colonnes created_at / updated_at (TimestampMixin)."""
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def tenant_column() -> sa.Column:
    """Colonne tenant_id (TenantMixin)."""
    return sa.Column(
        'tenant_id', sa.Integer(),
        sa.ForeignKey('tenants.id', ondelete='CASCADE'),
        nullable=False,
    )


def enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, create_constraint=True)


CHANNELS = ('WHATSAPP_TEXT', 'WHATSAPP_AUDIO', 'SMS', 'EMAIL')


def upgrade() -> None:
    """Upgrade schema."""

    # ==========================================================================
    # 1. PLATEFORME / TENANTS
    # ==========================================================================
    op.create_table(
        'super_admins',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        comment='Administrateurs de la plateforme DentFlow (équipe interne)',
    )
    op.create_index('ix_super_admins_email', 'super_admins', ['email'], unique=True)

    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, comment='Nom commercial de la clinique'),
        sa.Column('trade_name', sa.String(255), nullable=True, comment='Raison sociale'),
        sa.Column('tax_id', sa.String(20), nullable=True, comment='Identifiant fiscal'),
        sa.Column('subdomain', sa.String(63), nullable=True, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('timezone', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
        comment='Cliniques clientes de la plateforme',
    )

    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('tier', enum('plan_tier_enum', 'FREE', 'STARTER', 'PROFESSIONAL', 'ENTERPRISE'), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('billing_period', enum('billing_period_enum', 'MONTHLY', 'YEARLY'), nullable=False),
        sa.Column('provider_price_id', sa.String(100), nullable=True, unique=True),
        sa.Column('max_users', sa.Integer(), nullable=False),
        sa.Column('max_patients', sa.Integer(), nullable=False),
        sa.Column('max_appointments', sa.Integer(), nullable=False),
        sa.Column('max_storage', sa.Integer(), nullable=False),
        sa.Column('features', JSONB, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
        comment='Catalogue des plans d\'abonnement',
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id'), nullable=False),
        sa.Column(
            'status',
            enum('subscription_status_enum', 'TRIALING', 'ACTIVE', 'PAST_DUE', 'CANCELLED', 'EXPIRED'),
            nullable=False,
        ),
        sa.Column('provider_customer_id', sa.String(100), nullable=True, unique=True),
        sa.Column('provider_subscription_id', sa.String(100), nullable=True, unique=True),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        comment='Abonnements des cliniques (un par clinique)',
    )
    op.create_index('ix_subscriptions_tenant_id', 'subscriptions', ['tenant_id'], unique=True)

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'subscription_id', sa.Integer(),
            sa.ForeignKey('subscriptions.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('provider_invoice_id', sa.String(100), nullable=False, unique=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column(
            'status',
            enum('invoice_status_enum', 'DRAFT', 'OPEN', 'PAID', 'UNCOLLECTIBLE', 'VOID'),
            nullable=False,
        ),
        sa.Column('pdf_url', sa.String(500), nullable=True),
        sa.Column('hosted_invoice_url', sa.String(500), nullable=True),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_invoices_subscription_id', 'invoices', ['subscription_id'])

    op.create_table(
        'usage_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column(
            'metric',
            enum('usage_metric_enum', 'USERS', 'PATIENTS', 'APPOINTMENTS', 'STORAGE'),
            nullable=False,
        ),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'metric', 'period_start', name='uq_usage_record_period'),
    )
    op.create_index('ix_usage_records_tenant_id', 'usage_records', ['tenant_id'])

    # ==========================================================================
    # 2. UTILISATEURS / PRATICIENS
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column(
            'role',
            enum('user_role_enum', 'ADMIN', 'DENTIST', 'RECEPTIONIST', 'ASSISTANT', 'FINANCIAL'),
            nullable=False,
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        comment='Utilisateurs des cliniques',
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'professionals',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('license_number', sa.String(50), nullable=True),
        sa.Column('specialty', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_professionals_tenant_id', 'professionals', ['tenant_id'])

    # ==========================================================================
    # 3. PATIENTS / AGENDA
    # ==========================================================================
    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('gender', enum('gender_enum', 'MALE', 'FEMALE', 'OTHER'), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('whatsapp_opt_in', sa.Boolean(), nullable=False),
        sa.Column('email_opt_in', sa.Boolean(), nullable=False),
        sa.Column('sms_opt_in', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_patients_tenant_id', 'patients', ['tenant_id'])
    op.create_index('ix_patients_name', 'patients', ['name'])

    op.create_table(
        'patient_tags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag', sa.String(50), nullable=False),
        sa.UniqueConstraint('patient_id', 'tag', name='uq_patient_tag'),
    )
    op.create_index('ix_patient_tags_patient_id', 'patient_tags', ['patient_id'])
    op.create_index('ix_patient_tags_tag', 'patient_tags', ['tag'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'professional_id', sa.Integer(),
            sa.ForeignKey('professionals.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            'type',
            enum('appointment_type_enum', 'EVALUATION', 'TREATMENT', 'RETURN', 'EMERGENCY', 'MAINTENANCE'),
            nullable=False,
        ),
        sa.Column(
            'status',
            enum(
                'appointment_status_enum',
                'SCHEDULED', 'CONFIRMED', 'WAITING', 'IN_PROGRESS', 'COMPLETED', 'NO_SHOW', 'CANCELLED',
            ),
            nullable=False,
        ),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_appointments_tenant_id', 'appointments', ['tenant_id'])
    op.create_index('ix_appointments_patient_id', 'appointments', ['patient_id'])
    op.create_index('ix_appointments_professional_id', 'appointments', ['professional_id'])
    op.create_index('ix_appointments_start_time', 'appointments', ['start_time'])

    # ==========================================================================
    # 4. CONFORMITÉ
    # ==========================================================================
    op.create_table(
        'compliance_documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'category',
            enum(
                'document_category_enum',
                'LICENSE', 'CERTIFICATE', 'INSURANCE', 'EQUIPMENT', 'FACILITY', 'CONTRACT', 'OTHER',
            ),
            nullable=False,
        ),
        sa.Column('document_number', sa.String(100), nullable=True),
        sa.Column('file_url', sa.String(500), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('issue_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'status',
            enum('document_status_enum', 'VALID', 'EXPIRING_SOON', 'EXPIRED', 'PENDING_RENEWAL'),
            nullable=False,
        ),
        sa.Column(
            'professional_id', sa.Integer(),
            sa.ForeignKey('professionals.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('uploaded_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('alert_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('renewal_started_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_compliance_documents_tenant_id', 'compliance_documents', ['tenant_id'])
    op.create_index('ix_compliance_documents_category', 'compliance_documents', ['category'])
    op.create_index('ix_compliance_documents_expiration_date', 'compliance_documents', ['expiration_date'])
    op.create_index('ix_compliance_documents_status', 'compliance_documents', ['status'])

    # ==========================================================================
    # 5. CAMPAGNES
    # ==========================================================================
    op.create_table(
        'segments',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('filters', JSONB, nullable=False),
        sa.Column('patient_count', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
    )
    op.create_index('ix_segments_tenant_id', 'segments', ['tenant_id'])

    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('segment_id', sa.Integer(), sa.ForeignKey('segments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'type',
            enum(
                'campaign_type_enum',
                'COMMEMORATIVE', 'BIRTHDAY', 'REACTIVATION', 'TREATMENT_FOLLOWUP', 'PROMOTIONAL', 'CUSTOM',
            ),
            nullable=False,
        ),
        sa.Column('channel', enum('campaign_channel_enum', *CHANNELS), nullable=False),
        sa.Column(
            'status',
            enum('campaign_status_enum', 'DRAFT', 'SCHEDULED', 'SENDING', 'PAUSED', 'COMPLETED', 'CANCELLED'),
            nullable=False,
        ),
        sa.Column('subject', sa.String(200), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('audio_url', sa.String(500), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('target_count', sa.Integer(), nullable=False),
        sa.Column('sent_count', sa.Integer(), nullable=False),
        sa.Column('delivered_count', sa.Integer(), nullable=False),
        sa.Column('read_count', sa.Integer(), nullable=False),
        sa.Column('failed_count', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_campaigns_tenant_id', 'campaigns', ['tenant_id'])
    op.create_index('ix_campaigns_segment_id', 'campaigns', ['segment_id'])
    op.create_index('ix_campaigns_status', 'campaigns', ['status'])

    op.create_table(
        'message_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        tenant_column(),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=True),
        # Type ENUM déjà créé avec la table campaigns
        sa.Column(
            'channel',
            postgresql.ENUM(*CHANNELS, name='campaign_channel_enum', create_type=False),
            nullable=False,
        ),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('audio_url', sa.String(500), nullable=True),
        sa.Column(
            'status',
            enum('message_status_enum', 'QUEUED', 'SENT', 'DELIVERED', 'READ', 'FAILED'),
            nullable=False,
        ),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_message_logs_tenant_id', 'message_logs', ['tenant_id'])
    op.create_index('ix_message_logs_patient_id', 'message_logs', ['patient_id'])
    op.create_index('ix_message_logs_campaign_id', 'message_logs', ['campaign_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'message_logs',
        'campaigns',
        'segments',
        'compliance_documents',
        'appointments',
        'patient_tags',
        'patients',
        'professionals',
        'users',
        'usage_records',
        'invoices',
        'subscriptions',
        'subscription_plans',
        'tenants',
        'super_admins',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'message_status_enum',
            'campaign_status_enum',
            'campaign_channel_enum',
            'campaign_type_enum',
            'document_status_enum',
            'document_category_enum',
            'appointment_status_enum',
            'appointment_type_enum',
            'gender_enum',
            'user_role_enum',
            'usage_metric_enum',
            'invoice_status_enum',
            'subscription_status_enum',
            'billing_period_enum',
            'plan_tier_enum',
        ):
            postgresql.ENUM(name=enum_name).drop(bind, checkfirst=True)
