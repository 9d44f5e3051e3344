"""
DentFlow Models - Export centralisé de tous les modèles SQLAlchemy.

Ce fichier permet d'importer tous les modèles depuis un seul endroit :
    from app.models import Tenant, Subscription, Patient, ComplianceDocument, ...

Structure des sous-dossiers :
    platform/       - Plateforme DentFlow (SuperAdmin)
    tenants/        - Multi-tenant (Tenant, Plan, Subscription, Invoice, UsageRecord)
    user/           - Utilisateurs et praticiens (User, Professional)
    patient/        - Patients (Patient, PatientTag)
    appointment/    - Agenda (Appointment)
    compliance/     - Conformité réglementaire (ComplianceDocument)
    campaign/       - Marketing (Segment, Campaign, MessageLog)
"""

# === Enums ===
from app.models.enums import (
    PlanTier,
    BillingPeriod,
    SubscriptionStatus,
    InvoiceStatus,
    UsageMetric,
    UserRole,
    Gender,
    AppointmentType,
    AppointmentStatus,
    DocumentCategory,
    DocumentStatus,
    CampaignType,
    CampaignChannel,
    CampaignStatus,
    MessageStatus,
)

# === Mixins ===
from app.models.mixins import TimestampMixin, TenantMixin

# === Platform ===
from app.models.platform import SuperAdmin

# === Tenants ===
from app.models.tenants import Tenant, Plan, Subscription, Invoice, UsageRecord

# === User ===
from app.models.user import User, Professional

# === Patient / Agenda ===
from app.models.patient import Patient, PatientTag
from app.models.appointment import Appointment

# === Conformité ===
from app.models.compliance import ComplianceDocument

# === Campagnes ===
from app.models.campaign import Segment, Campaign, MessageLog

__all__ = [
    # Enums
    "PlanTier",
    "BillingPeriod",
    "SubscriptionStatus",
    "InvoiceStatus",
    "UsageMetric",
    "UserRole",
    "Gender",
    "AppointmentType",
    "AppointmentStatus",
    "DocumentCategory",
    "DocumentStatus",
    "CampaignType",
    "CampaignChannel",
    "CampaignStatus",
    "MessageStatus",
    # Mixins
    "TimestampMixin",
    "TenantMixin",
    # Modèles
    "SuperAdmin",
    "Tenant",
    "Plan",
    "Subscription",
    "Invoice",
    "UsageRecord",
    "User",
    "Professional",
    "Patient",
    "PatientTag",
    "Appointment",
    "ComplianceDocument",
    "Segment",
    "Campaign",
    "MessageLog",
]
