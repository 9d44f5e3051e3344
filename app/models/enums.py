"""
Enums métier DentFlow.

Stockés en base sous forme de chaînes (colonnes Enum avec contrainte CHECK).
"""

from enum import Enum


# =============================================================================
# ENUMS POUR LE MODULE ABONNEMENT
# =============================================================================

class PlanTier(str, Enum):
    """Niveaux de plan commercial."""
    FREE = "FREE"
    STARTER = "STARTER"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class BillingPeriod(str, Enum):
    """Périodicité de facturation d'un plan."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    """Statuts d'un abonnement."""
    TRIALING = "TRIALING"      # Période d'essai en cours
    ACTIVE = "ACTIVE"          # Payé et à jour
    PAST_DUE = "PAST_DUE"      # Échec de paiement
    CANCELLED = "CANCELLED"    # Résilié
    EXPIRED = "EXPIRED"        # Essai terminé sans conversion


class InvoiceStatus(str, Enum):
    """Statuts d'une facture (miroir du fournisseur de paiement)."""
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    UNCOLLECTIBLE = "uncollectible"
    VOID = "void"


class UsageMetric(str, Enum):
    """Métriques de consommation soumises aux limites du plan."""
    USERS = "users"                  # Utilisateurs actifs
    PATIENTS = "patients"            # Patients actifs
    APPOINTMENTS = "appointments"    # Rendez-vous créés dans le mois
    STORAGE = "storage"              # Stockage documents (Mo)


# =============================================================================
# ENUMS POUR LE MODULE UTILISATEUR
# =============================================================================

class UserRole(str, Enum):
    """Rôles d'un utilisateur dans sa clinique."""
    ADMIN = "ADMIN"
    DENTIST = "DENTIST"
    RECEPTIONIST = "RECEPTIONIST"
    ASSISTANT = "ASSISTANT"
    FINANCIAL = "FINANCIAL"


# =============================================================================
# ENUMS POUR LE MODULE PATIENT / AGENDA
# =============================================================================

class Gender(str, Enum):
    """Genre déclaré du patient."""
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class AppointmentType(str, Enum):
    """Types de rendez-vous."""
    EVALUATION = "EVALUATION"        # Première consultation / bilan
    TREATMENT = "TREATMENT"          # Séance de soin
    RETURN = "RETURN"                # Contrôle
    EMERGENCY = "EMERGENCY"          # Urgence
    MAINTENANCE = "MAINTENANCE"      # Détartrage, entretien


class AppointmentStatus(str, Enum):
    """Statuts d'un rendez-vous."""
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    WAITING = "WAITING"              # Patient en salle d'attente
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"          # Seul statut comptant comme "visite"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


# =============================================================================
# ENUMS POUR LE MODULE CONFORMITÉ
# =============================================================================

class DocumentCategory(str, Enum):
    """Catégories de documents réglementaires."""
    LICENSE = "LICENSE"              # Autorisation d'exercice, licence sanitaire
    CERTIFICATE = "CERTIFICATE"      # Certificats (radioprotection, ...)
    INSURANCE = "INSURANCE"          # Assurance responsabilité civile
    EQUIPMENT = "EQUIPMENT"          # Contrôles d'équipements
    FACILITY = "FACILITY"            # Locaux (pompiers, accessibilité)
    CONTRACT = "CONTRACT"
    OTHER = "OTHER"


class DocumentStatus(str, Enum):
    """Statut dérivé d'un document réglementaire."""
    VALID = "VALID"
    EXPIRING_SOON = "EXPIRING_SOON"      # Expire dans les 30 jours
    EXPIRED = "EXPIRED"
    PENDING_RENEWAL = "PENDING_RENEWAL"  # Renouvellement en cours (manuel)


# =============================================================================
# ENUMS POUR LE MODULE CAMPAGNES
# =============================================================================

class CampaignType(str, Enum):
    """Types de campagne marketing."""
    COMMEMORATIVE = "COMMEMORATIVE"
    BIRTHDAY = "BIRTHDAY"
    REACTIVATION = "REACTIVATION"
    TREATMENT_FOLLOWUP = "TREATMENT_FOLLOWUP"
    PROMOTIONAL = "PROMOTIONAL"
    CUSTOM = "CUSTOM"


class CampaignChannel(str, Enum):
    """Canal d'envoi des messages."""
    WHATSAPP_TEXT = "WHATSAPP_TEXT"
    WHATSAPP_AUDIO = "WHATSAPP_AUDIO"
    SMS = "SMS"
    EMAIL = "EMAIL"


class CampaignStatus(str, Enum):
    """Cycle de vie d'une campagne."""
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MessageStatus(str, Enum):
    """Statut d'un message envoyé à un patient."""
    QUEUED = "QUEUED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"
