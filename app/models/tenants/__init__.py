"""
Modèles multi-tenant : cliniques, plans, abonnements, factures, consommation.
"""
from app.models.tenants.tenant import Tenant
from app.models.tenants.plan import Plan
from app.models.tenants.subscription import Subscription
from app.models.tenants.invoice import Invoice
from app.models.tenants.usage_record import UsageRecord

__all__ = [
    "Tenant",
    "Plan",
    "Subscription",
    "Invoice",
    "UsageRecord",
]
