# app/api/v1/user/tenant_users_security.py
"""
Sécurité multi-tenant pour les utilisateurs de clinique.

Fournit le tenant_id courant, injecté dans tous les services métier.

Note: Pour la sécurité SuperAdmin (équipe DentFlow),
voir app/api/v1/platform/super_admin_security.py
"""

from fastapi import Depends, HTTPException, status

from app.core.auth.user_auth import get_current_user
from app.models.user.user import User


def get_current_tenant_id(
    current_user: User = Depends(get_current_user)
) -> int:
    """
    Extrait le tenant_id de l'utilisateur courant.

    Toutes les requêtes métier sont filtrées sur cette clinique.

    Raises:
        HTTPException 403: Si l'utilisateur n'est pas rattaché à une clinique
    """
    if not current_user.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Utilisateur non rattaché à une clinique"
        )
    return current_user.tenant_id
