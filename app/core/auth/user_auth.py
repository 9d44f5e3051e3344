"""
Dépendances d'authentification des utilisateurs de clinique.

Flow:
    1. get_current_user() extrait le JWT (Bearer) et charge l'utilisateur
    2. get_current_tenant_id() (app/api/v1/user/tenant_users_security.py)
       en déduit la clinique courante, injectée dans tous les services

L'émission des tokens (login, refresh) est hors de ce service.

Note:
    Pour l'authentification SuperAdmin (équipe DentFlow), utiliser :
    from app.api.v1.platform.super_admin_security import get_current_super_admin
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security.jwt import verify_token
from app.database.session import get_db
from app.models.enums import UserRole
from app.models.user.user import User

# Security scheme pour le token Bearer
bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# AUTHENTIFICATION UTILISATEUR
# =============================================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dépendance pour obtenir l'utilisateur courant depuis le JWT.

    Raises:
        HTTPException 401: Token manquant ou invalide
        HTTPException 403: Utilisateur inactif ou incohérence de tenant
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token d'authentification requis",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials, token_type="access")

        user_id_raw = payload.get("sub")
        tenant_id = payload.get("tenant_id")

        # Le JWT stocke des strings
        try:
            user_id = int(user_id_raw) if user_id_raw else None
        except (ValueError, TypeError):
            user_id = None

        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token invalide: user_id manquant",
            )

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token invalide: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, user_id)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur non trouvé",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Compte utilisateur désactivé",
        )

    if tenant_id and user.tenant_id != int(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Incohérence de tenant",
        )

    return user


# =============================================================================
# VÉRIFICATION DES RÔLES
# =============================================================================

def require_role(*roles: UserRole):
    """
    Factory de dépendance pour vérifier le rôle de l'utilisateur.

    Les administrateurs de clinique passent toujours.

    Usage:
        @router.delete("/patients/{patient_id}")
        def delete_patient(current_user: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    async def role_checker(
        current_user: User = Depends(get_current_user),
    ) -> User:
        if current_user.role not in roles and not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Rôle requis: {', '.join(r.value for r in roles)}",
            )
        return current_user

    return role_checker
