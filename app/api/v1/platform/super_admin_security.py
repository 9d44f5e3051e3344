"""
Dépendances FastAPI pour le module Platform.

Authentification SuperAdmin (token JWT de type "super_admin").
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security.jwt import verify_token
from app.database.session import get_db
from app.models.platform.super_admin import SuperAdmin


# =============================================================================
# SECURITY SCHEME
# =============================================================================

super_admin_bearer = HTTPBearer(
    scheme_name="SuperAdminAuth",
    description="JWT Bearer token pour l'authentification SuperAdmin",
    auto_error=False,
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_current_super_admin(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(super_admin_bearer),
        db: Session = Depends(get_db),
) -> SuperAdmin:
    """
    Récupère le SuperAdmin actuellement authentifié.

    Le token JWT doit contenir :
    - sub: ID du SuperAdmin
    - type: "super_admin"

    Raises:
        HTTPException 401: Si pas de token ou token invalide
        HTTPException 403: Si SuperAdmin inactif
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentification SuperAdmin requise",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials, token_type="super_admin")
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token invalide: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    admin_id = payload.get("sub")
    if not admin_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalide: ID manquant",
        )

    admin = db.get(SuperAdmin, int(admin_id))
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="SuperAdmin non trouvé",
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Compte SuperAdmin désactivé",
        )

    return admin
