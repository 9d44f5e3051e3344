"""Gestion des tokens JWT (HS256, secret partagé)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings

TOKEN_ISSUER = "dentflow"


def create_access_token(
        data: dict,
        expires_delta: Optional[timedelta] = None,
        token_type: str = "access",
) -> str:
    """
    Crée un token JWT signé.

    Args:
        data: Claims à encoder (sub, tenant_id, role...)
        expires_delta: Durée de validité personnalisée
        token_type: "access" (utilisateur clinique) ou "super_admin"

    Returns:
        Token JWT signé
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # Claims standards JWT
    to_encode.update({
        "exp": expire,
        "iat": now,
        "iss": TOKEN_ISSUER,
        "type": token_type,
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """
    Vérifie et décode un token JWT.

    Raises:
        JWTError: Si le token est invalide, expiré ou de mauvais type
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True, "require_iat": True},
        )
    except JWTError as e:
        raise JWTError(f"Token validation failed: {str(e)}")

    if payload.get("type") != token_type:
        raise JWTError(f"Token type mismatch. Expected {token_type}")

    if payload.get("iss") != TOKEN_ISSUER:
        raise JWTError("Invalid token issuer")

    return payload
