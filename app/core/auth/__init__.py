from app.core.auth.user_auth import get_current_user, require_role

__all__ = ["get_current_user", "require_role"]
