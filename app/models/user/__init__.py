"""
User models - Utilisateurs et équipe soignante.

- User : Comptes de connexion d'une clinique
- Professional : Praticiens (dentistes, hygiénistes...) rattachés à la clinique
"""

from app.models.user.user import User
from app.models.user.professional import Professional

__all__ = [
    "User",
    "Professional",
]
