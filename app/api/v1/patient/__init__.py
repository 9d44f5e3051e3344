"""
Module Patient API.
"""
from app.api.v1.patient.routes import router

__all__ = ["router"]
