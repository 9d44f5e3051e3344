"""
Module Rendez-vous API.
"""
from app.api.v1.appointment.routes import router

__all__ = ["router"]
