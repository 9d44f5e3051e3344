from app.models.appointment.appointment import Appointment

__all__ = ["Appointment"]
