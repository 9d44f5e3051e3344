"""
Patient models.

- Patient : Dossier administratif du patient
- PatientTag : Étiquettes libres (segmentation marketing)
"""
from app.models.patient.patient import Patient
from app.models.patient.patient_tag import PatientTag

__all__ = [
    "Patient",
    "PatientTag",
]
