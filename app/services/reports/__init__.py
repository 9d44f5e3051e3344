"""
Génération de fichiers de rapport (CSV).
"""
from app.services.reports.csv_writer import ReportResult, render_csv

__all__ = ["ReportResult", "render_csv"]
