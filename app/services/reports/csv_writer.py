"""
Rendu CSV des rapports.

Un rapport est décrit par une liste de colonnes (en-tête, clé) et une
suite de lignes (dictionnaires). Le fichier produit est encodé en UTF-8
avec une ligne d'en-tête.
"""
import csv
import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Tuple

CSV_MIME_TYPE = "text/csv"

EMPTY_CELL = "-"


@dataclass
class ReportResult:
    """Fichier de rapport prêt à être servi."""
    content: bytes
    filename: str
    mime_type: str = CSV_MIME_TYPE


def format_date(value: Any) -> str:
    """Date au format JJ/MM/AAAA (ou "-")."""
    if value is None:
        return EMPTY_CELL
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d/%m/%Y")


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def file_date(value: date) -> str:
    """Date pour un nom de fichier (AAAA-MM-JJ)."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def render_csv(columns: List[Tuple[str, str]], rows: Iterable[Mapping[str, Any]]) -> bytes:
    """
    Produit le contenu CSV.

    Args:
        columns: (en-tête, clé) dans l'ordre d'affichage
        rows: lignes, indexées par clé (valeur absente ou None → "-")
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in columns])
    for row in rows:
        writer.writerow([
            EMPTY_CELL if row.get(key) is None else row[key]
            for _, key in columns
        ])
    return buffer.getvalue().encode("utf-8")
