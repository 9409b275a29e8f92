"""
Module: export.output

Purpose:
    Document writing for report export.
    Converts draw instructions to PDF pages using ReportLab.

Key Classes:
    - DocumentWriter: Writer contract
    - ReportLabDocumentWriter: PDF implementation
    - DocumentFinalizationFailure: Fatal write error

Dependencies:
    - reportlab: PDF generation
    - PIL: Image handling

Used By:
    - export.controller: Plan replay
"""

from .writer import DocumentWriter, ReportLabDocumentWriter, DocumentFinalizationFailure

__all__ = [
    "DocumentWriter",
    "ReportLabDocumentWriter",
    "DocumentFinalizationFailure",
]
