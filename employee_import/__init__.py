"""
Employee Import Service
=======================

Document ingestion and secure upload service for HR employee imports.

Features:
- Format routing for CSV, spreadsheet, PDF, DOCX and image uploads
- Header-synonym mapping and deterministic field normalization
- LLM-based structured extraction for unstructured documents
- SigV4-signed object storage uploads without an SDK
- Redis-backed import job ledger
- Two-phase (preview / commit) bulk CSV import

"""

__version__ = "1.0.0"
