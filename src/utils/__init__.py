"""
Shared utilities for the ingestion pipeline.
"""

from .report import generate_ingestion_report

__all__ = ["generate_ingestion_report"]
