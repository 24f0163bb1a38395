"""
Monitoring Module

Structured JSON error sink used by the result reporter.
"""

from .logging import JSONLogFormatter, SensitiveDataMasker, get_error_logger

__all__ = [
    "JSONLogFormatter",
    "SensitiveDataMasker",
    "get_error_logger",
]
