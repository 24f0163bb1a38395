"""
Security Module

Identifier and operator validation applied before any SQL text is assembled.
"""

from .input_sanitizer import InputSanitizer, build_conditions, validate_request

__all__ = [
    "InputSanitizer",
    "build_conditions",
    "validate_request",
]
