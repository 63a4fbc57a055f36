"""Structured bridge errors built from registered templates."""

from .errors import ErrorCategory, InspectorError
from .registry import ErrorRegistry, ErrorTemplate, create_error, get_registry

__all__ = [
    "InspectorError",
    "ErrorCategory",
    "ErrorTemplate",
    "ErrorRegistry",
    "create_error",
    "get_registry",
]
