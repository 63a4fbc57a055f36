"""Tool input schema helpers."""

from .examples import generate_example
from .validator import validate_arguments

__all__ = ["generate_example", "validate_arguments"]
