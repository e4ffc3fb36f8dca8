"""
Validation package.

Exposes `InputValidator`, the schema-bounds layer that every engine runs
before it opens a unit of work. Business rules live in the services.
"""

from src.core.validation.input_validator import InputValidator

__all__ = ["InputValidator"]
