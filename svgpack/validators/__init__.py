"""Validation package for composed documents."""

from .base import ValidationContext, Validator, default_validators, validate_document
from .features import FeatureValidator
from .size import SizeValidator
from .structure import StructureValidator

__all__ = [
    "FeatureValidator",
    "SizeValidator",
    "StructureValidator",
    "ValidationContext",
    "Validator",
    "default_validators",
    "validate_document",
]
