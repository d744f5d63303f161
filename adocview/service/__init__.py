"""Conversion service boundary."""

from adocview.service.base import ConversionService, ValidationResult
from adocview.service.http import HttpConversionService

__all__ = [
    "ConversionService",
    "HttpConversionService",
    "ValidationResult",
]
