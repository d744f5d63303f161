"""Abstract conversion service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from adocview.pipeline.models import OutputType


class ValidationResult(BaseModel):
    """Outcome of asking the service whether a document parses."""

    valid: bool
    error: str | None = None


class ConversionService(ABC):
    """Remote converter from lightweight markup to a target representation.

    One call is one conversion attempt. Implementations raise
    ServiceFailure for rejected requests and for transport errors; they
    never retry.
    """

    @abstractmethod
    async def convert(self, content: str, output_type: OutputType) -> str:
        """Convert ``content`` and return the converted text."""
        ...

    @abstractmethod
    async def validate(self, content: str) -> ValidationResult:
        """Check whether ``content`` parses."""
        ...

    @abstractmethod
    async def fetch_stylesheet(self) -> str:
        """Return the service's default stylesheet."""
        ...
