"""Queue item model and lifecycle states."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class QueueStatus(str, Enum):
    """Lifecycle states for a discovered document."""

    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"

    @property
    def terminal(self) -> bool:
        return self in (QueueStatus.completed, QueueStatus.error)


class QueueItem(BaseModel):
    """A discovered document path awaiting automatic conversion.

    Mutable: status, error, output path and timestamps change as the drain
    loop claims and finishes the item.
    """

    path: str = Field(min_length=1)
    status: QueueStatus = QueueStatus.pending
    error: str | None = None
    output_path: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("path cannot be empty or whitespace")
        return v

    @property
    def name(self) -> str:
        """Last path component, for display."""
        return self.path.rstrip("/").rsplit("/", 1)[-1] or self.path

    def mark(self, status: QueueStatus, error: str | None = None) -> None:
        self.status = status
        self.error = error
        self.updated_at = datetime.now(UTC)
