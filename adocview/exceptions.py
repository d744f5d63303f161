"""Error taxonomy for adocview."""

from __future__ import annotations


class AdocviewError(Exception):
    """Base exception class for adocview."""


class EmptyInputError(AdocviewError):
    """Source text is empty or whitespace-only; never sent to the service."""

    def __init__(self, message: str = "No source content to convert") -> None:
        super().__init__(message)


class ServiceFailure(AdocviewError):
    """The remote conversion service rejected the request or was unreachable."""

    def __init__(
        self,
        operation: str,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        prefix = f"{operation} failed"
        if status_code is not None:
            prefix += f" (HTTP {status_code})"
        super().__init__(f"{prefix}: {detail}")


class TransformFailure(AdocviewError):
    """XML or stylesheet could not be parsed, or the stylesheet failed to apply."""

    CAUSES = ("xml-parse", "xslt-parse", "xslt-apply")

    def __init__(self, cause: str, message: str) -> None:
        if cause not in self.CAUSES:
            raise ValueError(f"Unknown transform failure cause: {cause!r}")
        self.cause = cause
        self.message = message
        super().__init__(f"{cause}: {message}")


class ChannelDisconnected(AdocviewError):
    """The watch push channel dropped; the listener reconnects after a delay."""


class DocumentNotFound(AdocviewError):
    """A path could not be read from the file store."""

    def __init__(self, path: str, reason: str = "not found") -> None:
        self.path = path
        super().__init__(f"{path}: {reason}")
