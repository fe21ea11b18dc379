"""Error taxonomy shared by the pipeline, its capabilities, and the history store."""

from __future__ import annotations

from typing import Optional, Union


class ScreenSageError(Exception):
    """Base class for all service-level errors."""


class CredentialError(ScreenSageError):
    """Raised when exchanging credentials for a bearer token fails."""


class UpstreamError(ScreenSageError):
    """An upstream vendor call failed.

    Attributes:
        status: HTTP status or vendor error code, when the upstream reported one.
        message: Human readable detail from the upstream or the transport.
    """

    def __init__(self, message: str, status: Optional[Union[int, str]] = None) -> None:
        self.status = status
        self.message = message
        super().__init__(message if status is None else f"{message} (status {status})")


class RecognitionError(UpstreamError):
    """Raised when OCR of an image fails. Terminates the current run."""


class GenerationError(UpstreamError):
    """Raised when answer generation fails. The run continues with a fallback answer."""


class PersistenceError(ScreenSageError):
    """Raised when the history store cannot be read or written."""


class NotFoundError(ScreenSageError):
    """Raised when a history record id does not exist."""

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Screenshot record {record_id} not found")
