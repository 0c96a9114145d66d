"""Exception types raised across the ingestion service."""


class IngestError(Exception):
    """Base class for all service errors."""


class MessageDecodeError(IngestError):
    """The inbound payload could not be read as text."""


class UnknownProfileError(IngestError):
    """No sender profile is registered under the requested name."""


class StoreError(IngestError):
    """The backing store could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class IngestionError(IngestError):
    """An ingestion step crashed with an unexpected exception."""

    def __init__(self, step: str, detail: str):
        super().__init__(f"Step '{step}' failed: {detail}")
        self.step = step
        self.detail = detail
