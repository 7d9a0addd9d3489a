"""Custom exceptions for STT services."""


class TranscriptionError(Exception):
    """Raised when the transcription provider fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
