from typing import Any, Optional


class GuestHistoryError(Exception):
    """Base class for errors surfaced to the caller of a room operation."""

    message = "Guest history operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class StoreError(GuestHistoryError):
    message = "Key-value store operation failed"


class RemoteApiError(GuestHistoryError):
    """Non-2xx or transport failure from the chat API."""

    message = "Chat API request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class InvalidToken(GuestHistoryError):
    message = "Token is invalid"


class MissingInput(GuestHistoryError):
    message = "Missing Token"


class UnknownInstallation(GuestHistoryError):
    message = "Unknown installation"
