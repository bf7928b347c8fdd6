"""
Errors raised by the estimate client.

Every error carries a `user_message` that is safe to show as-is.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for estimate client failures."""

    @property
    def user_message(self) -> str:
        return str(self)


class EmptyInputError(AnalysisError):
    def __init__(self):
        super().__init__("Please enter a food description or attach a photo.")


class RemoteError(AnalysisError):
    """The server reported a failure; its message is already user-facing."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(AnalysisError):
    def __init__(self, details: str):
        super().__init__(details)
        self.details = details

    @property
    def user_message(self) -> str:
        return f"Network error: {self.details}. Please check your connection and try again."


class StreamInterruptedError(AnalysisError):
    """The connection dropped while the estimate was streaming."""

    def __init__(self, details: str = ""):
        super().__init__(details or "stream interrupted")
        self.details = details

    @property
    def user_message(self) -> str:
        return "Connection interrupted, please retry."


class InvalidResponseError(AnalysisError):
    def __init__(self):
        super().__init__("Analysis returned an invalid response.")


class UnauthorizedError(AnalysisError):
    def __init__(self, details: Optional[str] = None):
        super().__init__(details or "unauthorized")
        self.details = details

    @property
    def user_message(self) -> str:
        if self.details:
            return f"Your session expired. {self.details}"
        return "Your session expired. Please log in again."
