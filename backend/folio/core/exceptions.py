"""Error taxonomy shared by the section saves, the JSON import and the resume import."""

from typing import Optional


class PortfolioError(Exception):
    """
    Base class for every failure the portfolio workflows surface to a user.

    Attributes:
        message: Human-readable error, safe to show in the UI
        status_code: HTTP status the API layer reports for this error
    """

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class Unauthorized(PortfolioError):
    status_code = 401


class SectionValidationError(PortfolioError):
    """A required field is missing or empty (e.g. the header name)."""

    status_code = 400


class UsernameTaken(PortfolioError):
    status_code = 409

    def __init__(self, message: str = "Username is already taken"):
        super().__init__(message)


class UpstreamError(PortfolioError):
    """The text-generation call failed or ran past its time budget."""

    status_code = 502


class MalformedResponse(PortfolioError):
    status_code = 502


class EmptyResult(PortfolioError):
    status_code = 400


class PersistenceError(PortfolioError):
    status_code = 500
