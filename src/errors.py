"""
Error Taxonomy

Every failure that reaches the API boundary is one of these.
Each carries the HTTP status it maps to, so the API layer never has to
guess and business code never has to know about HTTP.

Row-level CSV problems are NOT errors - the import pipeline records them
as skip reasons and keeps going.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.public_message
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> dict:
        """JSON body returned to the client."""
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    """Malformed or missing input (bad enum, non-positive amount, missing CSV column)."""

    status_code = 400
    public_message = "Validation failed"


class NotFoundError(LedgerError):
    """Entity absent or owned by someone else - the two are indistinguishable."""

    status_code = 404
    public_message = "Not found"


class ConflictError(LedgerError):
    """Uniqueness violation, or a row changed underneath a concurrent edit."""

    status_code = 409
    public_message = "Already exists"


class UnauthorizedError(LedgerError):
    """No resolvable identity on the request."""

    status_code = 401
    public_message = "Unauthorized"


class InternalError(LedgerError):
    """
    Storage failure or unexpected exception.

    The message is always generic; the cause is logged server-side only.
    """

    status_code = 500

    def to_response(self) -> dict:
        return {"error": self.public_message}
