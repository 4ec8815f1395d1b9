"""
Domain errors raised by the bracket and settlement services.

Each error carries the HTTP status the routers map it to, so services stay
free of request/response objects.
"""


class BracketEngineError(Exception):
    """Base exception for bracket engine errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BracketEngineError):
    """Tournament or match does not exist"""

    status_code = 404


class Forbidden(BracketEngineError):
    """Caller may not manage this tournament"""

    status_code = 403


class InvalidState(BracketEngineError):
    """Operation not allowed in the current tournament or match state"""

    status_code = 400


class InsufficientParticipants(BracketEngineError):
    status_code = 400


class FinalNotComplete(BracketEngineError):
    status_code = 400


class InvalidResult(BracketEngineError):
    """Submitted result does not fit the match (e.g. unknown winner)"""

    status_code = 400


class LedgerFailure(BracketEngineError):
    """A ledger credit failed; the enclosing unit of work must roll back"""

    status_code = 502
