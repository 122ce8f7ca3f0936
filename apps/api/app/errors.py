"""Application exception types."""

from app.adapters.auth.base import TokenDecision
from app.schemas.error import ErrorResponse, TokenErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class TokenRejectedError(Exception):
    """Bearer token gate said no; always rendered as 401 ``{"error", "message"}``."""

    def __init__(self, decision: TokenDecision) -> None:
        if decision.accepted or decision.code is None:
            raise ValueError("TokenRejectedError requires a rejected decision")
        self.decision = decision
        self.payload = TokenErrorResponse(error=decision.code.value, message=decision.message or "Unauthorized")
        super().__init__(self.payload.message)


def not_found(code: str, message: str) -> ApiError:
    return ApiError(status_code=404, code=code, message=message)


__all__ = ["ApiError", "TokenRejectedError", "not_found"]
