"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class TokenErrorResponse(BaseModel):
    """Body of every 401 produced by the bearer-token gate."""

    error: Literal[
        "token_missing",
        "token_malformed",
        "token_expired",
        "token_invalid",
        "user_not_found",
        "user_deleted",
    ]
    message: str


class NotFoundError(BaseModel):
    code: Literal["PRINCIPAL_NOT_FOUND", "RESOURCE_NOT_FOUND", "OWNERSHIP_NOT_FOUND"]
    message: str
