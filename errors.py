"""
Error types for the portfolio API.

Every error is an HTTPException so handlers can simply raise it; the app
renders them all as `{"message": ...}`.
"""

from typing import Any, Optional

from fastapi import HTTPException


class PortfolioError(HTTPException):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.extra = extra


class ValidationError(PortfolioError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(PortfolioError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentials(AuthError):
    default_message = "Invalid password"


class NotFound(PortfolioError):
    status_code = 404
    default_message = "Not found"


class RateLimited(PortfolioError):
    status_code = 429
    default_message = "Too many requests"


class UnsupportedMediaType(PortfolioError):
    status_code = 400
    default_message = "Only image files are allowed"


class UpstreamError(PortfolioError):
    status_code = 500
    default_message = "Upstream service failed"
