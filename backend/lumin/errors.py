from __future__ import annotations


class LuminError(Exception):
    """Base error; rendered as ``{"error": message}`` with ``status_code``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LuminError):
    status_code = 400


class AuthError(LuminError):
    status_code = 401


class TokenError(AuthError):
    # Token present but invalid or expired
    status_code = 403


class NotFoundError(LuminError):
    status_code = 404


class GenerationError(LuminError):
    status_code = 500


class ProviderError(Exception):
    """The text-generation provider rejected or failed the request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelNotFoundError(ProviderError):
    def __init__(self, model: str, message: str | None = None) -> None:
        super().__init__(message or f"model not found: {model}", status_code=404)
        self.model = model


class CodeExecutionError(Exception):
    pass
