# app/errors.py
from __future__ import annotations

from typing import Any, Dict


class TaggerError(Exception):
    """
    Base for every failure surfaced to the operator.
    Rendered as {"error": message, **details} with `status_code`.
    """

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details: Dict[str, Any] = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class AuthError(TaggerError):
    status_code = 401


class ValidationFailure(TaggerError):
    status_code = 400


class ConfigurationError(TaggerError):
    status_code = 500


class UpstreamError(TaggerError):
    """Network error or non-success response from Ghost or Gemini."""

    status_code = 502


class GenerationError(UpstreamError):
    pass


class ParseFailure(TaggerError):
    """Malformed AI or CMS payload."""

    status_code = 502
