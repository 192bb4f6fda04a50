"""Application error taxonomy.

Every error carries a short human message and the HTTP status the API layer
renders it with. Handlers in ``main.py`` turn them into ``{"detail": msg}``.
"""
from __future__ import annotations

from fastapi import status


class CareerCoachError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(CareerCoachError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(CareerCoachError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class GenerationError(CareerCoachError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to generate content"


class LLMResponseDecodeError(GenerationError):
    """The model answered, but not with JSON of the requested shape."""

    default_message = "AI response could not be decoded"


class PersistenceError(CareerCoachError):
    default_message = "Failed to save changes"


class InvalidInputError(CareerCoachError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"
