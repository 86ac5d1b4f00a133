"""Domain exception hierarchy.

Subclasses set ``code`` and ``status_code`` at the class level; callers
provide ``message`` and an optional ``details`` list. The API layer turns
these into JSON error bodies; the core never imports the framework.
"""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors."""

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class NoDataYetException(NotFoundException):
    """The entity exists but nothing has been computed or fetched for it yet."""

    code = "NO_DATA_YET"


class NotificationChannelException(AppException):
    code = "NOTIFICATION_FAILED"
    status_code = 502


class WeatherSourceException(AppException):
    code = "WEATHER_SOURCE_ERROR"
    status_code = 502
