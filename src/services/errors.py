"""Exceptions raised by the calendar aggregation services.

The three leaf kinds map to distinct client outcomes: permission failure,
invalid input, and system failure. Route handlers translate each one into
its own HTTP status and error code.
"""

from typing import List, Optional

from src.utils.validators import ValidationError


class CalendarServiceError(Exception):
    """Base exception for calendar service errors."""
    pass


class CalendarPermissionError(CalendarServiceError):
    """Raised when the caller has no tenant or targets another tenant."""
    pass


class CalendarValidationError(CalendarServiceError):
    """Raised when calendar query input is malformed."""

    def __init__(self, message: str, validation_errors: Optional[List[ValidationError]] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []


class FilterValidationError(CalendarValidationError):
    """Raised when a filter value cannot be parsed."""
    pass


class CalendarAggregationError(CalendarServiceError):
    """Raised when the store fails while resolving or fetching events."""
    pass
