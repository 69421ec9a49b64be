"""Validation utilities for calendar query parameters."""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from src.utils.dates import ensure_utc


@dataclass
class ValidationError:
    """Validation error details."""
    field: str
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class CalendarMonthValidator:
    """Validator for the ``year``/``month`` pair of the month view."""

    INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
    MIN_YEAR = 1
    MAX_YEAR = 9999

    @classmethod
    def _to_int(cls, value: Union[int, str, None]) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and cls.INTEGER_PATTERN.match(value.strip()):
            return int(value.strip())
        return None

    @classmethod
    def validate(cls, year: Union[int, str, None], month: Union[int, str, None]) -> List[ValidationError]:
        """Validate year and month values."""
        errors = []

        year_value = cls._to_int(year)
        if year_value is None:
            errors.append(ValidationError(
                field="year",
                code="INVALID_YEAR",
                message="Year must be an integer",
                details={"provided": year}
            ))
        elif not cls.MIN_YEAR <= year_value <= cls.MAX_YEAR:
            errors.append(ValidationError(
                field="year",
                code="YEAR_OUT_OF_RANGE",
                message=f"Year must be between {cls.MIN_YEAR} and {cls.MAX_YEAR}",
                details={"provided": year}
            ))

        month_value = cls._to_int(month)
        if month_value is None:
            errors.append(ValidationError(
                field="month",
                code="INVALID_MONTH",
                message="Month must be an integer",
                details={"provided": month}
            ))
        elif not 1 <= month_value <= 12:
            errors.append(ValidationError(
                field="month",
                code="MONTH_OUT_OF_RANGE",
                message="Month must be between 1 and 12",
                details={"provided": month}
            ))

        return errors

    @classmethod
    def parse(cls, year: Union[int, str], month: Union[int, str]) -> Tuple[int, int]:
        """Return the parsed pair. Call ``validate`` first."""
        return cls._to_int(year), cls._to_int(month)


class DateParamValidator:
    """Validator for ISO 8601 date and datetime query parameters."""

    DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

    @classmethod
    def parse(cls, value: Union[str, datetime, date, None]) -> Optional[datetime]:
        """
        Parse a date parameter into an aware UTC datetime.

        Date-only strings mean midnight UTC. A trailing ``Z`` is accepted.
        Naive datetimes are taken as UTC. Raises ``ValueError`` when the value
        cannot be parsed.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return ensure_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

        text = value.strip()
        if not text:
            return None
        if cls.DATE_ONLY_PATTERN.match(text):
            parsed = datetime.strptime(text, "%Y-%m-%d")
            return parsed.replace(tzinfo=timezone.utc)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))

    @classmethod
    def validate(cls, value: Union[str, datetime, date, None], field: str) -> List[ValidationError]:
        """Validate a date parameter."""
        errors = []
        try:
            cls.parse(value)
        except (TypeError, ValueError):
            errors.append(ValidationError(
                field=field,
                code="INVALID_DATE_FORMAT",
                message=f"{field} must be an ISO 8601 date or datetime",
                details={"provided": value}
            ))
        return errors


class ChoiceValidator:
    """Validator for enumerated string parameters."""

    @classmethod
    def validate(cls, value: Optional[str], field: str, choices: List[str]) -> List[ValidationError]:
        errors = []
        if value is not None and value not in choices:
            errors.append(ValidationError(
                field=field,
                code=f"INVALID_{field.upper()}",
                message=f"{field} must be one of: {', '.join(choices)}",
                details={"provided": value, "allowed": choices}
            ))
        return errors


def split_csv(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())
