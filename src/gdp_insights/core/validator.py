from __future__ import annotations

"""Normalization and validation of raw GDP record submissions."""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..domain.errors import ValidationError
from ..domain.models import GdpRecordInput


MIN_YEAR = 1900

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ValidationOutcome:
    record: Optional[GdpRecordInput] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors


def _coerce_number(raw: Any) -> Optional[float]:
    """Return ``raw`` as a finite float, or None when it is not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            num = float(raw)
        except OverflowError:
            return None
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(num):
        return None
    return num


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def max_year(clock: Clock = utc_now) -> int:
    return clock().year + 1


def _check_year(raw: Any, clock: Clock) -> tuple[Optional[int], List[str]]:
    if _is_blank(raw):
        return None, ["Year is required."]
    num = _coerce_number(raw)
    if num is None:
        return None, ["Year must be a number."]
    if not num.is_integer():
        return None, ["Year must be a whole number."]
    year = int(num)
    if year < MIN_YEAR:
        return None, [f"Year must be {MIN_YEAR} or later."]
    if year > max_year(clock):
        return None, ["Year cannot be in the distant future."]
    return year, []


def _check_value(raw: Any) -> tuple[Optional[float], List[str]]:
    if _is_blank(raw):
        return None, ["GDP value is required."]
    num = _coerce_number(raw)
    if num is None:
        return None, ["GDP value must be a number."]
    if num <= 0:
        return None, ["GDP value must be a positive number."]
    return num, []


def _check_country(raw: Any) -> tuple[Optional[str], List[str]]:
    if not isinstance(raw, str) or not raw.strip():
        return None, ["Country is required."]
    return raw.strip(), []


def validate_submission(raw: Mapping[str, Any], clock: Clock = utc_now) -> ValidationOutcome:
    """Validate ``{year, value, country}`` and normalize the field types.

    All fields are checked so the caller can show every problem at once.
    """
    year, year_errors = _check_year(raw.get("year"), clock)
    value, value_errors = _check_value(raw.get("value"))
    country, country_errors = _check_country(raw.get("country"))

    errors: Dict[str, List[str]] = {}
    if year_errors:
        errors["year"] = year_errors
    if value_errors:
        errors["value"] = value_errors
    if country_errors:
        errors["country"] = country_errors
    if errors:
        return ValidationOutcome(errors=errors)
    return ValidationOutcome(record=GdpRecordInput(year=year, value=value, country=country))


def require_valid(raw: Mapping[str, Any], clock: Clock = utc_now) -> GdpRecordInput:
    """Like :func:`validate_submission` but raises :class:`ValidationError`."""
    outcome = validate_submission(raw, clock)
    if not outcome.ok:
        raise ValidationError(outcome.errors)
    return outcome.record  # type: ignore[return-value]


def positive_number(raw: Any) -> Optional[float]:
    """Return ``raw`` as a float if it is a real, finite, strictly positive number.

    Strings are not accepted here; the edit path receives typed JSON numbers.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    try:
        num = float(raw)
    except OverflowError:
        return None
    if not math.isfinite(num) or num <= 0:
        return None
    return num
