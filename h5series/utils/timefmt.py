"""Period, offset and timestamp formatting helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from h5series.errors import ConfigurationError, ContractViolation
from h5series.storage.format import FILE_EXTENSION

_UNITS = ("us", "ms", "s", "min")
_QUOTIENTS = (1000, 1000, 60, 1)

_MICROSECOND = timedelta(microseconds=1)


def to_unit_string(period: timedelta, underscore: bool = False) -> str:
    """Render a period as integer + largest exact unit, e.g. "1 s" or "100 ms".

    Args:
        period: Positive period.
        underscore: Join value and unit with "_" instead of a space ("1_s").
    """
    if period <= timedelta(0):
        raise ConfigurationError(f"Period must be positive, got {period}.")

    sep = "_" if underscore else " "
    value = period // _MICROSECOND

    for unit, quotient in zip(_UNITS, _QUOTIENTS):
        quotient_value, remainder = divmod(value, quotient)
        if remainder != 0:
            return f"{value}{sep}{unit}"
        value = quotient_value

    return f"{value}{sep}{_UNITS[-1]}"


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_date_time(begin: datetime) -> str:
    """ISO-8601 UTC timestamp with second precision, e.g. 2020-01-01T00:00:00Z."""
    return as_utc(begin).strftime("%Y-%m-%dT%H:%M:%SZ")


def file_name(begin: datetime, sample_period: timedelta) -> str:
    """File name for the period starting at begin, e.g. 2020-01-01T00-00-00Z_1 s.h5."""
    stamp = as_utc(begin).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{stamp}Z_{to_unit_string(sample_period)}{FILE_EXTENSION}"


def period_length(file_period: timedelta, sample_period: timedelta) -> int:
    """Number of samples one file holds."""
    if sample_period <= timedelta(0):
        raise ConfigurationError(f"Sample period must be positive, got {sample_period}.")
    if file_period <= timedelta(0):
        raise ConfigurationError(f"File period must be positive, got {file_period}.")
    return file_period // sample_period


def element_offset(file_offset: timedelta, sample_period: timedelta) -> int:
    """Convert a time offset within the file period into an element offset."""
    if file_offset < timedelta(0):
        raise ContractViolation(f"File offset must not be negative, got {file_offset}.")

    offset, remainder = divmod(file_offset, sample_period)
    if remainder:
        raise ContractViolation(
            f"File offset {file_offset} is not a multiple of the sample period {sample_period}."
        )
    return offset
