"""Epoch timestamp normalisation.

The upstream source sends ``created_at`` as a bare number whose unit is not
stated.  Values above SECONDS_EPOCH_THRESHOLD are read as seconds, anything
else as milliseconds.  A millisecond value for any date after 1970-01-20
exceeds the threshold too, so callers that know the unit should pass it.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Literal, Optional, Union

SECONDS_EPOCH_THRESHOLD = 1_700_000_000

EpochUnit = Literal["s", "ms"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def infer_unit(raw: Union[int, float]) -> EpochUnit:
    return "s" if raw > SECONDS_EPOCH_THRESHOLD else "ms"


def to_epoch_millis(raw: Union[int, float], unit: Optional[EpochUnit] = None) -> float:
    unit = unit or infer_unit(raw)
    if unit == "s":
        return raw * 1000
    if unit == "ms":
        return raw
    raise ValueError(f"unknown epoch unit {unit!r}")


def normalize(raw, unit: Optional[EpochUnit] = None) -> Optional[datetime]:
    """Return the UTC instant for a raw epoch number.

    Never raises for bad data: None, non-numeric input and values outside the
    datetime range all yield None.
    """
    if unit not in (None, "s", "ms"):
        raise ValueError(f"unknown epoch unit {unit!r}")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
        millis = to_epoch_millis(value, unit)
        return _EPOCH + timedelta(milliseconds=millis)
    except (TypeError, ValueError, OverflowError):
        return None


def calendar_day(raw, unit: Optional[EpochUnit] = None) -> Optional[date]:
    instant = normalize(raw, unit)
    return instant.date() if instant else None
