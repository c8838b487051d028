"""
rn_core/fields.py — Field value types carried inside a reference number.

Authority, Instance, Type and Version are small bounded integers;
TimeStamp is a UTC instant with millisecond precision. Each type checks
its own range on construction and is frozen afterwards, so everything
downstream (packing, generation) can take a constructed value as valid
and never re-checks it.

Usage:
    authority = Authority(1234)
    instance = Instance("5")
    stamp = TimeStamp.from_epoch_millis(1523536491468)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import ClassVar, Union

from .errors import DateError, FormatError, RangeError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLI = timedelta(milliseconds=1)


def _parse_id(value: Union[int, str], label: str) -> int:
    """Accept an int or its canonical decimal string."""
    if isinstance(value, bool):
        raise FormatError(f"Illegal identifier for {label}: {value!r} is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise FormatError(
                f"Illegal identifier for {label}: {value!r} is not a decimal number"
            )
        return int(value)
    raise FormatError(
        f"Illegal identifier for {label}: expected int or str, "
        f"got {type(value).__name__}"
    )


# ---------------------------------------------------------------------------
# Bounded identifiers
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class _Identifier:
    """Common behaviour for the bounded integer fields.

    Equality and hashing are structural: same kind, same id.
    """

    id: int

    MIN_ID: ClassVar[int] = 0
    MAX_ID: ClassVar[int] = 0
    LABEL: ClassVar[str] = "identifier"

    def __post_init__(self) -> None:
        value = _parse_id(self.id, self.LABEL)
        if not self.is_valid_identifier(value):
            raise RangeError(
                f"identifier for {self.LABEL}", value, self.MIN_ID, self.MAX_ID
            )
        object.__setattr__(self, "id", value)

    @classmethod
    def is_valid_identifier(cls, value: int) -> bool:
        """True if value lies in the permitted range for this kind."""
        return cls.MIN_ID <= value <= cls.MAX_ID

    def __int__(self) -> int:
        return self.id

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, slots=True)
class Authority(_Identifier):
    """The body permitted to issue reference numbers (four-digit code).

    Does not check that the code belongs to a real authority; that would
    need a registry lookup.
    """

    MIN_ID = 1000
    MAX_ID = 9999
    LABEL = "authority"


@dataclass(frozen=True, slots=True)
class Instance(_Identifier):
    """Disambiguates several generator deployments under one authority.

    The type admits the widest range any wire format uses; a format with a
    narrower instance field rejects larger ids when packing.
    """

    MIN_ID = 0
    MAX_ID = 999
    LABEL = "instance"


@dataclass(frozen=True, slots=True)
class Type(_Identifier):
    """Classifies the kind of thing a reference number denotes."""

    MIN_ID = 0
    MAX_ID = 99
    LABEL = "type"


@dataclass(frozen=True, slots=True)
class Version(_Identifier):
    """Encoding-scheme revision that produced a reference number."""

    MIN_ID = 0
    MAX_ID = 9
    LABEL = "version"


# ---------------------------------------------------------------------------
# TimeStamp
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True, order=True)
class TimeStamp:
    """A UTC instant, truncated to the millisecond, between 2000 and 9999.

    Aware datetimes are converted to UTC. Naive datetimes are taken to be
    UTC already.
    """

    instant: datetime

    MIN_YEAR: ClassVar[int] = 2000
    MAX_YEAR: ClassVar[int] = 9999

    def __post_init__(self) -> None:
        instant = self.instant
        if not isinstance(instant, datetime):
            raise FormatError(
                f"TimeStamp needs a datetime, got {type(instant).__name__}"
            )
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        else:
            try:
                instant = instant.astimezone(timezone.utc)
            except OverflowError as e:
                raise RangeError(
                    "instant year", instant.year, self.MIN_YEAR, self.MAX_YEAR
                ) from e
        if not self.MIN_YEAR <= instant.year <= self.MAX_YEAR:
            raise RangeError(
                "instant year", instant.year, self.MIN_YEAR, self.MAX_YEAR
            )
        instant = instant.replace(microsecond=instant.microsecond // 1000 * 1000)
        object.__setattr__(self, "instant", instant)

    @classmethod
    def from_epoch_millis(cls, millis: int) -> "TimeStamp":
        """Build from milliseconds since 1970-01-01T00:00:00Z."""
        if not MIN_EPOCH_MILLIS <= millis <= MAX_EPOCH_MILLIS:
            raise RangeError(
                "instant (epoch milliseconds)",
                millis, MIN_EPOCH_MILLIS, MAX_EPOCH_MILLIS,
            )
        return cls(_EPOCH + timedelta(milliseconds=millis))

    @classmethod
    def from_fields(
        cls,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        millisecond: int = 0,
    ) -> "TimeStamp":
        """Build from calendar fields in UTC.

        Raises:
            RangeError: year outside 2000-9999.
            DateError:  fields that do not name a real instant
                        (30 February, hour 24, millisecond 1000...).
        """
        if not cls.MIN_YEAR <= year <= cls.MAX_YEAR:
            raise RangeError("instant year", year, cls.MIN_YEAR, cls.MAX_YEAR)
        try:
            instant = datetime(
                year, month, day, hour, minute, second,
                millisecond * 1000, tzinfo=timezone.utc,
            )
        except ValueError as e:
            raise DateError(
                f"Not a valid calendar instant: {year:04d}-{month:02d}-{day:02d}"
                f"T{hour:02d}:{minute:02d}:{second:02d}.{millisecond:03d} ({e})"
            ) from e
        return cls(instant)

    @property
    def epoch_millis(self) -> int:
        return (self.instant - _EPOCH) // _ONE_MILLI

    @property
    def epoch_seconds(self) -> int:
        return self.epoch_millis // 1000

    @property
    def millisecond(self) -> int:
        return self.instant.microsecond // 1000

    def isoformat(self) -> str:
        """ISO 8601 in UTC with milliseconds, e.g. 2018-04-12T12:34:51.468Z."""
        return f"{self.instant:%Y-%m-%dT%H:%M:%S}.{self.millisecond:03d}Z"

    def __str__(self) -> str:
        return self.isoformat()


MIN_EPOCH_MILLIS = (
    datetime(TimeStamp.MIN_YEAR, 1, 1, tzinfo=timezone.utc) - _EPOCH
) // _ONE_MILLI
MAX_EPOCH_MILLIS = (
    datetime(TimeStamp.MAX_YEAR, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
    - _EPOCH
) // _ONE_MILLI


def coerce(kind, value):
    """Return value as a kind, constructing (and range checking) if needed."""
    return value if isinstance(value, kind) else kind(value)
