"""
rn_core/layout.py — Fixed-offset decimal layouts for the packed form.

A wire format lists the fields of the packed form in order, each with a
fixed decimal width. Packing zero-pads every field and concatenates them;
parsing slices the fixed-width string back at the same offsets. The
order and widths are the wire contract: changing either means a new
format with a new name, never an edit to an existing one.

Formats:

    epoch-v0       (current)
        mmm aaaa iii ttt ssssssssss v          24 digits
        millisecond, authority, instance, type, Unix seconds, version

    calendar-2018  (legacy, decode by name only)
        mmm aaaa i tt yyyy MM dd hh mm ss      24 digits
        millisecond, authority, instance, type, UTC calendar fields

Formats are never guessed from the input: both share the same width and
check digits, so the caller always names the one it expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import InvalidPackedFormError, RangeError
from .fields import Authority, Instance, TimeStamp, Type, Version


@dataclass(frozen=True)
class FieldSpec:
    """One decimal field of a packed layout."""

    name: str
    width: int

    @property
    def limit(self) -> int:
        return 10 ** self.width


@dataclass(frozen=True)
class WireFormat:
    """A named packed-form layout.

    Attributes:
        name:            Stable identifier, used for lookup and in debug output.
        fields:          Field specs in wire order, most significant first.
        max_instance:    Largest instance id the layout can carry.
        versioned:       Whether a version digit is part of the layout.
        default_version: Version written when the caller gives none.
    """

    name: str
    fields: Tuple[FieldSpec, ...]
    max_instance: int
    versioned: bool = False
    default_version: Optional[int] = None

    @property
    def width(self) -> int:
        return sum(f.width for f in self.fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def offsets(self) -> Dict[str, Tuple[int, int]]:
        """Map field name to its (start, end) slice in the packed string."""
        result = {}
        start = 0
        for f in self.fields:
            result[f.name] = (start, start + f.width)
            start += f.width
        return result

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    def check_instance(self, instance: Instance) -> None:
        if instance.id > self.max_instance:
            raise RangeError(
                f"identifier for instance in {self.name} format",
                instance.id, Instance.MIN_ID, self.max_instance,
            )

    def field_values(
        self,
        authority: Authority,
        instance: Instance,
        type_: Type,
        version: Optional[Version],
        timestamp: TimeStamp,
    ) -> Dict[str, int]:
        """Every field value this or any other layout might need."""
        instant = timestamp.instant
        values = {
            "millisecond": timestamp.millisecond,
            "authority": authority.id,
            "instance": instance.id,
            "type": type_.id,
            "epoch_seconds": timestamp.epoch_seconds,
            "year": instant.year,
            "month": instant.month,
            "day": instant.day,
            "hour": instant.hour,
            "minute": instant.minute,
            "second": instant.second,
        }
        if version is not None:
            values["version"] = version.id
        return values

    def pack(
        self,
        authority: Authority,
        instance: Instance,
        type_: Type,
        version: Optional[Version],
        timestamp: TimeStamp,
    ) -> int:
        """Concatenate the zero-padded fields into the packed integer.

        Raises:
            RangeError: a value does not fit its field in this layout
                        (instance above max_instance, or an instant beyond
                        the last representable epoch second).
        """
        self.check_instance(instance)
        values = self.field_values(authority, instance, type_, version, timestamp)
        parts = []
        for f in self.fields:
            value = values[f.name]
            if value >= f.limit:
                raise RangeError(
                    f"{f.name} for {self.name} format", value, 0, f.limit - 1
                )
            parts.append(f"{value:0{f.width}d}")
        return int("".join(parts))

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def format_packed(self, value: int) -> str:
        """Zero-padded decimal string of exactly width digits."""
        if value < 0:
            raise InvalidPackedFormError(f"Bad decimal form (negative): {value}")
        text = f"{value:0{self.width}d}"
        if len(text) != self.width:
            raise InvalidPackedFormError(
                f"Bad decimal form (incorrect length): {value} has {len(text)} "
                f"digits, {self.name} needs {self.width}"
            )
        return text

    def decompose(self, packed: str) -> Dict[str, int]:
        """Slice a packed decimal string into its integer field values."""
        if len(packed) != self.width or not (packed.isascii() and packed.isdigit()):
            raise InvalidPackedFormError(
                f"Bad decimal form: {packed!r} is not {self.width} decimal digits"
            )
        return {
            name: int(packed[start:end])
            for name, (start, end) in self.offsets().items()
        }


def _fields(*specs: Tuple[str, int]) -> Tuple[FieldSpec, ...]:
    return tuple(FieldSpec(name, width) for name, width in specs)


CURRENT_FORMAT = WireFormat(
    name="epoch-v0",
    fields=_fields(
        ("millisecond", 3),
        ("authority", 4),
        ("instance", 3),
        ("type", 3),
        ("epoch_seconds", 10),
        ("version", 1),
    ),
    max_instance=999,
    versioned=True,
    default_version=0,
)

CALENDAR_FORMAT = WireFormat(
    name="calendar-2018",
    fields=_fields(
        ("millisecond", 3),
        ("authority", 4),
        ("instance", 1),
        ("type", 2),
        ("year", 4),
        ("month", 2),
        ("day", 2),
        ("hour", 2),
        ("minute", 2),
        ("second", 2),
    ),
    max_instance=9,
)

WIRE_FORMATS: Dict[str, WireFormat] = {
    fmt.name: fmt for fmt in (CURRENT_FORMAT, CALENDAR_FORMAT)
}


def get_wire_format(name: str) -> WireFormat:
    """Look up a wire format by name."""
    try:
        return WIRE_FORMATS[name]
    except KeyError:
        raise ValueError(
            f"Unknown wire format {name!r}; known formats: "
            f"{', '.join(sorted(WIRE_FORMATS))}"
        ) from None
