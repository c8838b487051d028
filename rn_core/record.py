"""
rn_core/record.py — The reference number (RN) and its JSON description.

An RN binds an authority, instance, type, version and timestamp to one
canonical non-negative integer (the packed form) under a wire format,
and exposes the three external views of that integer:

    packed form    468123400500615235364910       (fixed-offset decimal)
    encoded form   H31DDZ-TFSV8C-KELK2B           (base 33 + check digits)
    fielded form   1234:5:06:2018-04-12T12:34:51.468Z:v0   (debugging only)

RNs of one wire format order by their packed integer; RNs of different
formats do not compare. Within one (authority, instance,
type, version) the millisecond group is the most significant part of
that integer, so the order is the wire-contract order, not a
chronological one across seconds.

RNDescription is the pydantic interchange model: JSON Schema is exported
from it, never hand-written.
"""

# NOTE: `from __future__ import annotations` is omitted so that pydantic
# resolves the RNDescription annotations at class creation.

import json
from datetime import datetime, timezone
from functools import total_ordering
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .codec import ALPHABET, DEFAULT_REPRESENTATION, Representation
from .errors import FormatError
from .fields import Authority, Instance, TimeStamp, Type, Version, coerce
from .layout import CURRENT_FORMAT, WireFormat, get_wire_format


# ---------------------------------------------------------------------------
# RN
# ---------------------------------------------------------------------------

@total_ordering
class RN:
    """A reference number.

    Args:
        authority:  Issuing authority (Authority, int or decimal string).
        instance:   Deployment instance.
        type_:      Type code.
        timestamp:  TimeStamp or datetime of issue.
        version:    Scheme version. Defaults to the wire format's default
                    for versioned formats; must be None otherwise.
        wire_format: Packed layout. Defaults to the current format.
        representation: Encoded-string parameters.

    Raises:
        RangeError:  a field (or the timestamp) is outside its domain or
                     does not fit the wire format.
        FormatError: a version was given for an unversioned format.
    """

    __slots__ = (
        "_authority",
        "_instance",
        "_type",
        "_version",
        "_timestamp",
        "_wire_format",
        "_representation",
        "_value",
    )

    def __init__(
        self,
        authority: Union[Authority, int, str],
        instance: Union[Instance, int, str],
        type_: Union[Type, int, str],
        timestamp: Union[TimeStamp, datetime],
        *,
        version: Union[Version, int, str, None] = None,
        wire_format: WireFormat = CURRENT_FORMAT,
        representation: Representation = DEFAULT_REPRESENTATION,
    ) -> None:
        authority = coerce(Authority, authority)
        instance = coerce(Instance, instance)
        type_ = coerce(Type, type_)
        timestamp = coerce(TimeStamp, timestamp)

        if wire_format.versioned:
            if version is None:
                version = wire_format.default_version
            version = coerce(Version, version)
        elif version is not None:
            raise FormatError(
                f"The {wire_format.name} format carries no version digit"
            )

        self._value = wire_format.pack(authority, instance, type_, version, timestamp)
        self._authority = authority
        self._instance = instance
        self._type = type_
        self._version = version
        self._timestamp = timestamp
        self._wire_format = wire_format
        self._representation = representation

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_packed(
        cls,
        value: Union[int, str],
        wire_format: WireFormat = CURRENT_FORMAT,
        representation: Representation = DEFAULT_REPRESENTATION,
    ) -> "RN":
        """Parse a packed integer (or its decimal string) into an RN.

        Raises:
            InvalidPackedFormError: wrong width, negative, or non-digits.
            RangeError:             a field value out of range.
            DateError:              calendar fields that are not a real date.
        """
        if isinstance(value, str):
            packed = value.strip()
        else:
            packed = wire_format.format_packed(value)
        parts = wire_format.decompose(packed)

        if "epoch_seconds" in parts:
            timestamp = TimeStamp.from_epoch_millis(
                parts["epoch_seconds"] * 1000 + parts["millisecond"]
            )
        else:
            timestamp = TimeStamp.from_fields(
                parts["year"], parts["month"], parts["day"],
                parts["hour"], parts["minute"], parts["second"],
                parts["millisecond"],
            )

        return cls(
            Authority(parts["authority"]),
            Instance(parts["instance"]),
            Type(parts["type"]),
            timestamp,
            version=parts.get("version"),
            wire_format=wire_format,
            representation=representation,
        )

    @classmethod
    def from_encoded(
        cls,
        text: str,
        wire_format: WireFormat = CURRENT_FORMAT,
        representation: Representation = DEFAULT_REPRESENTATION,
    ) -> "RN":
        """Decode and verify an encoded string, then parse the packed value.

        The wire format is never inferred: pass CALENDAR_FORMAT explicitly
        to read legacy numbers.

        Raises:
            FormatError, ChecksumError, plus everything from_packed raises.
        """
        value = representation.decode(text)
        return cls.from_packed(value, wire_format, representation)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @property
    def authority(self) -> Authority:
        return self._authority

    @property
    def instance(self) -> Instance:
        return self._instance

    @property
    def type(self) -> Type:
        return self._type

    @property
    def version(self) -> Optional[Version]:
        return self._version

    @property
    def timestamp(self) -> TimeStamp:
        return self._timestamp

    @property
    def wire_format(self) -> WireFormat:
        return self._wire_format

    @property
    def representation(self) -> Representation:
        return self._representation

    # ------------------------------------------------------------------
    # External forms
    # ------------------------------------------------------------------

    @property
    def value(self) -> int:
        """The canonical packed integer."""
        return self._value

    @property
    def packed_form(self) -> str:
        return self._wire_format.format_packed(self._value)

    @property
    def encoded_form(self) -> str:
        return self._representation.encode(self._value)

    @property
    def fielded_form(self) -> str:
        """AAAA:I:TT:<ISO 8601 UTC>[:vN] — for people, not for parsing."""
        text = (
            f"{self._authority.id:04d}:{self._instance.id}:{self._type.id:02d}:"
            f"{self._timestamp.isoformat()}"
        )
        if self._version is not None:
            text += f":v{self._version.id}"
        return text

    def describe(self) -> "RNDescription":
        return RNDescription(
            wire_format=self._wire_format.name,
            authority=self._authority.id,
            instance=self._instance.id,
            type=self._type.id,
            version=self._version.id if self._version is not None else None,
            timestamp=self._timestamp.instant,
            packed=self.packed_form,
            encoded=self.encoded_form,
            fielded=self.fielded_form,
        )

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def _key(self) -> tuple:
        return (
            self._authority,
            self._instance,
            self._type,
            self._version,
            self._timestamp,
            self._wire_format.name,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RN):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "RN") -> bool:
        if not isinstance(other, RN):
            return NotImplemented
        # Values from different layouts are not comparable
        if other._wire_format.name != self._wire_format.name:
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.fielded_form

    def __repr__(self) -> str:
        return f"RN({self.encoded_form!r}, wire_format={self._wire_format.name!r})"


# ---------------------------------------------------------------------------
# JSON interchange model
# ---------------------------------------------------------------------------

_ENCODED_PATTERN = rf"^[{ALPHABET}]+(-[{ALPHABET}]+)*$"


class RNDescription(BaseModel):
    """Every view of one reference number, as a JSON-friendly record.

    Validation re-decodes `encoded` under `wire_format` and requires the
    other fields to agree with it, so a description that loads is a
    description of a real RN.
    """

    model_config = ConfigDict(frozen=True)

    wire_format: str = Field(
        ...,
        description="Name of the packed layout, e.g. 'epoch-v0'.",
    )
    authority: int = Field(
        ...,
        ge=Authority.MIN_ID,
        le=Authority.MAX_ID,
        description="Issuing authority code.",
    )
    instance: int = Field(
        ...,
        ge=Instance.MIN_ID,
        le=Instance.MAX_ID,
        description="Generator deployment instance under the authority.",
    )
    type: int = Field(
        ...,
        ge=Type.MIN_ID,
        le=Type.MAX_ID,
        description="Classification code of the referenced entity.",
    )
    version: Optional[int] = Field(
        default=None,
        ge=Version.MIN_ID,
        le=Version.MAX_ID,
        description="Scheme version. None for unversioned formats.",
    )
    timestamp: datetime = Field(
        ...,
        description="UTC instant of issue, millisecond precision.",
    )
    packed: str = Field(
        ...,
        pattern=r"^\d+$",
        description="Fixed-width zero-padded decimal packed form.",
    )
    encoded: str = Field(
        ...,
        pattern=_ENCODED_PATTERN,
        description="Grouped base-33 form with check digits.",
    )
    fielded: str = Field(
        ...,
        description="Human-readable debugging form. Not for round-tripping.",
    )

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def validate_consistency(self) -> "RNDescription":
        rn = self.to_rn()
        if rn.packed_form != self.packed:
            raise ValueError(
                f"packed {self.packed} does not match encoded {self.encoded}"
            )
        actual = (
            rn.authority.id,
            rn.instance.id,
            rn.type.id,
            rn.version.id if rn.version is not None else None,
            rn.timestamp.instant,
        )
        stated = (
            self.authority, self.instance, self.type, self.version,
            TimeStamp(self.timestamp).instant,
        )
        if actual != stated:
            raise ValueError(
                f"fields {stated} do not match encoded {self.encoded}"
            )
        return self

    def to_rn(self) -> RN:
        """Rebuild the RN from the encoded form."""
        return RN.from_encoded(self.encoded, get_wire_format(self.wire_format))

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def export_json_schema() -> str:
    """Export the RNDescription JSON Schema (generated, never hand-edited)."""
    return json.dumps(RNDescription.model_json_schema(), indent=2)


if __name__ == "__main__":
    print(export_json_schema())
