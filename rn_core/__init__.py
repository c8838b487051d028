"""
RN Core — Reference number values, wire formats and the check-digit codec.

__version__ is the library version. Wire formats carry their own stable
names (see layout.WIRE_FORMATS) and never change once published.
"""

__version__ = "0.1.0"

from .errors import (
    RNError,
    RangeError,
    FormatError,
    InvalidPackedFormError,
    ChecksumError,
    DateError,
    EncodingOverflowError,
    DuplicateGeneratorError,
)
from .fields import (
    Authority,
    Instance,
    Type,
    Version,
    TimeStamp,
    MIN_EPOCH_MILLIS,
    MAX_EPOCH_MILLIS,
)
from .codec import (
    ALPHABET,
    BASE,
    CHECK_DIGITS_PRIME,
    Representation,
    DEFAULT_REPRESENTATION,
    encode,
    decode,
    is_valid,
)
from .layout import (
    FieldSpec,
    WireFormat,
    CURRENT_FORMAT,
    CALENDAR_FORMAT,
    WIRE_FORMATS,
    get_wire_format,
)
from .record import RN, RNDescription, export_json_schema
from .lockfile import HostLock
from .config import RNSettings
