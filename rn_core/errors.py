"""
rn_core/errors.py — Error taxonomy for reference numbers.

Every failure in the core is raised as a subclass of RNError. Each kind
also derives from the closest builtin (ValueError, OverflowError,
RuntimeError) so callers that only know the builtins still catch them.

Nothing in the core coerces or defaults an invalid value: a field value,
a packed record, or a decoded string either validates completely or one
of these is raised.
"""

from __future__ import annotations

from typing import Any, Optional


class RNError(Exception):
    """Base class for all reference number errors."""


class RangeError(RNError, ValueError):
    """A field value lies outside its permitted domain.

    Attributes:
        value:   The offending value.
        minimum: Lowest permitted value.
        maximum: Highest permitted value.
    """

    def __init__(self, label: str, value: Any, minimum: Any, maximum: Any) -> None:
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Illegal {label}: {value} is not in the range {minimum} : {maximum}"
        )


class FormatError(RNError, ValueError):
    """Malformed input: characters outside the alphabet, wrong length."""


class InvalidPackedFormError(FormatError):
    """A packed value does not have exactly the width its wire format needs."""


class ChecksumError(RNError, ValueError):
    """Well-formed input whose check digits do not verify.

    Attributes:
        encoded: The grouped, re-encoded form of the value that failed.
    """

    def __init__(self, encoded: str) -> None:
        self.encoded = encoded
        super().__init__(f"Value '{encoded}' does not have intact check digits")


class DateError(RNError, ValueError):
    """Numeric date fields that do not form a real calendar instant."""


class EncodingOverflowError(RNError, OverflowError):
    """A value too large for the fixed encoded digit budget."""


class DuplicateGeneratorError(RNError, RuntimeError):
    """Another generator already owns this (authority, instance, type) tuple.

    Raised when the host lock for the tuple is held by another process (or
    by another registry in this process).

    Attributes:
        key:       The (authority, instance, type) ids.
        lock_path: Path of the contended lock file, if any.
    """

    def __init__(self, key: tuple, lock_path: Optional[str] = None) -> None:
        self.key = key
        self.lock_path = lock_path
        where = f" (lock held: {lock_path})" if lock_path else ""
        super().__init__(
            f"A generator for {key[0]}-{key[1]}-{key[2]} is already "
            f"running on this host{where}"
        )
