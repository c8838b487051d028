"""
rn_core/codec.py — Base-33 alphabet encoding with mod-1087 check digits.

Turns a non-negative integer into a short, case-safe string that survives
transcription, and back, detecting corruption on the way in.

Check digits. With B = BASE^2 (1089) and P the largest prime below B
(1087), for a value NN:

    cc = P - ((NN * R) mod P)          where R = B - P
    CC = NN * B + cc

Since B = P + R, (NN * B) mod P == (NN * R) mod P, so CC mod P == 0.
Verification is that test; recovery is CC div B. P is prime, larger than
BASE and coprime to it, so changing any single symbol (a change of
d * BASE^k with 0 < |d| < BASE) always breaks the test.

Pure functions, no state; Representation only bundles the length and
grouping parameters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import (
    ChecksumError,
    EncodingOverflowError,
    FormatError,
    RangeError,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# No I, O or lower case: they are too easily confused with 1, 0 and each other.
ALPHABET = "ABCDEFGHJKLMNPQRSTVWXYZ0123456789"
BASE = len(ALPHABET)
BASE_SQUARED = BASE * BASE

DEFAULT_LENGTH = 18
GROUP_SIZE = 6
SEPARATOR = "-"

_DIGIT_VALUES = {symbol: value for value, symbol in enumerate(ALPHABET)}
_IGNORED = re.compile(r"[\s-]+")


def _largest_prime_below(n: int) -> int:
    for candidate in range(n - 1, 1, -1):
        if all(candidate % d for d in range(2, int(candidate ** 0.5) + 1)):
            return candidate
    raise ValueError(f"No prime below {n}")


CHECK_DIGITS_PRIME = _largest_prime_below(BASE_SQUARED)
CHECK_DIGITS_RESIDUAL = BASE_SQUARED - CHECK_DIGITS_PRIME

# Largest value whose checked form always fits the default digit budget.
MAX_VALUE = BASE ** DEFAULT_LENGTH // BASE_SQUARED - 1


# ---------------------------------------------------------------------------
# Check digits
# ---------------------------------------------------------------------------

def max_value(length: int = DEFAULT_LENGTH) -> int:
    """Largest value whose checked form fits in length symbols."""
    return BASE ** length // BASE_SQUARED - 1


def with_check_digits(nn: int, length: int = DEFAULT_LENGTH) -> int:
    """Append check digits to nn (shift by BASE^2 and add cc).

    Raises:
        RangeError:            nn is negative.
        EncodingOverflowError: the checked value needs more than length
                               symbols.
    """
    maximum = max_value(length)
    if nn < 0:
        raise RangeError("value for encoding", nn, 0, maximum)
    if nn > maximum:
        raise EncodingOverflowError(
            f"Numeric overflow: {nn} with check digits does not fit in "
            f"{length} base-{BASE} digits (largest value {maximum})"
        )
    cc = CHECK_DIGITS_PRIME - (nn * CHECK_DIGITS_RESIDUAL) % CHECK_DIGITS_PRIME
    return nn * BASE_SQUARED + cc


def verify_check_digits(cc: int, length: int = DEFAULT_LENGTH) -> int:
    """Verify the check digits of cc and strip them.

    Raises:
        ChecksumError: naming the grouped encoding of cc.
    """
    if cc % CHECK_DIGITS_PRIME == 0:
        return cc // BASE_SQUARED
    raise ChecksumError(group_digits(alphabet_encode(cc, length)))


# ---------------------------------------------------------------------------
# Alphabet conversion
# ---------------------------------------------------------------------------

def alphabet_encode(n: int, length: int = DEFAULT_LENGTH) -> str:
    """Serialise n most-significant digit first, left-padded to length.

    Raises:
        RangeError:            n is negative.
        EncodingOverflowError: n needs more than length digits.
    """
    if n < 0:
        raise RangeError("value for encoding", n, 0, BASE ** length - 1)
    if n >= BASE ** length:
        raise EncodingOverflowError(
            f"Numeric overflow: {n} does not fit in {length} base-{BASE} "
            f"digits (limit {BASE ** length})"
        )
    digits = []
    while n > 0 or len(digits) < length:
        n, digit = divmod(n, BASE)
        digits.append(ALPHABET[digit])
    return "".join(reversed(digits))


def clean(text: str) -> str:
    """Drop whitespace and separators; fold to upper case."""
    return _IGNORED.sub("", text).upper()


def check_permitted_characters(text: str) -> None:
    """Raise FormatError on the first character outside the alphabet."""
    for ch in text:
        if ch not in _DIGIT_VALUES:
            raise FormatError(
                f"Illegal character in encoded number: '{text}' "
                f"should not contain '{ch}'"
            )


def alphabet_decode(text: str) -> int:
    """Accumulate the base-33 value of text (after cleaning)."""
    digits = clean(text)
    check_permitted_characters(digits)
    value = 0
    for ch in digits:
        value = value * BASE + _DIGIT_VALUES[ch]
    return value


def group_digits(digits: str, size: int = GROUP_SIZE) -> str:
    """Insert a separator every size symbols, counting from the left."""
    return SEPARATOR.join(
        digits[i : i + size] for i in range(0, max(len(digits), 1), size)
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def encode(nn: int, length: int = DEFAULT_LENGTH, group_size: int = GROUP_SIZE) -> str:
    """Encode nn with check digits into the grouped external form."""
    checked = with_check_digits(nn, length)
    return group_digits(alphabet_encode(checked, length), group_size)


def decode(text: str, length: int = DEFAULT_LENGTH) -> int:
    """Decode an external form, verify its check digits, return the value.

    Raises:
        FormatError:   empty, too long, or characters outside the alphabet.
        ChecksumError: the check digits do not verify.
    """
    digits = clean(text)
    if not digits:
        raise FormatError(f"Empty encoded number: {text!r}")
    check_permitted_characters(digits)
    if len(digits) > length:
        raise FormatError(f"'{digits}' has too many digits (maximum {length})")
    return verify_check_digits(alphabet_decode(digits), length)


def is_valid(text: str, length: int = DEFAULT_LENGTH) -> bool:
    """True if text is well formed and its check digits verify."""
    try:
        decode(text, length)
    except (FormatError, ChecksumError):
        return False
    return True


@dataclass(frozen=True)
class Representation:
    """Encoded-string parameters for a family of reference numbers.

    Stateless: the same Representation maps any packed value to its
    external form and back.
    """

    length: int = DEFAULT_LENGTH
    group_size: int = GROUP_SIZE

    def encode(self, value: int) -> str:
        return encode(value, self.length, self.group_size)

    def decode(self, text: str) -> int:
        return decode(text, self.length)

    def is_valid(self, text: str) -> bool:
        return is_valid(text, self.length)


DEFAULT_REPRESENTATION = Representation()
