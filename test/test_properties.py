"""
test/test_properties.py — Property tests (hypothesis) for the codec and RN

Requires: hypothesis

Run:  pytest test/test_properties.py -v
  or: python test/test_properties.py
"""

import sys
import os

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hypothesis import given, settings
from hypothesis import strategies as st

from rn_core.codec import (
    ALPHABET,
    CHECK_DIGITS_PRIME,
    MAX_VALUE,
    clean,
    decode,
    encode,
    verify_check_digits,
    with_check_digits,
)
from rn_core.errors import ChecksumError, RangeError
from rn_core.fields import (
    Authority,
    Instance,
    Type,
    Version,
    TimeStamp,
    MIN_EPOCH_MILLIS,
    MAX_EPOCH_MILLIS,
)
from rn_core.layout import CALENDAR_FORMAT, CURRENT_FORMAT
from rn_core.record import RN


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# Last instant with a ten-digit epoch-seconds field
MAX_CURRENT_MILLIS = 10 ** 13 - 1

values = st.integers(min_value=0, max_value=MAX_VALUE)
authorities = st.integers(min_value=Authority.MIN_ID, max_value=Authority.MAX_ID)
types = st.integers(min_value=Type.MIN_ID, max_value=Type.MAX_ID)
versions = st.integers(min_value=Version.MIN_ID, max_value=Version.MAX_ID)


@st.composite
def current_rns(draw):
    return RN(
        draw(authorities),
        draw(st.integers(min_value=0, max_value=CURRENT_FORMAT.max_instance)),
        draw(types),
        TimeStamp.from_epoch_millis(
            draw(st.integers(min_value=MIN_EPOCH_MILLIS, max_value=MAX_CURRENT_MILLIS))
        ),
        version=draw(versions),
    )


@st.composite
def calendar_rns(draw):
    return RN(
        draw(authorities),
        draw(st.integers(min_value=0, max_value=CALENDAR_FORMAT.max_instance)),
        draw(types),
        TimeStamp.from_epoch_millis(
            draw(st.integers(min_value=MIN_EPOCH_MILLIS, max_value=MAX_EPOCH_MILLIS))
        ),
        wire_format=CALENDAR_FORMAT,
    )


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

@given(values)
def test_check_digits_roundtrip(nn):
    cc = with_check_digits(nn)
    assert cc % CHECK_DIGITS_PRIME == 0
    assert verify_check_digits(cc) == nn
    assert decode(encode(nn)) == nn


@given(
    values,
    st.integers(min_value=0, max_value=17),
    st.sampled_from(ALPHABET),
)
def test_single_substitution_detected(nn, position, replacement):
    digits = clean(encode(nn))
    if digits[position] == replacement:
        return
    corrupted = digits[:position] + replacement + digits[position + 1:]
    try:
        decode(corrupted)
    except ChecksumError:
        return
    raise AssertionError(f"{corrupted} decoded despite corruption of {digits}")


@given(values, st.data())
def test_decode_ignores_case_and_spacing(nn, data):
    digits = clean(encode(nn))
    cuts = sorted(data.draw(st.lists(st.integers(min_value=1, max_value=17), max_size=5)))
    pieces = []
    start = 0
    for cut in cuts:
        pieces.append(digits[start:cut])
        start = cut
    pieces.append(digits[start:])
    sloppy = data.draw(st.sampled_from([" ", "-", "\t"])).join(pieces).lower()
    assert decode(sloppy) == nn


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------

@given(st.integers())
def test_identifier_range_enforced(value):
    for kind in (Authority, Instance, Type, Version):
        if kind.MIN_ID <= value <= kind.MAX_ID:
            assert kind(value).id == value
        else:
            try:
                kind(value)
            except RangeError:
                continue
            raise AssertionError(f"{kind.__name__}({value}) accepted")


# ---------------------------------------------------------------------------
# RN
# ---------------------------------------------------------------------------

@settings(max_examples=200)
@given(current_rns())
def test_current_format_roundtrip(rn):
    assert len(rn.packed_form) == 24
    assert RN.from_packed(rn.packed_form) == rn
    assert RN.from_encoded(rn.encoded_form) == rn
    assert RN.from_encoded(rn.encoded_form).encoded_form == rn.encoded_form


@settings(max_examples=200)
@given(calendar_rns())
def test_calendar_format_roundtrip(rn):
    assert len(rn.packed_form) == 24
    assert RN.from_encoded(rn.encoded_form, CALENDAR_FORMAT) == rn


@given(current_rns(), current_rns())
def test_ordering_matches_value(a, b):
    assert (a < b) == (a.value < b.value)
    assert (a == b) == (a.value == b.value)


@given(current_rns())
def test_description_validates(rn):
    assert rn.describe().to_rn() == rn


if __name__ == "__main__":
    print("=" * 60)
    print("Property tests")
    print("=" * 60)

    tests = [
        test_check_digits_roundtrip,
        test_single_substitution_detected,
        test_decode_ignores_case_and_spacing,
        test_identifier_range_enforced,
        test_current_format_roundtrip,
        test_calendar_format_roundtrip,
        test_ordering_matches_value,
        test_description_validates,
    ]
    for t in tests:
        t()
        print(f"  PASS: {t.__name__}")

    print("=" * 60)
    print("ALL PROPERTY TESTS PASSED")
    print("=" * 60)
