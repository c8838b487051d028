#!/usr/bin/env python3
"""
RN Corruption Detection Demo

Demonstrates the check-digit guarantee: any single mistyped symbol in an
encoded reference number is caught on decode.

Flow:
  1. Issue a few RNs from a factory (host lock in a temporary directory)
  2. Show every view of one of them
  3. Substitute each position in turn with every other symbol
  4. Count how many corrupted strings decode: the answer is always zero
  5. Show that case, spacing and separators do not matter on input

Run:
    python examples/demo_corruption.py
"""

import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rn_core.codec import ALPHABET, clean
from rn_core.config import RNSettings
from rn_core.errors import ChecksumError, FormatError
from rn_core.record import RN
from rn_factory import FactoryRegistry


# ============================================================
# Issue
# ============================================================

def issue(lock_directory: str, count: int = 3) -> list:
    settings = RNSettings(lock_directory=lock_directory)
    with FactoryRegistry(settings) as registry:
        factory = registry.get_factory(1234, 5, 6)
        return [factory.generate_reference_number() for _ in range(count)]


# ============================================================
# Corrupt
# ============================================================

def substitutions(encoded: str):
    """Yield (position, original, replacement, corrupted) for every single-symbol change."""
    for i, ch in enumerate(encoded):
        if ch == "-":
            continue
        for replacement in ALPHABET:
            if replacement != ch:
                yield i, ch, replacement, encoded[:i] + replacement + encoded[i + 1:]


def main():
    print("━━━ 1. Issue ━━━")
    with tempfile.TemporaryDirectory() as tmpdir:
        rns = issue(tmpdir)
    for rn in rns:
        print(f"  {rn.encoded_form}  {rn.packed_form}")

    rn = rns[0]
    print("\n━━━ 2. Views ━━━")
    print(rn.describe().to_json())

    print("\n━━━ 3. Single-symbol substitutions ━━━")
    encoded = rn.encoded_form
    tried = 0
    undetected = []
    for i, old, new, corrupted in substitutions(encoded):
        tried += 1
        try:
            RN.from_encoded(corrupted)
        except ChecksumError:
            continue
        undetected.append(corrupted)

    first = next(substitutions(encoded))
    try:
        RN.from_encoded(first[3])
    except ChecksumError as e:
        print(f"  e.g. {first[1]}→{first[2]} at {first[0]}: {e}")

    print("\n━━━ 4. Result ━━━")
    if not undetected:
        print(f"  ✓ {tried} corruptions tried, all detected")
    else:
        print(f"  ✗ {len(undetected)} of {tried} corruptions went undetected")
        for value in undetected:
            print(f"    • {value}")

    print("\n━━━ 5. Lenient input ━━━")
    sloppy = " ".join(clean(encoded).lower()[i:i + 3] for i in range(0, 18, 3))
    print(f"  {sloppy!r} → {RN.from_encoded(sloppy).encoded_form}")
    try:
        RN.from_encoded(encoded.replace(encoded[0], "I", 1))
    except FormatError as e:
        print(f"  {e}")

    return 0 if not undetected else 1


if __name__ == "__main__":
    sys.exit(main())
