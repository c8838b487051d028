#!/usr/bin/env python3
"""
RN CLI — Issue, inspect and check reference numbers.

Usage:
    python -m tools.rn_cli generate -a 1234 -i 5 -t 6 [-n COUNT] [--no-lock] [--lock-dir DIR]
    python -m tools.rn_cli encode -a 1234 -i 5 -t 6 --timestamp 2018-04-12T12:34:51.468Z
    python -m tools.rn_cli decode <encoded> [--format calendar-2018] [--json]
    python -m tools.rn_cli check <encoded> [<encoded> ...]

Commands:
    generate — Issue fresh RNs for one authority/instance/type
    encode   — Fields to encoded form
    decode   — Encoded form to every view of the RN
    check    — Verify check digits only (exit 1 if any fail)

Settings (lock directory, wire format, version) come from RN_* environment
variables; see rn_core.config.
"""

import argparse
import logging
import os
import sys
from datetime import datetime

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rn_core.codec import DEFAULT_REPRESENTATION
from rn_core.config import RNSettings
from rn_core.errors import RNError
from rn_core.layout import WIRE_FORMATS, get_wire_format
from rn_core.record import RN
from rn_factory import FactoryRegistry


# ============================================================
# Commands
# ============================================================

def _settings(args) -> RNSettings:
    overrides = {}
    if getattr(args, "lock_dir", None):
        overrides["lock_directory"] = args.lock_dir
    if getattr(args, "no_lock", False):
        overrides["host_lock"] = False
    return RNSettings(**overrides)


def _parse_timestamp(text: str) -> datetime:
    # fromisoformat only learned the "Z" suffix in 3.11
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def cmd_generate(args) -> int:
    """Print COUNT fresh RNs, one per line."""
    with FactoryRegistry(_settings(args)) as registry:
        factory = registry.get_factory(args.authority, args.instance, args.type)
        for _ in range(args.count):
            rn = factory.generate_reference_number()
            if args.verbose:
                print(f"{rn.encoded_form}  {rn.packed_form}  {rn.fielded_form}")
            else:
                print(rn.encoded_form)
    return 0


def cmd_encode(args) -> int:
    """Encode an RN built from explicit fields."""
    settings = _settings(args)
    wire_format = get_wire_format(args.format or settings.wire_format)
    version = args.version
    if version is None and wire_format.versioned:
        version = settings.version
    rn = RN(
        args.authority,
        args.instance,
        args.type,
        _parse_timestamp(args.timestamp),
        version=version,
        wire_format=wire_format,
    )
    print(rn.encoded_form)
    if args.verbose:
        print(f"  packed:  {rn.packed_form}")
        print(f"  fielded: {rn.fielded_form}")
    return 0


def cmd_decode(args) -> int:
    """Show every view of an encoded RN."""
    wire_format = get_wire_format(args.format or _settings(args).wire_format)
    rn = RN.from_encoded(args.value, wire_format)
    description = rn.describe()
    if args.json:
        print(description.to_json())
        return 0
    print(f"━━━ {description.encoded} ━━━")
    print(f"Format:    {description.wire_format}")
    print(f"Authority: {description.authority}")
    print(f"Instance:  {description.instance}")
    print(f"Type:      {description.type}")
    if description.version is not None:
        print(f"Version:   {description.version}")
    print(f"Timestamp: {rn.timestamp.isoformat()}")
    print(f"Packed:    {description.packed}")
    print(f"Fielded:   {description.fielded}")
    return 0


def cmd_check(args) -> int:
    """Verify check digits of each value; exit 1 if any fail."""
    failures = 0
    for value in args.values:
        if DEFAULT_REPRESENTATION.is_valid(value):
            print(f"  ✓ {value}")
        else:
            failures += 1
            print(f"  ✗ {value}")
    return 1 if failures else 0


# ============================================================
# Main
# ============================================================

def _add_tuple_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--authority", "-a", type=int, required=True)
    p.add_argument("--instance", "-i", type=int, required=True)
    p.add_argument("--type", "-t", type=int, required=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="RN CLI — Reference number generator and checker",
        prog="python -m tools.rn_cli",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging; also print packed and fielded forms",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    formats = sorted(WIRE_FORMATS)

    p = sub.add_parser("generate", help="Issue fresh RNs")
    _add_tuple_arguments(p)
    p.add_argument("--count", "-n", type=int, default=1)
    p.add_argument("--no-lock", action="store_true", help="Skip the host lock")
    p.add_argument("--lock-dir", help="Directory for host lock files")

    p = sub.add_parser("encode", help="Encode an RN from its fields")
    _add_tuple_arguments(p)
    p.add_argument("--timestamp", required=True, help="ISO 8601, e.g. 2018-04-12T12:34:51.468Z")
    p.add_argument("--version", type=int, default=None)
    p.add_argument("--format", choices=formats, help="Wire format name")

    p = sub.add_parser("decode", help="Encoded form to all views")
    p.add_argument("value", help="Encoded form (separators optional)")
    p.add_argument("--format", choices=formats, help="Wire format name")
    p.add_argument("--json", action="store_true", help="Emit JSON")

    p = sub.add_parser("check", help="Verify check digits")
    p.add_argument("values", nargs="+")

    return parser


COMMANDS = {
    "generate": cmd_generate,
    "encode": cmd_encode,
    "decode": cmd_decode,
    "check": cmd_check,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (RNError, ValueError) as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
