"""
test/test_cli.py — Tests for tools/rn_cli.py

Run:  pytest test/test_cli.py -v
  or: python test/test_cli.py
"""

import contextlib
import io
import json
import sys
import os
import tempfile

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rn_core.codec import is_valid
from tools.rn_cli import main


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PASS = 0
_FAIL = 0


def _ok(name: str) -> None:
    global _PASS
    _PASS += 1
    print(f"  PASS: {name}")


def _fail(name: str, err: Exception) -> None:
    global _FAIL
    _FAIL += 1
    print(f"  FAIL: {name} — {err}")


def run(*argv):
    """Run the CLI, returning (exit status, stdout, stderr)."""
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        status = main(list(argv))
    return status, out.getvalue(), err.getvalue()


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_encode():
    status, out, _ = run(
        "encode", "-a", "1234", "-i", "5", "-t", "6",
        "--timestamp", "2018-04-12T12:34:51.468Z",
    )
    assert status == 0
    assert out.strip() == "H31DDZ-TFSV8C-KELK2B"
    _ok("test_encode")


def test_encode_calendar_format():
    status, out, _ = run(
        "encode", "-a", "1234", "-i", "5", "-t", "6",
        "--timestamp", "2018-04-12T12:34:51.468+00:00",
        "--format", "calendar-2018",
    )
    assert status == 0
    assert out.strip() == "H31DEZ-JCCB4T-XYPZ8S"
    _ok("test_encode_calendar_format")


def test_encode_out_of_range():
    status, _, err = run(
        "encode", "-a", "999", "-i", "5", "-t", "6",
        "--timestamp", "2018-04-12T12:34:51.468Z",
    )
    assert status == 1
    assert "Illegal identifier for authority" in err
    _ok("test_encode_out_of_range")


def test_decode_json():
    status, out, _ = run("decode", "h31ddz tfsv8c kelk2b", "--json")
    assert status == 0
    payload = json.loads(out)
    assert payload["packed"] == "468123400500615235364910"
    assert payload["authority"] == 1234
    assert payload["fielded"] == "1234:5:06:2018-04-12T12:34:51.468Z:v0"
    _ok("test_decode_json")


def test_decode_text():
    status, out, _ = run("decode", "H31DEZ-JCCB4T-XYPZ8S", "--format", "calendar-2018")
    assert status == 0
    assert "Format:    calendar-2018" in out
    assert "Timestamp: 2018-04-12T12:34:51.468Z" in out
    assert "Version:" not in out
    _ok("test_decode_text")


def test_decode_corrupted():
    status, out, err = run("decode", "H31DDZ-TFSV8C-KELK20")
    assert status == 1
    assert out == ""
    assert "does not have intact check digits" in err
    _ok("test_decode_corrupted")


def test_check():
    assert run("check", "H31DDZ-TFSV8C-KELK2B")[0] == 0
    assert run("check", "H31DDZ-TFSV8C-KELK20")[0] == 1
    assert run("check", "H31DDZ-TFSV8C-KELK2B", "AI0")[0] == 1
    _ok("test_check")


def test_generate():
    with tempfile.TemporaryDirectory() as tmpdir:
        status, out, _ = run(
            "generate", "-a", "1234", "-i", "5", "-t", "6", "-n", "5",
            "--lock-dir", tmpdir,
        )
        assert status == 0
        lines = out.split()
        assert len(lines) == 5
        assert len(set(lines)) == 5
        assert all(is_valid(line) for line in lines)
        # The lock file is removed when the registry closes
        assert os.listdir(tmpdir) == []
    _ok("test_generate")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    print("=" * 60)
    print("tools/rn_cli tests")
    print("=" * 60)

    tests = [
        test_encode,
        test_encode_calendar_format,
        test_encode_out_of_range,
        test_decode_json,
        test_decode_text,
        test_decode_corrupted,
        test_check,
        test_generate,
    ]

    for t in tests:
        try:
            t()
        except Exception as e:
            _fail(t.__name__, e)

    print("=" * 60)
    if _FAIL == 0:
        print(f"ALL {_PASS} TESTS PASSED")
    else:
        print(f"{_PASS} passed, {_FAIL} FAILED")
        sys.exit(1)
    print("=" * 60)
