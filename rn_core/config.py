"""
rn_core/config.py — Generator settings from the environment.

Usage:
    from rn_core.config import RNSettings

    # Load from environment variables (RN_*) or a .env file
    settings = RNSettings()

    # Or override with explicit values
    settings = RNSettings(lock_directory="/var/lock/rn", host_lock=False)
"""

from __future__ import annotations

import os
import tempfile

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .fields import Version
from .layout import CURRENT_FORMAT, WIRE_FORMATS, WireFormat


def _default_lock_directory() -> str:
    return os.path.join(tempfile.gettempdir(), "rn-locks")


class RNSettings(BaseSettings):
    """Configuration for reference number generation.

    Attributes:
        lock_directory:   Where per-tuple host lock files are created.
        host_lock:        Take a host lock per generator. Disable only where
                          a single process is guaranteed.
        wait_interval_ms: Sleep between clock re-reads while waiting for
                          the next free millisecond.
        wire_format:      Name of the packed layout new RNs use.
        version:          Version digit written into versioned formats.

    Environment Variables:
        RN_LOCK_DIRECTORY
        RN_HOST_LOCK
        RN_WAIT_INTERVAL_MS
        RN_WIRE_FORMAT
        RN_VERSION
    """

    model_config = SettingsConfigDict(
        env_prefix="RN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    lock_directory: str = Field(default_factory=_default_lock_directory)
    host_lock: bool = True
    wait_interval_ms: float = Field(default=1.0, gt=0)
    wire_format: str = CURRENT_FORMAT.name
    version: int = Field(default=0, ge=Version.MIN_ID, le=Version.MAX_ID)

    @field_validator("wire_format")
    @classmethod
    def validate_wire_format(cls, v: str) -> str:
        if v not in WIRE_FORMATS:
            raise ValueError(
                f"Unknown wire format {v!r}; known formats: "
                f"{', '.join(sorted(WIRE_FORMATS))}"
            )
        return v

    @property
    def format(self) -> WireFormat:
        return WIRE_FORMATS[self.wire_format]

    @property
    def wait_interval(self) -> float:
        """Wait interval in seconds."""
        return self.wait_interval_ms / 1000.0

    def lock_path(self, authority: int, instance: int, type_: int) -> str:
        """Lock file for one (authority, instance, type) tuple."""
        return os.path.join(
            self.lock_directory, f"{authority}-{instance}-{type_}.lock"
        )
