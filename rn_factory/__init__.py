"""
rn_factory — Reference number generation.

Exposes two classes:
- RNFactory:       issues RNs with strictly increasing timestamps for
                   one (authority, instance, type) tuple.
- FactoryRegistry: hands out one RNFactory per tuple per process.

Uniqueness:
    Within a factory, every RN carries a distinct millisecond: the factory
    keeps a watermark of the last millisecond it issued and waits for the
    clock to pass it. Across processes on one host, a factory holds an
    exclusive HostLock named after its tuple for its whole lifetime, so a
    second generator for the same tuple cannot be created. Across hosts
    nothing is checked: operators allocate instance numbers so that no two
    hosts share a tuple.

The registry is an explicit object rather than a module global; tests
and embedding applications build their own.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple, Union

from rn_core.config import RNSettings
from rn_core.errors import DuplicateGeneratorError
from rn_core.fields import Authority, Instance, TimeStamp, Type, Version, coerce
from rn_core.layout import CURRENT_FORMAT, WireFormat
from rn_core.lockfile import HostLock
from rn_core.record import RN

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
FactoryKey = Tuple[Authority, Instance, Type]


def wall_clock_millis() -> int:
    """Milliseconds since the Unix epoch from the system clock."""
    return time.time_ns() // 1_000_000


class RNFactory:
    """Issues fresh RNs for one (authority, instance, type) tuple.

    Args:
        authority:     Issuing authority.
        instance:      Deployment instance.
        type_:         Type code.
        wire_format:   Packed layout for issued RNs.
        version:       Version digit (versioned formats only).
        host_lock:     Optional HostLock, acquired here and held until
                       close().
        clock:         Returns integer milliseconds since the epoch.
        sleep:         Called with wait_interval while waiting for the clock.
        wait_interval: Seconds between clock re-reads.

    Raises:
        DuplicateGeneratorError: host_lock is held by another generator.
    """

    def __init__(
        self,
        authority: Union[Authority, int],
        instance: Union[Instance, int],
        type_: Union[Type, int],
        *,
        wire_format: WireFormat = CURRENT_FORMAT,
        version: Union[Version, int, None] = None,
        host_lock: Optional[HostLock] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Callable[[float], None]] = None,
        wait_interval: float = 0.001,
    ) -> None:
        self._authority = coerce(Authority, authority)
        self._instance = coerce(Instance, instance)
        self._type = coerce(Type, type_)
        self._wire_format = wire_format
        self._version = None if version is None else coerce(Version, version)
        self._clock = clock or wall_clock_millis
        self._sleep = sleep or time.sleep
        self._wait_interval = wait_interval

        # Fail fast on a tuple this format cannot carry.
        wire_format.check_instance(self._instance)

        # Watermark: last millisecond issued
        self._last_millis = 0
        self._mutex = threading.Lock()
        self._closed = False

        self._host_lock = host_lock
        if host_lock is not None and not host_lock.try_acquire():
            raise DuplicateGeneratorError(self.key_ids, host_lock.path)

        logger.info(
            "RN factory started for %s (format %s%s)",
            self.label,
            wire_format.name,
            f", lock {host_lock.path}" if host_lock is not None else "",
        )

    # ------------------------------------------------------------------
    # Public properties
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
    def wire_format(self) -> WireFormat:
        return self._wire_format

    @property
    def key(self) -> FactoryKey:
        return (self._authority, self._instance, self._type)

    @property
    def key_ids(self) -> Tuple[int, int, int]:
        return (self._authority.id, self._instance.id, self._type.id)

    @property
    def label(self) -> str:
        return "-".join(str(i) for i in self.key_ids)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_issued_millis(self) -> int:
        """Watermark: epoch milliseconds of the most recent RN (0 if none)."""
        return self._last_millis

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_reference_number(self) -> RN:
        """Issue a new RN whose timestamp is later than every earlier one.

        Blocks for a few milliseconds at most while the clock catches up
        with the watermark (including after the clock steps backwards).

        Raises:
            RuntimeError: the factory has been closed.
            RangeError:   the clock reads outside the wire format's range.
        """
        millis = self._reserve_millis()
        return RN(
            self._authority,
            self._instance,
            self._type,
            TimeStamp.from_epoch_millis(millis),
            version=self._version,
            wire_format=self._wire_format,
        )

    def _reserve_millis(self) -> int:
        with self._mutex:
            if self._closed:
                raise RuntimeError(f"RN factory {self.label} is closed")
            now = self._clock()
            if now < self._last_millis:
                logger.debug(
                    "Clock behind watermark by %d ms for %s; waiting",
                    self._last_millis - now,
                    self.label,
                )
            while now <= self._last_millis:
                self._sleep(self._wait_interval)
                now = self._clock()
            self._last_millis = now
            return now

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop issuing, release the host lock and remove its file.

        Idempotent.
        """
        with self._mutex:
            if self._closed:
                return
            self._closed = True
        if self._host_lock is not None:
            self._host_lock.close(delete=True)
        logger.info("RN factory closed for %s", self.label)

    def __enter__(self) -> "RNFactory":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RNFactory({self.label}, format={self._wire_format.name})"


class FactoryRegistry:
    """One RNFactory per (authority, instance, type) per registry.

    get_factory() is an atomic get-or-create: the check, the construction
    (including the host lock) and the insert happen under one mutex, and a
    failed construction inserts nothing.

    Args:
        settings: Lock directory, wire format, version and wait interval.
                  Loaded from the environment when omitted.
        clock:    Clock passed to every factory.
        sleep:    Sleep function passed to every factory.
    """

    def __init__(
        self,
        settings: Optional[RNSettings] = None,
        *,
        clock: Optional[Clock] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.settings = settings or RNSettings()
        self._clock = clock
        self._sleep = sleep
        self._factories: Dict[FactoryKey, RNFactory] = {}
        self._mutex = threading.Lock()

    def get_factory(
        self,
        authority: Union[Authority, int],
        instance: Union[Instance, int],
        type_: Union[Type, int],
    ) -> RNFactory:
        """Return the factory for this tuple, creating it on first use.

        Raises:
            DuplicateGeneratorError: another process (or registry) already
                                     generates for this tuple on this host.
        """
        key = (
            coerce(Authority, authority),
            coerce(Instance, instance),
            coerce(Type, type_),
        )
        with self._mutex:
            factory = self._factories.get(key)
            if factory is None:
                factory = self._create(key)
                self._factories[key] = factory
            return factory

    def _create(self, key: FactoryKey) -> RNFactory:
        settings = self.settings
        wire_format = settings.format
        host_lock = None
        if settings.host_lock:
            host_lock = HostLock(settings.lock_path(*(k.id for k in key)))
        return RNFactory(
            *key,
            wire_format=wire_format,
            version=settings.version if wire_format.versioned else None,
            host_lock=host_lock,
            clock=self._clock,
            sleep=self._sleep,
            wait_interval=settings.wait_interval,
        )

    def release(
        self,
        authority: Union[Authority, int],
        instance: Union[Instance, int],
        type_: Union[Type, int],
    ) -> bool:
        """Close and forget the factory for this tuple.

        Returns:
            True if a factory was registered for the tuple.
        """
        key = (
            coerce(Authority, authority),
            coerce(Instance, instance),
            coerce(Type, type_),
        )
        with self._mutex:
            factory = self._factories.pop(key, None)
        if factory is None:
            return False
        factory.close()
        return True

    def close(self) -> None:
        """Close every factory and empty the registry."""
        with self._mutex:
            factories = list(self._factories.values())
            self._factories.clear()
        for factory in factories:
            factory.close()

    def __len__(self) -> int:
        return len(self._factories)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 3:
            return False
        try:
            key = (
                coerce(Authority, key[0]),
                coerce(Instance, key[1]),
                coerce(Type, key[2]),
            )
        except ValueError:
            return False
        return key in self._factories

    def __enter__(self) -> "FactoryRegistry":
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = [
    "RNFactory",
    "FactoryRegistry",
    "wall_clock_millis",
]
