"""Per-process memory snapshots built from smaps_rollup."""

import logging
import os
import sys
from types import MappingProxyType

from memtop.models import ActiveRollup, MemoryBreakdown, RollupState, UnsupportedRollup
from memtop.rollup import read_rollup
from memtop.units import UNSUPPORTED, convert_units

logger = logging.getLogger(__name__)

METRICS = ("total", "rss", "pss", "uss", "swap", "shared", "referenced")


def is_supported(platform: str | None = None) -> bool:
    """Check whether the platform exposes Linux smaps_rollup files."""
    if platform is None:
        platform = sys.platform
    return "linux" in platform.lower()


class ProcessMemory:
    """
    Memory usage of a single process, read once from /proc/<pid>/smaps_rollup.

    The rollup file is read and parsed when the object is created; every
    accessor afterwards is a pure computation over those counters.

    On platforms without smaps_rollup construction still succeeds and every
    accessor returns -1 regardless of units, so polling code does not need
    to special-case the platform. A process that does not exist reports 0
    for every metric.

    Accessors take an optional units argument: "bytes" (default),
    "kilobytes"/"kb"/"k", "megabytes"/"mb"/"m" or "gigabytes"/"gb"/"g",
    matched case-insensitively. Bytes are returned as int, other units as
    float. Unknown units raise InvalidUnitError.

    Raises:
        RollupReadError: If the rollup file exists but cannot be read.
    """

    __slots__ = ("_pid", "_state")

    def __init__(self, pid: int | None = None) -> None:
        self._pid = os.getpid() if pid is None else pid
        self._state: RollupState = self._read_state()

    @staticmethod
    def is_supported() -> bool:
        """Check whether the current platform is supported."""
        return is_supported()

    @property
    def pid(self) -> int:
        """Process id this snapshot was taken for."""
        return self._pid

    @property
    def supported(self) -> bool:
        """Whether the snapshot holds real counters rather than -1 sentinels."""
        return isinstance(self._state, ActiveRollup)

    @property
    def fields(self) -> MappingProxyType[str, int]:
        """Read-only view of the parsed counters, in bytes. Empty when unsupported."""
        if isinstance(self._state, ActiveRollup):
            return self._state.fields
        return MappingProxyType({})

    def field(self, name: str) -> int:
        """Get a raw counter in bytes: 0 if absent, -1 on unsupported platforms."""
        return self._state.get(name)

    def total(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Rss", "Swap")

    def rss(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Rss")

    resident = rss

    def pss(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Pss")

    proportional = pss

    def uss(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Private_Clean", "Private_Dirty")

    unique = uss

    def swap(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Swap")

    def shared(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Shared_Clean", "Shared_Dirty")

    def referenced(self, units: str = "bytes") -> int | float:
        return self._metric(units, "Referenced")

    def as_dict(self, units: str = "bytes") -> dict[str, int | float]:
        """Get every metric in the given units, keyed by metric name."""
        return {name: getattr(self, name)(units) for name in METRICS}

    def breakdown(self, name: str = "", username: str = "") -> MemoryBreakdown:
        """Build an immutable breakdown of this snapshot, in bytes."""
        return MemoryBreakdown(
            pid=self._pid,
            name=name,
            username=username,
            rss=self.rss(),
            pss=self.pss(),
            uss=self.uss(),
            shared=self.shared(),
            swap=self.swap(),
            referenced=self.referenced(),
            total=self.total(),
        )

    def _read_state(self) -> RollupState:
        if not self.is_supported():
            logger.debug("smaps_rollup is not available on %s", sys.platform)
            return UnsupportedRollup()
        return ActiveRollup(MappingProxyType(read_rollup(self._pid)))

    def _metric(self, units: str, *names: str) -> int | float:
        if isinstance(self._state, UnsupportedRollup):
            return convert_units(UNSUPPORTED, units)
        return convert_units(sum(self._state.get(name) for name in names), units)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pid={self._pid}, supported={self.supported})"
