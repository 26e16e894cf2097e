"""Data models for memtop."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(slots=True, frozen=True)
class ActiveRollup:
    """Parsed rollup counters for a process on a supported platform."""

    fields: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, name: str) -> int:
        return self.fields.get(name, 0)


@dataclass(slots=True, frozen=True)
class UnsupportedRollup:
    """Rollup state on platforms without smaps_rollup; every field reads as -1."""

    def get(self, name: str) -> int:
        return -1


RollupState = ActiveRollup | UnsupportedRollup


@dataclass(slots=True, frozen=True)
class MemoryBreakdown:
    """Immutable memory breakdown of a single process."""

    pid: int
    name: str
    username: str
    rss: int  # Bytes
    pss: int
    uss: int
    shared: int
    swap: int
    referenced: int
    total: int  # rss + swap
