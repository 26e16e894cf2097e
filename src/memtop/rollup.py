"""Reader and parser for /proc/<pid>/smaps_rollup."""

import logging
import math
from collections import Counter
from collections.abc import Iterable
from pathlib import Path

from memtop.units import multiplier_for

logger = logging.getLogger(__name__)


class RollupReadError(OSError):
    """Raised when a rollup file exists but could not be read."""


def rollup_path(pid: int) -> Path:
    """Get the path of the rollup file for a process."""
    return Path(f"/proc/{pid}/smaps_rollup")


def parse_rollup(lines: Iterable[str]) -> dict[str, int]:
    """
    Parse rollup text into byte counts keyed by field name.

    Only ``Name: value unit`` lines are considered, so the header line,
    blank lines and unit-less fields are ignored. An unknown unit counts
    as bytes. Same-named fields are summed. Malformed values and negative
    amounts are skipped.

    Args:
        lines: Lines of the rollup file.

    Returns:
        Mapping of field name (e.g. "Rss", "Private_Dirty") to bytes.
    """
    stats: Counter[str] = Counter()

    for line in lines:
        parts = line.split()
        if len(parts) != 3 or not parts[0].endswith(":") or not parts[2].isalpha():
            continue

        key, value, units = parts
        try:
            amount = float(value) * multiplier_for(units)
            if amount < 0:
                continue
            # Halves round away from zero
            stats[key.removesuffix(":")] += math.floor(amount + 0.5)
        except (ValueError, OverflowError):
            continue

    return dict(stats)


def read_rollup(pid: int) -> dict[str, int]:
    """
    Read and parse the rollup file of a process.

    A process that does not exist (or exits before the read) yields an
    empty mapping.

    Raises:
        RollupReadError: If the file exists but reading it fails.
    """
    path = rollup_path(pid)
    if not path.exists():
        logger.debug("No rollup file for pid %s", pid)
        return {}

    try:
        text = path.read_text()
    except (FileNotFoundError, ProcessLookupError):
        logger.debug("Process %s exited before its rollup was read", pid)
        return {}
    except OSError as exc:
        raise RollupReadError(exc.errno, f"Unable to read {path}: {exc.strerror}") from exc

    return parse_rollup(text.splitlines())
