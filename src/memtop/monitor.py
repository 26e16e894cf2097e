"""Background memory monitoring engine for memtop."""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from queue import Queue

import psutil

from memtop.memory import ProcessMemory, is_supported
from memtop.models import MemoryBreakdown
from memtop.rollup import RollupReadError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MemoryReport:
    """Memory breakdowns of every process collected in one poll."""

    supported: bool
    processes: list[MemoryBreakdown] = field(default_factory=list)
    skipped: int = 0  # Processes whose rollup could not be read

    @property
    def total_rss(self) -> int:
        return sum(proc.rss for proc in self.processes)

    @property
    def total_pss(self) -> int:
        return sum(proc.pss for proc in self.processes)

    @property
    def total_uss(self) -> int:
        return sum(proc.uss for proc in self.processes)

    @property
    def total_swap(self) -> int:
        return sum(proc.swap for proc in self.processes)


class MemoryMonitor:
    """
    Monitor that collects per-process memory breakdowns.

    Runs in a separate daemon thread and pushes reports to a thread-safe Queue.
    Processes that exit mid-poll or whose rollup cannot be read are skipped.
    """

    def __init__(
        self,
        update_queue: Queue[MemoryReport],
        pids: Iterable[int] | None = None,
        poll_rate: float = 2.0,
    ) -> None:
        """
        Initialize the MemoryMonitor.

        Args:
            update_queue: Thread-safe queue to push reports to.
            pids: Processes to watch. Default is every process on the system.
            poll_rate: How often to poll (in seconds). Default 2.0s.
        """
        self._queue = update_queue
        self._pids = frozenset(pids) if pids is not None else None
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def pids(self) -> frozenset[int] | None:
        """Get the watched pids, or None when watching every process."""
        return self._pids

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="MemoryMonitor",
        )
        self._thread.start()
        logger.debug("Memory monitor started, polling every %.1fs", self._poll_rate)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.debug("Memory monitor stopped")

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_report())
            except Exception:
                # Keep the loop running; the next poll may succeed
                logger.exception("Memory poll failed")

            self._stop_event.wait(timeout=self._poll_rate)

    def collect_report(self) -> MemoryReport:
        """Collect a report of the current memory usage of watched processes."""
        if not is_supported():
            return MemoryReport(supported=False)

        pids = sorted(self._pids) if self._pids is not None else psutil.pids()
        report = MemoryReport(supported=True)
        for pid in pids:
            try:
                info = psutil.Process(pid).as_dict(attrs=["name", "username"])
                memory = ProcessMemory(pid)
            except (psutil.NoSuchProcess, ValueError):
                # Exited (zombies included) or not a valid pid
                continue
            except RollupReadError as exc:
                logger.debug("Skipping pid %s: %s", pid, exc)
                report.skipped += 1
                continue

            # Kernel threads and processes that exited before the read
            if memory.total() <= 0:
                continue

            report.processes.append(
                memory.breakdown(
                    name=info.get("name") or "",
                    username=info.get("username") or "",
                )
            )

        return report
