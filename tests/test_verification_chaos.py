"""Verification Test: Chaos Monkey - watched processes dying mid-poll.

Monitored processes are terminated while the monitor is running. A process
whose rollup file disappears must simply drop out of the next report; the
monitor must never crash with NoSuchProcess or a read error.
"""

import multiprocessing
import os
import random
import time
from concurrent.futures import ThreadPoolExecutor
from queue import Empty, Queue

import pytest

from memtop.memory import ProcessMemory, is_supported
from memtop.monitor import MemoryMonitor, MemoryReport

pytestmark = pytest.mark.skipif(
    not (is_supported() and os.path.exists(f"/proc/{os.getpid()}/smaps_rollup")),
    reason="requires /proc/<pid>/smaps_rollup",
)


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_monitor_survives_process_termination(self):
        """
        Test that the monitor doesn't crash when watched processes die.

        Half of the watched workers are terminated while polling; later
        reports must only contain workers that are still alive.
        """
        processes = []
        for _ in range(20):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        queue: Queue[MemoryReport] = Queue()
        monitor = MemoryMonitor(queue, pids=[p.pid for p in processes], poll_rate=0.2)

        try:
            monitor.start()
            assert queue.get(timeout=5.0) is not None

            killed = random.sample(processes, 10)
            for p in killed:
                p.terminate()
                time.sleep(0.02)
            for p in killed:
                p.join(timeout=1.0)

            # Drop reports that may predate the terminations
            while True:
                try:
                    queue.get_nowait()
                except Empty:
                    break

            reports = []
            deadline = time.time() + 5.0
            while time.time() < deadline and len(reports) < 3:
                try:
                    reports.append(queue.get(timeout=1.0))
                except Empty:
                    continue

            assert len(reports) >= 3, f"Expected at least 3 reports after chaos, got {len(reports)}"
            killed_pids = {p.pid for p in killed}
            for report in reports[1:]:
                assert killed_pids.isdisjoint(proc.pid for proc in report.processes)

            assert monitor.is_running, "Monitor should still be running after chaos"

        finally:
            monitor.stop()
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_snapshot_of_exited_process_is_zero(self):
        """Test a snapshot taken after the process exited reports zero."""
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        p.terminate()
        p.join(timeout=1.0)

        memory = ProcessMemory(p.pid)

        assert memory.total() == 0
        assert memory.rss("kb") == 0

    def test_snapshots_from_many_threads(self):
        """Test snapshots can be taken concurrently without shared state."""
        with ThreadPoolExecutor(max_workers=8) as pool:
            snapshots = list(pool.map(lambda _: ProcessMemory(os.getpid()), range(32)))

        assert all(snapshot.rss() > 0 for snapshot in snapshots)
