"""memtop - Textual application and command line entry point."""

import argparse
import logging
import sys
from collections.abc import Iterable, Sequence
from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.logging import TextualHandler
from textual.widgets import DataTable, Footer, Static

from memtop.memory import ProcessMemory
from memtop.models import MemoryBreakdown
from memtop.monitor import MemoryMonitor, MemoryReport
from memtop.rollup import RollupReadError
from memtop.units import InvalidUnitError, divisor_for

logger = logging.getLogger(__name__)


class SortKey(Enum):
    """Sort keys for the process table."""

    USS = "uss"
    PSS = "pss"
    RSS = "rss"
    SWAP = "swap"
    PID = "pid"


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    if size < 0:
        return "  n/a"
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


class HeaderStats(Static):
    """Header widget showing memory totals of the monitored processes."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 3;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__("Loading memory info...", *args, **kwargs)
        self._supported: bool = True
        self._process_count: int = 0
        self._skipped: int = 0
        self._total_rss: int = 0
        self._total_pss: int = 0
        self._total_uss: int = 0
        self._total_swap: int = 0

    def update_stats(self, report: MemoryReport) -> None:
        """Update the totals from a memory report."""
        self._supported = report.supported
        self._process_count = len(report.processes)
        self._skipped = report.skipped
        self._total_rss = report.total_rss
        self._total_pss = report.total_pss
        self._total_uss = report.total_uss
        self._total_swap = report.total_swap
        self.update(self._get_summary())

    def _get_summary(self) -> str:
        """Get the totals display."""
        if not self._supported:
            return "[red]smaps_rollup is only available on Linux[/red]"
        return (
            f"Processes: {self._process_count} ({self._skipped} unreadable)\n"
            f"RSS {format_bytes(self._total_rss)}  "
            f"PSS {format_bytes(self._total_pss)}  "
            f"USS {format_bytes(self._total_uss)}  "
            f"Swap {format_bytes(self._total_swap)}"
        )


class ProcessTable(Container):
    """Container for the per-process memory table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._processes: list[MemoryBreakdown] = []
        self._sort_key: SortKey = SortKey.USS
        self._sort_reverse: bool = True  # Largest consumers first

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key, re-order the rows and return the key."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        self._sort_key = keys[(current_index + 1) % len(keys)]
        self._sort_reverse = self._sort_key is not SortKey.PID
        if self.is_mounted:
            self.update_processes(self._processes)
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("USER", key="user", width=10)
        table.add_column("RSS", key="rss", width=8)
        table.add_column("PSS", key="pss", width=8)
        table.add_column("USS", key="uss", width=8)
        table.add_column("SHR", key="shared", width=8)
        table.add_column("SWAP", key="swap", width=8)
        table.add_column("REF", key="referenced", width=8)
        table.add_column("Name", key="name")

    def update_processes(self, processes: list[MemoryBreakdown]) -> None:
        """
        Update the table with new breakdowns.

        When the row order still matches the sort order, rows are refreshed
        in place with update_cell. Otherwise the rows are rebuilt in sorted
        order, keeping the cursor on the same process.
        """
        table = self.query_one("#process-table", DataTable)
        sorted_processes = self._sort_processes(processes)
        row_keys = [str(proc.pid) for proc in sorted_processes]

        if [row.key.value for row in table.ordered_rows] == row_keys:
            for row_key, proc in zip(row_keys, sorted_processes):
                self._update_row(table, row_key, proc)
        else:
            selected = self._selected_row_key(table)
            table.clear()
            for row_key, proc in zip(row_keys, sorted_processes):
                self._add_row(table, row_key, proc)
            if selected in row_keys:
                table.move_cursor(row=row_keys.index(selected))

        self._processes = list(processes)
        self._current_pids = {proc.pid for proc in sorted_processes}

    @staticmethod
    def _selected_row_key(table: DataTable) -> str | None:
        if table.row_count == 0:
            return None
        try:
            return table.ordered_rows[table.cursor_row].key.value
        except IndexError:
            return None

    def _sort_processes(self, processes: list[MemoryBreakdown]) -> list[MemoryBreakdown]:
        """Sort processes based on the current sort key."""
        key_func = {
            SortKey.USS: lambda p: p.uss,
            SortKey.PSS: lambda p: p.pss,
            SortKey.RSS: lambda p: p.rss,
            SortKey.SWAP: lambda p: p.swap,
            SortKey.PID: lambda p: p.pid,
        }
        return sorted(processes, key=key_func[self._sort_key], reverse=self._sort_reverse)

    @staticmethod
    def _cells(proc: MemoryBreakdown) -> dict[str, str]:
        return {
            "pid": str(proc.pid),
            "user": proc.username[:10],
            "rss": format_bytes(proc.rss),
            "pss": format_bytes(proc.pss),
            "uss": format_bytes(proc.uss),
            "shared": format_bytes(proc.shared),
            "swap": format_bytes(proc.swap),
            "referenced": format_bytes(proc.referenced),
            "name": proc.name[:50],
        }

    def _update_row(self, table: DataTable, row_key: str, proc: MemoryBreakdown) -> None:
        """Update an existing row using update_cell."""
        try:
            for column_key, value in self._cells(proc).items():
                table.update_cell(row_key, column_key, value)
        except Exception:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, row_key: str, proc: MemoryBreakdown) -> None:
        """Add a new row to the table."""
        try:
            table.add_row(*self._cells(proc).values(), key=row_key)
        except Exception:
            pass  # Row may already exist


class MemtopApp(App):
    """Main memtop application."""

    TITLE = "memtop"
    SUB_TITLE = "Process Memory Breakdown"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(self, pids: Iterable[int] | None = None, poll_rate: float = 2.0) -> None:
        """Initialize the MemtopApp."""
        super().__init__()
        self._update_queue: Queue[MemoryReport] = Queue()
        self._monitor = MemoryMonitor(self._update_queue, pids=pids, poll_rate=poll_rate)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the memory monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent report."""
        report = None
        while True:
            try:
                report = self._update_queue.get_nowait()
            except Empty:
                break

        if report is not None:
            self._update_ui(report)

    def _update_ui(self, report: MemoryReport) -> None:
        """Update the UI with a new memory report."""
        try:
            self.query_one("#header-stats", HeaderStats).update_stats(report)
            self.query_one(ProcessTable).update_processes(report.processes)
        except Exception:
            logger.exception("Failed to render memory report")

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


_REPORT_METRICS = ("rss", "pss", "uss", "shared", "swap", "referenced", "total")


def format_report(snapshots: Sequence[ProcessMemory], units: str = "kilobytes") -> str:
    """Format snapshots as a plain text table in the given units."""
    divisor_for(units)
    header = f"{'PID':>8} " + " ".join(f"{name.upper():>12}" for name in _REPORT_METRICS)
    lines = [header, "=" * len(header)]
    for memory in snapshots:
        values = memory.as_dict(units)
        row = " ".join(_format_value(values[name]) for name in _REPORT_METRICS)
        lines.append(f"{memory.pid:>8} {row}")
    return "\n".join(lines)


def _format_value(value: int | float) -> str:
    if isinstance(value, float):
        return f"{value:>12.2f}"
    return f"{value:>12d}"


def _units_arg(value: str) -> str:
    try:
        divisor_for(value)
    except InvalidUnitError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="memtop",
        description="Show the memory breakdown of Linux processes from smaps_rollup.",
    )
    parser.add_argument(
        "-p",
        "--pid",
        dest="pids",
        type=int,
        action="append",
        help="process to report on (repeatable; default: all, or this process with --once)",
    )
    parser.add_argument(
        "-u",
        "--units",
        type=_units_arg,
        default="kilobytes",
        help="units for --once output: bytes, kb, mb or gb (default: kilobytes)",
    )
    parser.add_argument(
        "-n",
        "--poll-rate",
        type=float,
        default=2.0,
        help="seconds between refreshes (default: 2.0)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="print a single report and exit instead of starting the UI",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: WARNING)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for memtop."""
    args = build_parser().parse_args(argv)

    if args.once:
        logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
        if not ProcessMemory.is_supported():
            logger.warning("smaps_rollup is only available on Linux; reporting -1")
        try:
            snapshots = [ProcessMemory(pid) for pid in (args.pids or [None])]
        except RollupReadError as exc:
            print(f"memtop: {exc}", file=sys.stderr)
            return 1
        print(format_report(snapshots, args.units))
        return 0

    logging.basicConfig(level=args.log_level, handlers=[TextualHandler()])
    app = MemtopApp(pids=args.pids, poll_rate=args.poll_rate)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
