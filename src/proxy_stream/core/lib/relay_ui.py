"""Live terminal dashboard for the relay."""

import threading
import time

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from proxy_stream.core.config import RelayConfig
from proxy_stream.core.utils.utils import format_bytes

from .relay_stats import RelayStats

console = Console()

BANDWIDTH_THRESHOLD = 100  # bytes/s change before the figure is redrawn


class RelayUI:
    """Renders relay statistics in a rich ``Live`` panel."""

    def __init__(self, config: RelayConfig, stats: RelayStats) -> None:
        self.config = config
        self.stats = stats
        self.running = True
        self._last_bandwidth = 0.0
        self._start_time = time.monotonic()
        self._refresh_rate = 0.5
        self._spinner = Spinner("dots", text="")
        self._thread: threading.Thread | None = None

    def _generate_table(self) -> Table:
        """Generate statistics table."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", no_wrap=True)

        bandwidth = self.stats.get_bandwidth()
        if abs(bandwidth - self._last_bandwidth) > BANDWIDTH_THRESHOLD or not bandwidth:
            self._last_bandwidth = bandwidth

        spinner_text = self._spinner.render(time.monotonic() - self._start_time)
        table.add_row("Bandwidth", f"{spinner_text} {format_bytes(self._last_bandwidth)}/s")
        table.add_row(
            "Active Sessions",
            f"{self.stats.active_sessions} / {self.config.max_connections}",
        )
        table.add_row("Total Sessions", str(self.stats.total_sessions))
        table.add_row("To Destination", format_bytes(self.stats.bytes_upstream))
        table.add_row("To Clients", format_bytes(self.stats.bytes_downstream))
        if self.config.skip_count:
            table.add_row("Chunks Skipped", str(self.stats.chunks_skipped))
        for outcome in ("normal", "timed-out", "errored"):
            table.add_row(f"Ended {outcome}", str(self.stats.outcome_count(outcome)))
        return table

    def _generate_display(self) -> Panel:
        """Generate the main display panel."""
        title = Text(
            f"Relay :{self.config.listen_port} -> "
            f"{self.config.destination_host}:{self.config.destination_port}",
            style="bold cyan",
        )
        return Panel(
            self._generate_table(),
            title=title,
            subtitle="Press Ctrl+C to exit",
            border_style="blue",
            padding=(1, 2),
        )

    def start(self) -> None:
        """Run the dashboard on a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="relay-ui", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop redrawing and wait for the dashboard thread to exit."""
        self.running = False
        if self._thread is not None:
            self._thread.join(timeout=self._refresh_rate * 4)

    def run(self) -> None:
        """Redraw the panel until stopped."""
        with Live(
            self._generate_display(),
            console=console,
            refresh_per_second=4,
            transient=False,
            auto_refresh=False,
        ) as live:
            while self.running:
                live.update(self._generate_display(), refresh=True)
                time.sleep(self._refresh_rate)


def create_relay_ui(config: RelayConfig, stats: RelayStats) -> RelayUI:
    """Create the dashboard (not yet started)."""
    return RelayUI(config, stats)
