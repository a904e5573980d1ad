"""Terminal output for the command-line client: messages, tables, logs and spinners."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from rich import box
from rich.console import Console
from rich.status import Status
from rich.table import Table
from rich.text import Text

from .protocol import (
    DaemonStatusData,
    Deleted,
    Logs,
    ProcessInfo,
    ProcessList,
    ProcessState,
    Restarted,
    ResponseData,
    Started,
    Stopped,
    Success,
)

_out = Console(highlight=False)
_err = Console(stderr=True, highlight=False)

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024

_STATE_STYLES = {
    ProcessState.RUNNING: "green",
    ProcessState.STARTING: "yellow",
    ProcessState.RESTARTING: "yellow",
    ProcessState.STOPPING: "yellow",
    ProcessState.STOPPED: "bright_black",
    ProcessState.ERRORED: "bold red",
}

_LABEL_WIDTH = 15


def _ok(message: str) -> Text:
    return Text.assemble(("✓", "bold green"), " ", message)


def _headline(message: str) -> Text:
    return Text(message, style="bold green")


def _field(label: str, value: str | Text) -> Text:
    return Text.assemble("  ", (label, "bold"), ": ", value)


def _detail(label: str, value: str | Text) -> Text:
    return Text.assemble("  ", (f"{label:<{_LABEL_WIDTH}}", "bold"), " ", value)


def print_success(data: ResponseData) -> None:
    """Print a successful response from the daemon."""
    match data:
        case Started(id=pid, name=name):
            _out.print(_headline("✓ Process started successfully"))
            _out.print(_field("ID", str(pid)))
            _out.print(_field("Name", Text(name, style="cyan")))
        case Stopped(id=pid):
            _out.print(_headline(f"✓ Process {pid} stopped successfully"))
        case Restarted(id=pid):
            _out.print(_headline(f"✓ Process {pid} restarted successfully"))
        case ProcessList(processes=processes):
            if processes:
                print_process_table(processes)
            else:
                _out.print(Text("No processes are currently running", style="yellow"))
        case Logs(lines=lines):
            print_logs(lines)
        case Deleted(id=pid):
            _out.print(_headline(f"✓ Process {pid} deleted successfully"))
        case DaemonStatusData(running=running, uptime=uptime):
            if running:
                _out.print(_headline("✓ Daemon is running"))
                _out.print(_field("Uptime", format_duration(uptime)))
            else:
                _out.print(Text("✗ Daemon is not running", style="bold red"))
        case Success(message=message):
            _out.print(_ok(message))


def print_error(error: str) -> None:
    """Print an error message to stderr."""
    _err.print(Text.assemble(("✗ Error:", "bold red"), " ", error))


def print_info(message: str) -> None:
    _out.print(Text.assemble(("ℹ", "bold blue"), " ", message))


def print_success_msg(message: str) -> None:
    _out.print(_ok(message))


def print_process_table(processes: Sequence[ProcessInfo]) -> None:
    """Print processes as a table followed by a total."""
    table = Table(box=box.ROUNDED)
    for header in ("ID", "Name", "State", "PID", "CPU", "Memory", "Uptime", "Restarts"):
        table.add_column(Text(header, justify="center"))

    for process in processes:
        stats = process.stats
        table.add_row(
            Text(str(process.id)),
            Text(truncate(process.name, 20)),
            format_state(process.state),
            Text("-" if stats.pid is None else str(stats.pid)),
            Text(f"{stats.cpu_usage:.1f}%"),
            Text(format_memory(stats.memory_usage)),
            Text(format_duration(stats.uptime)),
            Text(str(stats.restarts)),
        )

    _out.print()
    _out.print(table)
    _out.print()
    _out.print(Text(f"Total: {len(processes)} process(es)", style="dim italic"))


def print_detailed_status(process: ProcessInfo) -> None:
    """Print every known detail of one process."""
    stats = process.stats
    _out.print()
    _out.print(Text("Process Details", style="bold underline"))
    _out.print()
    _out.print(_detail("ID:", str(process.id)))
    _out.print(_detail("Name:", Text(process.name, style="cyan")))
    _out.print(_detail("State:", format_state(process.state)))
    if stats.pid is not None:
        _out.print(_detail("PID:", str(stats.pid)))
    _out.print(_detail("CPU Usage:", f"{stats.cpu_usage:.1f}%"))
    _out.print(_detail("Memory:", format_memory(stats.memory_usage)))
    _out.print(_detail("Uptime:", format_duration(stats.uptime)))
    _out.print(_detail("Restarts:", str(stats.restarts)))
    if stats.last_restart is not None:
        when = datetime.fromtimestamp(stats.last_restart)
        _out.print(_detail("Last Restart:", when.strftime("%Y-%m-%d %H:%M:%S")))
    _out.print()


def print_logs(lines: Iterable[str]) -> None:
    """Print log lines, stamping those that carry no timestamp of their own."""
    lines = list(lines)
    if not lines:
        _out.print(Text("No logs available", style="yellow"))
        return

    _out.print()
    _out.print(Text("Logs", style="bold underline"))
    _out.print()
    for line in lines:
        if line.startswith("["):
            _out.print(Text(line))
        else:
            stamp = datetime.now().strftime("%H:%M:%S")
            _out.print(Text.assemble((f"[{stamp}]", "dim"), " ", line))
    _out.print()


def format_state(state: ProcessState) -> Text:
    """The state's name, styled by how healthy it is."""
    return Text(str(state), style=_STATE_STYLES[state])


def format_duration(seconds: float) -> str:
    """Render a duration in seconds as e.g. ``1h 1m``."""
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        mins, rest = divmod(secs, 60)
        return f"{mins}m {rest}s" if rest else f"{mins}m"
    if secs < 86400:
        hours, mins = secs // 3600, (secs % 3600) // 60
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    days, hours = secs // 86400, (secs % 86400) // 3600
    return f"{days}d {hours}h" if hours else f"{days}d"


def format_memory(num_bytes: int) -> str:
    """Render a byte count as B, KB, MB or GB."""
    if num_bytes < _KB:
        return f"{num_bytes}B"
    if num_bytes < _MB:
        return f"{num_bytes / _KB:.1f}KB"
    if num_bytes < _GB:
        return f"{num_bytes / _MB:.1f}MB"
    return f"{num_bytes / _GB:.2f}GB"


def truncate(text: str, max_len: int) -> str:
    """Shorten text to ``max_len`` characters, ending in an ellipsis when cut."""
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 3, 0)] + "..."


def create_progress_bar(message: str) -> Status:
    """Start a spinner showing the message."""
    status = _out.status(message, spinner="dots", spinner_style="green")
    status.start()
    return status


def finish_progress_success(progress: Status, message: str) -> None:
    progress.stop()
    _out.print(Text.assemble(("✓", "green"), " ", message))


def finish_progress_error(progress: Status, message: str) -> None:
    progress.stop()
    _out.print(Text.assemble(("✗", "red"), " ", message))