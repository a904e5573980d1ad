"""The ``adasa`` command: talks to the daemon and manages the daemon itself."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from collections.abc import Iterable, Sequence
from pathlib import Path

from . import output
from .client import IpcClient
from .daemon_manager import DaemonManager
from .errors import AdasaError, ConfigError, OtherError
from .protocol import (
    Command,
    DeleteOptions,
    ListProcesses,
    LogOptions,
    ProcessList,
    ReloadConfig,
    RestartOptions,
    StartFromConfig,
    StartOptions,
    StopOptions,
)

_DAEMON_STARTUP_WAIT = 0.5
_DAEMON_STOP_TIMEOUT = 10
_LONG_OPERATIONS = {"start", "restart"}


def parse_env_vars(env_vars: Iterable[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a mapping."""
    result: dict[str, str] = {}
    for entry in env_vars:
        key, sep, value = entry.partition("=")
        if not sep:
            raise ConfigError(
                f"Invalid environment variable format: '{entry}'. Expected KEY=VALUE"
            )
        result[key] = value
    return result


def _count(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """The argument parser for every subcommand."""
    parser = argparse.ArgumentParser(
        prog="adasa", description="Adasa - A fast, open-source process manager"
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    start = commands.add_parser(
        "start", help="Start a new process", usage="%(prog)s [options] [script] [-- args ...]"
    )
    start.add_argument("script", nargs="?", help="Path to the script or executable to run")
    start.add_argument("-f", "--config", help="Path to configuration file (TOML or JSON)")
    start.add_argument("-n", "--name", help="Name for the process (defaults to script name)")
    start.add_argument(
        "-i", "--instances", type=_count, default=1, help="Number of instances to start"
    )
    start.add_argument("-c", "--cwd", help="Working directory for the process")
    start.add_argument(
        "-e", "--env", action="append", default=[], help="Environment variable (KEY=VALUE)"
    )

    stop = commands.add_parser("stop", help="Stop a running process")
    stop.add_argument("id", type=_count, help="Process ID to stop")
    stop.add_argument("-f", "--force", action="store_true", help="Force kill (SIGKILL)")

    restart = commands.add_parser("restart", help="Restart a process")
    restart.add_argument("id", help="Process ID or name to restart")
    restart.add_argument(
        "-r", "--rolling", action="store_true", help="Rolling restart of all instances"
    )

    listing = commands.add_parser("list", help="List all managed processes")
    listing.add_argument(
        "-d", "--detailed", action="store_true", help="Show details for each process"
    )

    logs = commands.add_parser("logs", help="View process logs")
    logs.add_argument("id", type=_count, help="Process ID to view logs for")
    logs.add_argument("-l", "--lines", type=_count, help="Number of lines to display")
    logs.add_argument("-f", "--follow", action="store_true", help="Follow log output")

    delete = commands.add_parser("delete", help="Delete a stopped process")
    delete.add_argument("target", help="Process ID or name (a name deletes all instances)")

    reload = commands.add_parser("reload", help="Reload configuration and start new processes")
    reload.add_argument("config", help="Path to configuration file (TOML or JSON)")

    daemon = commands.add_parser("daemon", help="Manage the daemon")
    actions = daemon.add_subparsers(dest="action", required=True, metavar="ACTION")
    actions.add_parser("start", help="Start the daemon")
    actions.add_parser("stop", help="Stop the daemon")
    actions.add_parser("status", help="Check daemon status")

    return parser


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    words = list(sys.argv[1:] if argv is None else argv)
    extra: list[str] = []
    if "--" in words:
        split = words.index("--")
        words, extra = words[:split], words[split + 1 :]

    parser = build_parser()
    args = parser.parse_args(words)
    if extra and args.command != "start":
        parser.error(f"unexpected arguments: {' '.join(extra)}")
    if args.command == "start" and args.config is not None and args.script is not None:
        parser.error("argument -f/--config: not allowed with argument script")
    args.args = extra
    return args


def build_command(args: argparse.Namespace) -> Command:
    """Turn parsed arguments into the command sent to the daemon."""
    match args.command:
        case "start":
            if args.config is not None:
                return StartFromConfig(config_path=args.config)
            if args.script is None:
                raise ConfigError("Either --config or <script> must be provided")
            return StartOptions(
                script=args.script,
                name=args.name,
                instances=args.instances,
                env=parse_env_vars(args.env),
                cwd=args.cwd,
                args=list(getattr(args, "args", [])),
            )
        case "stop":
            return StopOptions(id=args.id, force=args.force)
        case "restart":
            return RestartOptions(target=args.id, rolling=args.rolling)
        case "list":
            return ListProcesses()
        case "logs":
            return LogOptions(id=args.id, lines=args.lines, follow=args.follow)
        case "delete":
            return DeleteOptions(target=args.target)
        case "reload":
            return ReloadConfig(config_path=args.config)
    raise OtherError(f"Command '{args.command}' is not sent to the daemon")


def _daemon_binary() -> Path:
    return Path(sys.argv[0]).resolve().parent / "adasa-daemon"


def run_daemon_command(action: str, manager: DaemonManager | None = None) -> None:
    """Start, stop or report on the daemon without going through the socket."""
    manager = manager if manager is not None else DaemonManager()

    if action == "start":
        if manager.is_running():
            output.print_info("Daemon is already running")
            return
        output.print_info("Starting daemon...")
        binary = _daemon_binary()
        if not binary.exists():
            raise OtherError(f"Daemon binary not found at: {binary}")
        try:
            subprocess.Popen([str(binary), "--daemonize"])
        except OSError as exc:
            raise OtherError(f"Failed to start daemon: {exc}") from exc
        time.sleep(_DAEMON_STARTUP_WAIT)
        if not manager.is_running():
            raise OtherError("Daemon failed to start")
        output.print_success_msg(f"Daemon started successfully (PID: {manager.get_pid()})")

    elif action == "stop":
        if not manager.is_running():
            output.print_info("Daemon is not running")
            return
        output.print_info("Stopping daemon...")
        manager.stop_daemon(_DAEMON_STOP_TIMEOUT)
        output.print_success_msg("Daemon stopped successfully")

    elif action == "status":
        status = manager.get_status()
        if status.running:
            output.print_success_msg(
                f"Daemon is running (PID: {status.pid})\nPID file: {status.pid_file}"
            )
        else:
            output.print_info(f"Daemon is not running\nPID file: {status.pid_file}")

    else:
        raise OtherError(f"Unknown daemon action: {action}")


def _execute(args: argparse.Namespace) -> int:
    command = build_command(args)
    progress = (
        output.create_progress_bar("Processing...")
        if args.command in _LONG_OPERATIONS
        else None
    )
    try:
        with IpcClient() as client:
            response = client.send_command(command)
    except AdasaError:
        if progress is not None:
            output.finish_progress_error(progress, "Failed")
        raise
    if progress is not None:
        output.finish_progress_success(progress, "Done")

    if not response.ok:
        output.print_error(response.failure)
        return 1

    data = response.data
    if args.command == "list" and args.detailed and isinstance(data, ProcessList):
        for process in data.processes:
            output.print_detailed_status(process)
    else:
        output.print_success(data)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the exit status."""
    args = _parse_args(argv)
    try:
        if args.command == "daemon":
            run_daemon_command(args.action, DaemonManager())
            return 0
        return _execute(args)
    except AdasaError as exc:
        output.print_error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())