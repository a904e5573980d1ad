"""Messages exchanged between the command-line client and the daemon."""

from __future__ import annotations

import json
import math
import os
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Iterator, Union

from .errors import DeserializationError, SerializationError

_NANOS = 1_000_000_000


class ProcessState(Enum):
    """Lifecycle state of a managed process."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERRORED = "errored"
    RESTARTING = "restarting"

    def __str__(self) -> str:
        return self.value


@dataclass
class ProcessStats:
    """Runtime metrics of a process; durations and times are in seconds."""

    pid: int | None = None
    uptime: float = 0.0
    restarts: int = 0
    cpu_usage: float = 0.0
    memory_usage: int = 0
    last_restart: float | None = None


@dataclass
class ProcessInfo:
    id: int
    name: str
    state: ProcessState
    stats: ProcessStats = field(default_factory=ProcessStats)


# Commands


@dataclass
class StartOptions:
    script: str
    name: str | None = None
    instances: int = 1
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | None = None
    args: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.script = os.fspath(self.script)
        if self.cwd is not None:
            self.cwd = os.fspath(self.cwd)


@dataclass
class StartFromConfig:
    config_path: str

    def __post_init__(self) -> None:
        self.config_path = os.fspath(self.config_path)


@dataclass
class StopOptions:
    id: int
    force: bool = False


@dataclass
class RestartOptions:
    target: str
    rolling: bool = False


@dataclass(frozen=True)
class ListProcesses:
    """Ask for the list of all managed processes."""


@dataclass
class LogOptions:
    id: int
    lines: int | None = None
    follow: bool = False


@dataclass
class DeleteOptions:
    target: str


class DaemonCommand(Enum):
    START = "Start"
    STOP = "Stop"
    STATUS = "Status"


@dataclass
class ReloadConfig:
    config_path: str

    def __post_init__(self) -> None:
        self.config_path = os.fspath(self.config_path)


Command = Union[
    StartOptions,
    StartFromConfig,
    StopOptions,
    RestartOptions,
    ListProcesses,
    LogOptions,
    DeleteOptions,
    DaemonCommand,
    ReloadConfig,
]

_COMMAND_TAGS: dict[type, str] = {
    StartOptions: "Start",
    StartFromConfig: "StartFromConfig",
    StopOptions: "Stop",
    RestartOptions: "Restart",
    LogOptions: "Logs",
    DeleteOptions: "Delete",
    ReloadConfig: "ReloadConfig",
}
_TAG_COMMANDS = {tag: cls for cls, tag in _COMMAND_TAGS.items()}


# Response data


@dataclass
class Started:
    id: int
    name: str


@dataclass
class Stopped:
    id: int


@dataclass
class Restarted:
    id: int


@dataclass
class ProcessList:
    processes: list[ProcessInfo] = field(default_factory=list)


@dataclass
class Logs:
    lines: list[str] = field(default_factory=list)


@dataclass
class Deleted:
    id: int


@dataclass
class DaemonStatusData:
    running: bool
    uptime: float


@dataclass
class Success:
    message: str


ResponseData = Union[
    Started, Stopped, Restarted, ProcessList, Logs, Deleted, DaemonStatusData, Success
]


# Wire helpers


@contextmanager
def _decoding(what: str) -> Iterator[None]:
    try:
        yield
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DeserializationError(f"Failed to deserialize {what}: {exc}") from exc


def _dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"))


def _split_seconds(seconds: float) -> tuple[int, int]:
    if seconds < 0:
        raise SerializationError(f"negative duration: {seconds}")
    whole = math.floor(seconds)
    nanos = round((seconds - whole) * _NANOS)
    if nanos >= _NANOS:
        whole, nanos = whole + 1, nanos - _NANOS
    return int(whole), int(nanos)


def _duration_to_wire(seconds: float) -> dict[str, int]:
    secs, nanos = _split_seconds(seconds)
    return {"secs": secs, "nanos": nanos}


def _duration_from_wire(value: dict[str, Any]) -> float:
    return value["secs"] + value["nanos"] / _NANOS


def _time_to_wire(timestamp: float) -> dict[str, int]:
    secs, nanos = _split_seconds(timestamp)
    return {"secs_since_epoch": secs, "nanos_since_epoch": nanos}


def _time_from_wire(value: dict[str, Any]) -> float:
    return value["secs_since_epoch"] + value["nanos_since_epoch"] / _NANOS


def _state_to_wire(state: ProcessState) -> str:
    return state.name.capitalize()


def _state_from_wire(name: str) -> ProcessState:
    return ProcessState[name.upper()]


def _stats_to_wire(stats: ProcessStats) -> dict[str, Any]:
    return {
        "pid": stats.pid,
        "uptime": _duration_to_wire(stats.uptime),
        "restarts": stats.restarts,
        "cpu_usage": stats.cpu_usage,
        "memory_usage": stats.memory_usage,
        "last_restart": None
        if stats.last_restart is None
        else _time_to_wire(stats.last_restart),
    }


def _stats_from_wire(value: dict[str, Any]) -> ProcessStats:
    last = value.get("last_restart")
    return ProcessStats(
        pid=value.get("pid"),
        uptime=_duration_from_wire(value["uptime"]),
        restarts=value["restarts"],
        cpu_usage=float(value["cpu_usage"]),
        memory_usage=value["memory_usage"],
        last_restart=None if last is None else _time_from_wire(last),
    )


def _info_to_wire(info: ProcessInfo) -> dict[str, Any]:
    return {
        "id": info.id,
        "name": info.name,
        "state": _state_to_wire(info.state),
        "stats": _stats_to_wire(info.stats),
    }


def _info_from_wire(value: dict[str, Any]) -> ProcessInfo:
    return ProcessInfo(
        id=value["id"],
        name=value["name"],
        state=_state_from_wire(value["state"]),
        stats=_stats_from_wire(value["stats"]),
    )


def _single_entry(data: Any) -> tuple[str, Any]:
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"expected an object with one key, got {data!r}")
    return next(iter(data.items()))


def command_to_dict(command: Command) -> Any:
    """Turn a command into its JSON-compatible wire value."""
    if isinstance(command, ListProcesses):
        return "List"
    if isinstance(command, DaemonCommand):
        return {"Daemon": command.value}
    tag = _COMMAND_TAGS.get(type(command))
    if tag is None:
        raise SerializationError(f"Unknown command: {command!r}")
    return {tag: asdict(command)}


def command_from_dict(data: Any) -> Command:
    """Build a command from its wire value."""
    with _decoding("command"):
        if data == "List":
            return ListProcesses()
        tag, body = _single_entry(data)
        if tag == "Daemon":
            return DaemonCommand(body)
        cls = _TAG_COMMANDS.get(tag)
        if cls is None:
            raise ValueError(f"unknown command variant {tag!r}")
        if not isinstance(body, dict):
            raise TypeError(f"expected an object for {tag}, got {body!r}")
        return cls(**body)


def response_data_to_dict(data: ResponseData) -> Any:
    """Turn response data into its JSON-compatible wire value."""
    match data:
        case Started(id=pid, name=name):
            return {"Started": {"id": pid, "name": name}}
        case Stopped(id=pid):
            return {"Stopped": {"id": pid}}
        case Restarted(id=pid):
            return {"Restarted": {"id": pid}}
        case Deleted(id=pid):
            return {"Deleted": {"id": pid}}
        case ProcessList(processes=processes):
            return {"ProcessList": [_info_to_wire(p) for p in processes]}
        case Logs(lines=lines):
            return {"Logs": list(lines)}
        case DaemonStatusData(running=running, uptime=uptime):
            return {
                "DaemonStatus": {"running": running, "uptime": _duration_to_wire(uptime)}
            }
        case Success(message=message):
            return {"Success": message}
    raise SerializationError(f"Unknown response data: {data!r}")


def response_data_from_dict(data: Any) -> ResponseData:
    """Build response data from its wire value."""
    with _decoding("response data"):
        tag, body = _single_entry(data)
        match tag:
            case "Started":
                return Started(id=body["id"], name=body["name"])
            case "Stopped":
                return Stopped(id=body["id"])
            case "Restarted":
                return Restarted(id=body["id"])
            case "Deleted":
                return Deleted(id=body["id"])
            case "ProcessList":
                return ProcessList([_info_from_wire(item) for item in body])
            case "Logs":
                if not isinstance(body, list):
                    raise TypeError(f"expected a list of lines, got {body!r}")
                return Logs([str(line) for line in body])
            case "DaemonStatus":
                return DaemonStatusData(
                    running=bool(body["running"]),
                    uptime=_duration_from_wire(body["uptime"]),
                )
            case "Success":
                if not isinstance(body, str):
                    raise TypeError(f"expected a message, got {body!r}")
                return Success(body)
        raise ValueError(f"unknown response variant {tag!r}")


@dataclass
class Request:
    """A command sent by the client, tagged with a request id."""

    id: int
    command: Command

    def to_json(self) -> str:
        return _dumps({"id": self.id, "command": command_to_dict(self.command)})

    @classmethod
    def from_json(cls, text: str | bytes) -> Request:
        with _decoding("request"):
            payload = json.loads(text)
            return cls(id=payload["id"], command=command_from_dict(payload["command"]))


@dataclass
class Response:
    """The daemon's answer: either data or an error message."""

    id: int
    data: ResponseData | None = None
    failure: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, id: int, data: ResponseData) -> Response:
        return cls(id=id, data=data)

    @classmethod
    def error(cls, id: int, message: str) -> Response:
        return cls(id=id, failure=message)

    def to_json(self) -> str:
        if self.failure is not None:
            result: dict[str, Any] = {"Err": self.failure}
        else:
            result = {"Ok": response_data_to_dict(self.data)}
        return _dumps({"id": self.id, "result": result})

    @classmethod
    def from_json(cls, text: str | bytes) -> Response:
        with _decoding("response"):
            payload = json.loads(text)
            tag, body = _single_entry(payload["result"])
            if tag == "Ok":
                return cls(id=payload["id"], data=response_data_from_dict(body))
            if tag == "Err":
                return cls(id=payload["id"], failure=str(body))
            raise ValueError(f"unknown result variant {tag!r}")