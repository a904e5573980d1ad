"""Process configuration: loading from TOML or JSON files, expansion and validation."""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ConfigError, ConfigValidationError, InvalidConfig, MissingConfigField

VALID_STOP_SIGNALS = (
    "SIGTERM",
    "SIGINT",
    "SIGQUIT",
    "SIGKILL",
    "SIGHUP",
    "SIGUSR1",
    "SIGUSR2",
)

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


class LimitAction(Enum):
    """What to do when a process exceeds a resource limit."""

    LOG = "log"
    RESTART = "restart"
    STOP = "stop"

    def __str__(self) -> str:
        return self.value


def expand_env_in_string(text: str) -> str:
    """Replace ``${VAR}`` and ``$VAR`` with values from the environment."""
    result = text
    for key, value in os.environ.items():
        result = result.replace(f"${{{key}}}", value)
        result = result.replace(f"${key}", value)
    return result


def _as_int(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"invalid type for `{key}`: expected an integer, got {value!r}")
    if value < 0 or value > maximum:
        raise ValueError(f"invalid value for `{key}`: {value} is out of range")
    return value


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string, got {value!r}")
    return value


def _as_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}`: expected a boolean, got {value!r}")
    return value


def _as_str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a list, got {value!r}")
    return [_as_str(item, key) for item in value]


def _as_str_map(value: Any, key: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ValueError(f"invalid type for `{key}`: expected a table, got {value!r}")
    return {_as_str(k, key): _as_str(v, key) for k, v in value.items()}


def _optional(data: Mapping[str, Any], key: str, convert, *extra):
    value = data.get(key)
    return None if value is None else convert(value, key, *extra)


def _required(data: Mapping[str, Any], key: str, convert, default, *extra):
    if key not in data:
        return default
    return convert(data[key], key, *extra)


def _as_limit_action(value: Any, key: str) -> LimitAction:
    try:
        return LimitAction(_as_str(value, key))
    except ValueError as exc:
        raise ValueError(
            f"unknown variant {value!r} for `{key}`, expected one of: log, restart, stop"
        ) from exc


@dataclass
class ProcessConfig:
    """All settings needed to run and supervise one process."""

    name: str
    script: str
    args: list[str] = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    instances: int = 1
    autorestart: bool = True
    max_restarts: int = 10
    restart_delay_secs: int = 1
    max_memory: int | None = None
    max_cpu: int | None = None
    limit_action: LimitAction = LimitAction.LOG
    stop_signal: str = "SIGTERM"
    stop_timeout_secs: int = 10

    def __post_init__(self) -> None:
        self.script = os.fspath(self.script)
        if self.cwd is not None:
            self.cwd = os.fspath(self.cwd)

    @classmethod
    def _decode(cls, data: Any) -> ProcessConfig:
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a table of process settings, got {data!r}")
        for key in ("name", "script"):
            if key not in data:
                raise ValueError(f"missing field `{key}`")
        return cls(
            name=_as_str(data["name"], "name"),
            script=_as_str(data["script"], "script"),
            args=_required(data, "args", _as_str_list, []),
            cwd=_optional(data, "cwd", _as_str),
            env=_required(data, "env", _as_str_map, {}),
            instances=_required(data, "instances", _as_int, 1, _U64_MAX),
            autorestart=_required(data, "autorestart", _as_bool, True),
            max_restarts=_required(data, "max_restarts", _as_int, 10, _U64_MAX),
            restart_delay_secs=_required(data, "restart_delay_secs", _as_int, 1, _U64_MAX),
            max_memory=_optional(data, "max_memory", _as_int, _U64_MAX),
            max_cpu=_optional(data, "max_cpu", _as_int, _U32_MAX),
            limit_action=_required(data, "limit_action", _as_limit_action, LimitAction.LOG),
            stop_signal=_required(data, "stop_signal", _as_str, "SIGTERM"),
            stop_timeout_secs=_required(data, "stop_timeout_secs", _as_int, 10, _U64_MAX),
        )

    @classmethod
    def from_dict(cls, data: Any) -> ProcessConfig:
        """Build a configuration from a mapping of settings."""
        try:
            return cls._decode(data)
        except ValueError as exc:
            raise InvalidConfig(str(exc)) from exc

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> list[ProcessConfig]:
        """Load, expand and validate every process configured in a TOML or JSON file."""
        path = Path(path)
        try:
            contents = path.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Failed to read config file: {exc}") from exc

        extension = path.suffix[1:]
        if extension == "toml":
            configs = cls.parse_toml(contents)
        elif extension == "json":
            configs = cls.parse_json(contents)
        else:
            raise InvalidConfig(
                f"Unsupported file format: {extension}. Use .toml or .json"
            )

        for config in configs:
            config.expand_env_vars()
        for config in configs:
            config.validate()
        return configs

    @classmethod
    def parse_toml(cls, contents: str) -> list[ProcessConfig]:
        """Parse a TOML document holding one process or a ``[[processes]]`` array."""
        try:
            document = tomllib.loads(contents)
            raw_processes = document.get("processes", [])
            if not isinstance(raw_processes, list):
                raise ValueError("invalid type for `processes`: expected an array")
            processes = [cls._decode(item) for item in raw_processes]
        except (tomllib.TOMLDecodeError, ValueError) as exc:
            raise InvalidConfig(f"Failed to parse TOML: {exc}") from exc

        remaining = {k: v for k, v in document.items() if k != "processes"}
        try:
            single = cls._decode(remaining)
        except ValueError:
            single = None

        if single is not None:
            return [single]
        if processes:
            return processes
        raise InvalidConfig("No process configuration found in file")

    @classmethod
    def parse_json(cls, contents: str) -> list[ProcessConfig]:
        """Parse a JSON document holding one process or a ``processes`` list."""
        try:
            document = json.loads(contents)
        except ValueError as exc:
            raise InvalidConfig(f"Failed to parse JSON: {exc}") from exc

        try:
            return [cls._decode(document)]
        except ValueError:
            pass

        try:
            if not isinstance(document, Mapping) or "processes" not in document:
                raise ValueError("missing field `processes`")
            raw_processes = document["processes"]
            if not isinstance(raw_processes, list):
                raise ValueError("invalid type for `processes`: expected an array")
            processes = [cls._decode(item) for item in raw_processes]
        except ValueError as exc:
            raise InvalidConfig(
                "Failed to parse JSON: data did not match any variant of "
                "untagged enum ConfigFile"
            ) from exc

        if not processes:
            raise InvalidConfig("No process configuration found in file")
        return processes

    def validate(self) -> None:
        """Raise if any setting is missing or out of range."""
        if not self.name:
            raise MissingConfigField("name")
        if not self.script:
            raise MissingConfigField("script")
        if self.instances == 0:
            raise ConfigValidationError("instances must be at least 1")
        if self.instances > 100:
            raise ConfigValidationError("instances cannot exceed 100")
        if self.max_restarts == 0:
            raise ConfigValidationError("max_restarts must be at least 1")
        if self.stop_signal not in VALID_STOP_SIGNALS:
            raise ConfigValidationError(
                f"Invalid stop_signal: {self.stop_signal}. "
                f"Must be one of: {', '.join(VALID_STOP_SIGNALS)}"
            )
        if self.cwd is not None:
            cwd = Path(self.cwd)
            if not cwd.exists():
                raise ConfigValidationError(f"Working directory does not exist: {cwd}")
            if not cwd.is_dir():
                raise ConfigValidationError(f"Working directory is not a directory: {cwd}")
        if self.max_cpu is not None and not 1 <= self.max_cpu <= 100:
            raise ConfigValidationError("max_cpu must be between 1 and 100")

    def expand_env_vars(self) -> None:
        """Expand environment variables in the script, cwd, arguments and env values."""
        self.script = expand_env_in_string(self.script)
        if self.cwd is not None:
            self.cwd = expand_env_in_string(self.cwd)
        self.args = [expand_env_in_string(arg) for arg in self.args]
        self.env = {key: expand_env_in_string(value) for key, value in self.env.items()}

    def restart_delay(self) -> float:
        """Delay before a restart, in seconds."""
        return float(self.restart_delay_secs)

    def stop_timeout(self) -> float:
        """Time allowed for a graceful stop before a forced kill, in seconds."""
        return float(self.stop_timeout_secs)