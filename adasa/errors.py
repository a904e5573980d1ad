"""Exception hierarchy for the process manager."""

from __future__ import annotations


class AdasaError(Exception):
    """Base class for every error raised by the package."""

    template = "{}"

    def __init__(self, *details: object) -> None:
        self.details = details
        super().__init__(self.template.format(*details))


class ProcessNotFound(AdasaError):
    template = "Process not found: {}"


class SpawnError(AdasaError):
    template = "Failed to spawn process: {}"


class ProcessAlreadyExists(AdasaError):
    template = "Process already exists: {}"


class StopError(AdasaError):
    template = "Failed to stop process {}: {}"


class InvalidProcessState(AdasaError):
    template = "Process {} is in invalid state for this operation: {}"


class RestartLimitExceeded(AdasaError):
    template = "Process restart limit exceeded for {}"


class RestartError(AdasaError):
    template = "Failed to restart process {}: {}"


class IpcError(AdasaError):
    template = "IPC error: {}"


class ConnectionError_(AdasaError):
    template = "Failed to connect to daemon: {}"


class ProtocolError(AdasaError):
    template = "IPC protocol error: {}"


class DaemonNotRunning(AdasaError):
    template = "Daemon not running"


class DaemonAlreadyRunning(AdasaError):
    template = "Daemon already running"


class StateError(AdasaError):
    template = "State store error: {}"


class ConfigError(AdasaError):
    template = "Configuration error: {}"


class InvalidConfig(AdasaError):
    template = "Invalid configuration file: {}"


class MissingConfigField(AdasaError):
    template = "Missing required configuration field: {}"


class ConfigValidationError(AdasaError):
    template = "Configuration validation failed: {}"


class SystemError_(AdasaError):
    template = "System error: {}"


class SignalError(AdasaError):
    template = "Signal error: {}"


class TimeoutError_(AdasaError):
    template = "Timeout error: {}"


class SerializationError(AdasaError):
    template = "Serialization error: {}"


class DeserializationError(AdasaError):
    template = "Deserialization error: {}"


class InternalError(AdasaError):
    template = "Internal error: {}"


class OtherError(AdasaError):
    template = "{}"