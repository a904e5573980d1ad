import pytest

from adasa import errors


def test_daemon_not_running_message():
    assert str(errors.DaemonNotRunning()) == "Daemon not running"


def test_daemon_already_running_message():
    assert str(errors.DaemonAlreadyRunning()) == "Daemon already running"


def test_other_error_is_bare_message():
    assert str(errors.OtherError("something odd")) == "something odd"


def test_message_contains_detail():
    err = errors.ProcessNotFound("web")
    assert str(err).startswith("Process not found")
    assert str(err).endswith("web")
    assert err.details == ("web",)


def test_two_part_message_keeps_both_details():
    err = errors.StopError("worker", "timed out")
    text = str(err)
    assert "worker" in text
    assert "timed out" in text
    assert text.index("worker") < text.index("timed out")


@pytest.mark.parametrize(
    "cls",
    [
        errors.SpawnError,
        errors.IpcError,
        errors.ConnectionError_,
        errors.ProtocolError,
        errors.StateError,
        errors.ConfigError,
        errors.InvalidConfig,
        errors.MissingConfigField,
        errors.ConfigValidationError,
        errors.SerializationError,
        errors.DeserializationError,
        errors.InternalError,
        errors.SignalError,
        errors.TimeoutError_,
        errors.SystemError_,
        errors.RestartLimitExceeded,
        errors.ProcessAlreadyExists,
    ],
)
def test_all_errors_catchable_as_base(cls):
    err = cls("detail")
    assert isinstance(err, errors.AdasaError)
    assert "detail" in str(err)
    assert err.details == ("detail",)


def test_builtin_names_are_not_shadowed():
    conn_err = errors.ConnectionError_("refused")
    timeout_err = errors.TimeoutError_("slow")
    assert not isinstance(conn_err, ConnectionError)
    assert not isinstance(timeout_err, TimeoutError)
    assert "refused" in str(conn_err)
    assert "slow" in str(timeout_err)