import os
from unittest import mock

import pytest

from adasa.daemonize import daemonize
from adasa.errors import OtherError


def test_first_fork_failure():
    with mock.patch("os.fork", side_effect=OSError("no more processes")):
        with pytest.raises(OtherError) as info:
            daemonize()
    assert str(info.value).startswith("First fork failed")
    assert "no more processes" in str(info.value)


def test_parent_exits_after_first_fork():
    with mock.patch("os.fork", return_value=4321), mock.patch(
        "os._exit", side_effect=SystemExit(0)
    ) as exit_mock, mock.patch("os.setsid") as setsid:
        with pytest.raises(SystemExit):
            daemonize()
    exit_mock.assert_called_once_with(0)
    setsid.assert_not_called()


def test_setsid_failure():
    with mock.patch("os.fork", return_value=0), mock.patch(
        "os.setsid", side_effect=OSError("denied")
    ):
        with pytest.raises(OtherError) as info:
            daemonize()
    assert str(info.value).startswith("setsid failed")


def test_second_fork_failure():
    with mock.patch("os.fork", side_effect=[0, OSError("again")]), mock.patch(
        "os.setsid"
    ):
        with pytest.raises(OtherError) as info:
            daemonize()
    assert str(info.value).startswith("Second fork failed")


def test_full_child_path_redirects_streams():
    with mock.patch("os.fork", return_value=0) as fork, mock.patch(
        "os.setsid"
    ) as setsid, mock.patch("os.chdir") as chdir, mock.patch(
        "os.open", return_value=42
    ) as open_mock, mock.patch("os.dup2") as dup2, mock.patch("os.close") as close:
        result = daemonize()
    assert result is None
    assert fork.call_count == 2
    assert setsid.call_args_list == [mock.call()]
    assert chdir.call_args_list == [mock.call("/")]
    assert open_mock.call_args_list == [mock.call(os.devnull, os.O_RDWR)]
    assert dup2.call_args_list == [mock.call(42, 0), mock.call(42, 1), mock.call(42, 2)]
    assert close.call_args_list == [mock.call(42)]


def test_chdir_failure():
    with mock.patch("os.fork", return_value=0), mock.patch("os.setsid"), mock.patch(
        "os.chdir", side_effect=OSError("gone")
    ):
        with pytest.raises(OtherError) as info:
            daemonize()
    assert str(info.value).startswith("Failed to change directory to /")