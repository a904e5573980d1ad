import os
import signal
import subprocess
import sys
import threading

import pytest

from adasa.daemon_manager import DaemonManager
from adasa.errors import DaemonNotRunning, OtherError
from adasa.pidfile import PidFile


@pytest.fixture
def manager(tmp_path):
    return DaemonManager(PidFile(tmp_path / "adasa.pid"))


def _spawn_reaped(code):
    proc = subprocess.Popen(
        [sys.executable, "-c", code], stdout=subprocess.PIPE, text=True
    )
    assert proc.stdout.readline().strip() == "ready"
    threading.Thread(target=proc.wait, daemon=True).start()
    return proc


def test_daemon_manager_not_running(manager):
    assert not manager.is_running()
    assert manager.get_pid() is None


def test_register_daemon(manager):
    manager.register_daemon()
    assert manager.is_running()
    assert manager.get_pid() == os.getpid()
    manager.unregister_daemon()
    assert not manager.pid_file.exists()


def test_get_status(manager, tmp_path):
    status = manager.get_status()
    assert not status.running
    assert status.pid is None
    assert status.pid_file == tmp_path / "adasa.pid"

    manager.register_daemon()
    status = manager.get_status()
    assert status.running
    assert status.pid == os.getpid()
    manager.unregister_daemon()


def test_register_twice_fails(manager):
    manager.register_daemon()
    with pytest.raises(OtherError):
        manager.register_daemon()
    manager.unregister_daemon()


def test_register_replaces_stale_pid_file(manager):
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    manager.pid_file.path.write_text(str(proc.pid))
    manager.register_daemon()
    assert manager.pid_file.read() == os.getpid()
    manager.unregister_daemon()


def test_stop_daemon_not_running(manager):
    with pytest.raises(DaemonNotRunning):
        manager.stop_daemon(1)


def test_stop_daemon_with_sigterm(manager):
    proc = _spawn_reaped("import time; print('ready', flush=True); time.sleep(30)")
    manager.pid_file.path.write_text(str(proc.pid))
    manager.stop_daemon(5)
    proc.wait(timeout=5)
    assert proc.returncode == -signal.SIGTERM
    assert not manager.pid_file.exists()
    assert not manager.is_running()


def test_stop_daemon_falls_back_to_sigkill(manager):
    proc = _spawn_reaped(
        "import signal, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "print('ready', flush=True)\n"
        "time.sleep(30)\n"
    )
    manager.pid_file.path.write_text(str(proc.pid))
    manager.stop_daemon(0)
    proc.wait(timeout=5)
    assert proc.returncode == -signal.SIGKILL
    assert not manager.pid_file.exists()