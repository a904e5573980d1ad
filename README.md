# adasa

The client side of a small process manager. It has these parts:

- `adasa`, a command that sends commands to a process-manager daemon
  over a Unix socket (`/tmp/adasa.sock`). It can also start, stop and
  inspect that daemon through its PID file (`/tmp/adasa.pid`).
- A line-delimited JSON protocol (`adasa.protocol`). The package has a
  client for it (`adasa.client.IpcClient`) and a server for it
  (`adasa.server.IpcServer`).
- Loading and validation of process configuration files in TOML or
  JSON (`adasa.config`).
- Helpers for writing a daemon. They are `adasa.daemonize.daemonize()`,
  `adasa.pidfile.PidFile` and `adasa.daemon_manager.DaemonManager`.

## What is not included

This package has no daemon. It does not spawn or supervise processes.
It does not restart crashed processes, capture or store their logs, or
save state between runs. Every command except `adasa daemon ...` needs
a running daemon that listens on `/tmp/adasa.sock` and answers with the
protocol below. If no daemon is running, those commands fail with
`Daemon not running`.

`adasa daemon start` runs an executable named `adasa-daemon` with the
`--daemonize` flag. It looks for that executable in the same directory
as the running `adasa` command. This package does not provide that
executable. You need to supply your own, for example one built on
`IpcServer`, `daemonize()` and `DaemonManager.register_daemon()`.

## Installation

```
pip install .
```

`rich` is the only runtime dependency. It draws the coloured output,
the tables and the spinners.

## Command line

```
adasa start ./server.py --name web --instances 2 --env PORT=3000 -- --verbose
adasa start -f processes.toml
adasa list
adasa list --detailed
adasa logs 1 --lines 50
adasa stop 1
adasa stop 1 --force
adasa restart web
adasa restart web --rolling
adasa delete web
adasa reload processes.toml
adasa daemon start
adasa daemon status
adasa daemon stop
adasa --version
```

| Command | Options |
| --- | --- |
| `start [script] [-- args ...]` | `-f/--config FILE`, `-n/--name`, `-i/--instances` (default 1), `-c/--cwd`, `-e/--env KEY=VALUE` (repeatable) |
| `stop ID` | `-f/--force` |
| `restart ID_OR_NAME` | `-r/--rolling` |
| `list` | `-d/--detailed` |
| `logs ID` | `-l/--lines N`, `-f/--follow` |
| `delete ID_OR_NAME` | |
| `reload FILE` | |
| `daemon start\|stop\|status` | |

`start` needs either a script or `--config`. You cannot give both.
Everything after `--` goes to the script as its arguments. Environment
variables must have the form `KEY=VALUE`. Any other form is rejected.

`start` and `restart` show a spinner while the command waits for an
answer. The command exits with status 0 on success. It exits with
status 1 when the daemon returns an error or the request fails.

`daemon stop` sends SIGTERM to the PID in the PID file. It then waits up
to ten seconds for that process to exit. If the process is still running
after that, it sends SIGKILL. `daemon status` reports whether that PID
belongs to a live process.

## Configuration files

`ProcessConfig.from_file()` reads configuration files. The file
extension selects the parser, and it must be `.toml` or `.json`. A file
can describe one process:

```toml
name = "web"
script = "/usr/bin/node"
args = ["server.js"]
instances = 2
```

A file can also describe several processes:

```toml
[[processes]]
name = "api"
script = "$HOME/bin/api"

[[processes]]
name = "worker"
script = "/usr/bin/python"
args = ["worker.py"]
stop_signal = "SIGINT"
```

In JSON, use one object for a single process. For several processes,
use an object with a `"processes"` list.

`name` and `script` are required. The other fields and their defaults:

| Field | Default |
| --- | --- |
| `args` | `[]` |
| `cwd` | none; must be an existing directory |
| `env` | `{}` |
| `instances` | 1 (from 1 to 100) |
| `autorestart` | true |
| `max_restarts` | 10 (at least 1) |
| `restart_delay_secs` | 1 |
| `max_memory` | none |
| `max_cpu` | none (from 1 to 100) |
| `limit_action` | `log`; the other values are `restart` and `stop` |
| `stop_signal` | `SIGTERM` |
| `stop_timeout_secs` | 10 |

`stop_signal` must be one of `SIGTERM`, `SIGINT`, `SIGQUIT`, `SIGKILL`,
`SIGHUP`, `SIGUSR1` or `SIGUSR2`.

`from_file()` expands `$VAR` and `${VAR}` in `script`, `cwd`, `args`
and in the values of `env`, then validates each configuration.
Expansion only replaces variables that are set in the environment.
Anything else stays as written.

## Protocol

Each request and each response is one JSON object on one line.

```
{"id":1,"command":"List"}
{"id":1,"result":{"Ok":{"ProcessList":[...]}}}
{"id":2,"result":{"Err":"Process not found: 7"}}
```

`adasa.protocol` defines the commands:

- `StartOptions`
- `StartFromConfig`
- `StopOptions`
- `RestartOptions`
- `ListProcesses`
- `LogOptions`
- `DeleteOptions`
- `ReloadConfig`
- `DaemonCommand`

It also defines the response data:

- `Started`
- `Stopped`
- `Restarted`
- `ProcessList`
- `Logs`
- `Deleted`
- `DaemonStatusData`
- `Success`

`Request` and `Response` convert to and from the wire form with
`to_json()` and `from_json()`. Durations are given in seconds on the
Python side. On the wire they appear as `{"secs": ..., "nanos": ...}`.

## Library use

```python
from adasa.client import IpcClient
from adasa.config import ProcessConfig
from adasa.protocol import ListProcesses

configs = ProcessConfig.from_file("processes.toml")

with IpcClient("/tmp/adasa.sock") as client:
    response = client.send_command(ListProcesses())
    if response.ok:
        print(response.data)
    else:
        print(response.failure)
```

`IpcClient.send_command()` tries up to three times. It keeps the
connection open for the next command, and it raises `ProtocolError` if
the response id does not match the request id.

A server answers one request per connection:

```python
import asyncio

from adasa.protocol import Response, Success
from adasa.server import IpcServer


async def handler(command):
    return Response.success(0, Success(f"got {command!r}"))


with IpcServer("/tmp/demo.sock") as server:
    asyncio.run(server.run(handler))
```

The server binds the socket with mode `0600`, replacing a stale socket
file if there is one. It puts the request's id on every reply. An
exception raised by the handler becomes an error response.

Errors are raised as subclasses of `adasa.errors.AdasaError`. Two
examples are `DaemonNotRunning` and `ConfigValidationError`.