"""Client, Unix-socket protocol, configuration loading and daemon-control tools for a process manager."""

__version__ = "0.1.0"