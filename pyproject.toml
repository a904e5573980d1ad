[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adasa"
version = "0.1.0"
description = "Command-line client, Unix-socket protocol and daemon-control tools for a small process manager"
requires-python = ">=3.11"
keywords = ["process-manager", "daemon", "pidfile", "ipc", "unix-socket", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "rich",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
adasa = "adasa.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["adasa"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
