"""Child process plumbing for command-line agent backends.

Hides process launch details: working directory, PATH augmentation, stderr
capture and the timeout watchdog. Standard error goes to a temporary file so
a chatty child can never fill a pipe nobody is reading.
"""

import logging
import os
import subprocess
import tempfile
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)

# Applications launched from a desktop session often get a minimal PATH,
# which breaks `#!/usr/bin/env node` shebangs of npm-installed CLIs.
EXTRA_PATH_DIRS = (
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "~/.nvm/current/bin",
    "~/.local/bin",
)


def cli_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy an environment, appending common Node.js locations to PATH."""
    env = dict(os.environ if base is None else base)
    current = env.get("PATH", "")
    entries = current.split(os.pathsep) if current else []
    for extra in EXTRA_PATH_DIRS:
        directory = os.path.expanduser(extra)
        if directory not in entries:
            entries.append(directory)
    env["PATH"] = os.pathsep.join(entries)
    return env


def launch(command: Sequence[str], stderr: IO[bytes] | int | None = None) -> subprocess.Popen:
    """Start a CLI agent with piped text stdin/stdout.

    Args:
        command: Program and arguments; never passed through a shell
        stderr: Destination for standard error (default: discarded)

    Returns:
        The running process
    """
    return subprocess.Popen(
        list(command),
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL if stderr is None else stderr,
        cwd=Path.home(),
        env=cli_environment(),
        text=True,
        encoding="utf-8",
        errors="replace",
    )


def run_quick(command: Sequence[str], timeout: float) -> subprocess.CompletedProcess:
    """Run a short-lived command, capturing combined output as text.

    Raises:
        subprocess.TimeoutExpired: If the command outlives ``timeout``; the
            child has been killed by then
        OSError: If the command cannot be started
    """
    return subprocess.run(
        list(command),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        cwd=Path.home(),
        env=cli_environment(),
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout,
    )


def open_stderr_capture() -> IO[bytes]:
    """Temporary file receiving a child's standard error."""
    return tempfile.TemporaryFile()


def read_capture(capture: IO[bytes]) -> str:
    """Read back everything written to a stderr capture file."""
    capture.flush()
    capture.seek(0)
    return capture.read().decode("utf-8", errors="replace").strip()


def kill(process: subprocess.Popen) -> None:
    """Forcibly terminate a process if it is still running."""
    if process.poll() is None:
        try:
            process.kill()
        except OSError:
            logger.debug("Process %s already gone", process.pid)


class ProcessWatchdog:
    """Kills a process that outlives its deadline.

    Usage:
        with ProcessWatchdog(process, timeout=120) as watchdog:
            for line in process.stdout:
                ...
        if watchdog.fired:
            ...  # report a timeout
    """

    def __init__(self, process: subprocess.Popen, timeout: float) -> None:
        self._process = process
        self._timeout = timeout
        self._fired = threading.Event()
        self._timer = threading.Timer(timeout, self._expire)
        self._timer.daemon = True

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    @property
    def timeout(self) -> float:
        return self._timeout

    def _expire(self) -> None:
        if self._process.poll() is None:
            self._fired.set()
            logger.warning("Process %s exceeded %ss, killing it", self._process.pid, self._timeout)
            kill(self._process)

    def __enter__(self) -> "ProcessWatchdog":
        self._timer.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._timer.cancel()
