# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Handle around one spawned report engine process."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

import psutil

from .types import SupervisorError

logger = logging.getLogger(__name__)

# Bytes read from the end of a log file when looking for its last line
LOG_TAIL_BYTES = 8192


class EngineSpawnError(SupervisorError):
    """Raised when the OS refuses to launch the engine."""

    def __init__(self, executable: str | None, port: int | None, message: str | None = None):
        self.executable = executable
        self.port = port
        self.message = message or f"Failed to start engine {executable!r} on port {port}"
        super().__init__(self.message)


def build_engine_command(
    executable: str,
    port: int,
    log_path: str,
    language: str,
    timeout: int,
) -> list[str]:
    return [
        executable,
        "-http",
        str(port),
        "-logfile",
        log_path,
        "-l",
        language,
        "-timeout",
        str(timeout),
    ]


def read_last_line(path: str | os.PathLike[str]) -> str:
    """Return the last non-blank line of ``path``, or ``""`` if there is none."""
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            f.seek(max(size - LOG_TAIL_BYTES, 0))
            tail = f.read()
    except OSError:
        return ""

    for line in reversed(tail.decode("utf-8", errors="replace").splitlines()):
        if line.strip():
            return line.strip()
    return ""


class ProcessHandle:
    """A detached engine subprocess bound to one language and port."""

    def __init__(
        self,
        process: subprocess.Popen,
        *,
        language: str,
        port: int,
        log_path: str,
        stop_timeout: float = 10.0,
    ) -> None:
        self._process = process
        self.language = language
        self.port = port
        self.log_path = log_path
        self.stop_timeout = stop_timeout

    @classmethod
    def spawn(
        cls,
        executable: str,
        port: int,
        log_path: str,
        language: str,
        timeout: int,
        *,
        stop_timeout: float = 10.0,
    ) -> ProcessHandle:
        """Launch the engine and return without waiting for it to listen.

        Raises:
            EngineSpawnError: If the process could not be started.
        """
        command = build_engine_command(executable, port, log_path, language, timeout)
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info("Spawning engine (language=%s, port=%d, log=%s)", language, port, log_path)
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                start_new_session=True,
            )
        except OSError as exc:
            logger.exception("Failed to spawn engine for language %s", language)
            raise EngineSpawnError(executable, port, f"Failed to start engine: {exc}") from exc

        logger.debug("Engine for %s started with PID %d", language, process.pid)
        return cls(
            process,
            language=language,
            port=port,
            log_path=log_path,
            stop_timeout=stop_timeout,
        )

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def exit_code(self) -> int | None:
        return self._process.poll()

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def kill(self) -> None:
        """Terminate the process, force killing it if it does not exit in time.

        Killing a process that already exited is a no-op.
        """
        if not self.is_alive():
            return

        try:
            process = psutil.Process(self.pid)
            process.terminate()
            process.wait(timeout=self.stop_timeout)
            logger.info("Engine PID %d stopped", self.pid)
        except psutil.TimeoutExpired:
            logger.warning(
                "Engine PID %d did not stop in %.1fs; force killing",
                self.pid,
                self.stop_timeout,
            )
            try:
                process.kill()
                process.wait(timeout=5)
            except psutil.NoSuchProcess:
                pass
            except psutil.Error as exc:
                logger.error("Failed to kill engine PID %d: %s", self.pid, exc)
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as exc:
            logger.error("Error while stopping engine PID %d: %s", self.pid, exc)

        # Reap the child so it does not linger as a zombie
        try:
            self._process.wait(timeout=1)
        except subprocess.TimeoutExpired:
            logger.debug("Engine PID %d not reaped yet", self.pid)

    def last_log_line(self) -> str:
        return read_last_line(self.log_path)

    def __repr__(self) -> str:
        return f"ProcessHandle(language={self.language!r}, port={self.port}, pid={self.pid})"


__all__ = [
    "EngineSpawnError",
    "ProcessHandle",
    "build_engine_command",
    "read_last_line",
]
