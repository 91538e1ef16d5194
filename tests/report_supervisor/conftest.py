# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""pytest configuration for report_supervisor tests."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterable
from pathlib import Path

import pytest
from aioresponses import aioresponses

# Configure logging
logging.basicConfig(level=logging.INFO)

# Set up path for report_supervisor imports
root = Path(__file__).parent.parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from report_supervisor import (  # noqa: E402
    NoPortAvailableError,
    ProcessSupervisor,
    SupervisorConfig,
)


class FakeHandle:
    """Stand-in for ProcessHandle that records kills instead of signalling."""

    def __init__(self, executable, port, log_path, language, timeout, ports, **kwargs):
        self.executable = executable
        self.port = port
        self.log_path = log_path
        self.language = language
        self.timeout = timeout
        self.pid = 10000 + port
        self.kill_count = 0
        self.log_line = ""
        self._alive = True
        self._ports = ports

    def is_alive(self) -> bool:
        return self._alive

    def kill(self) -> None:
        self.kill_count += 1
        self._alive = False
        self._ports.release(self.port)

    def last_log_line(self) -> str:
        return self.log_line

    def exit(self) -> None:
        """Simulate the engine exiting on its own."""
        self._alive = False
        self._ports.release(self.port)


class FakePorts:
    """Port allocator and liveness check over an in-memory set of bound ports."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.bound: set[int] = set()

    def bind(self, port: int) -> None:
        with self._lock:
            self.bound.add(port)

    def release(self, port: int) -> None:
        with self._lock:
            self.bound.discard(port)

    def is_port_free(self, port: int) -> bool:
        with self._lock:
            return port not in self.bound

    def next_free_port(self, low: int, high: int, exclude: Iterable[int] = ()) -> int:
        skipped = set(exclude)
        for port in range(low, high):
            if port not in skipped and self.is_port_free(port):
                return port
        raise NoPortAvailableError(low, high)


class FakeSpawner:
    """Spawner that binds the port immediately and records every call."""

    def __init__(self, ports: FakePorts) -> None:
        self.ports = ports
        self.calls: list[FakeHandle] = []
        self._lock = threading.Lock()

    def __call__(self, executable, port, log_path, language, timeout, **kwargs) -> FakeHandle:
        handle = FakeHandle(executable, port, log_path, language, timeout, self.ports, **kwargs)
        self.ports.bind(port)
        with self._lock:
            self.calls.append(handle)
        return handle


@pytest.fixture
def mock_aiohttp():
    """Fixture providing mocked aiohttp responses for the engine API."""
    with aioresponses() as m:
        yield m


@pytest.fixture
def supervisor_config(tmp_path) -> SupervisorConfig:
    return SupervisorConfig(
        engine_executable="/opt/engine/bin/reqtify",
        log_dir=str(tmp_path),
        port_range_low=4000,
        port_range_high=8000,
    )


@pytest.fixture
def fake_ports() -> FakePorts:
    return FakePorts()


@pytest.fixture
def fake_spawner(fake_ports) -> FakeSpawner:
    return FakeSpawner(fake_ports)


@pytest.fixture
def supervisor(supervisor_config, fake_ports, fake_spawner) -> ProcessSupervisor:
    return ProcessSupervisor(
        supervisor_config,
        port_allocator=fake_ports,
        spawner=fake_spawner,
    )
