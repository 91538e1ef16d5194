# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Get-or-start-or-restart supervision of per-language engine processes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .config import SupervisorConfig, find_engine_executable
from .ports import PortAllocator, PortChecker
from .process import EngineSpawnError, ProcessHandle
from .registry import EngineRegistry
from .types import EngineInstance, EngineStatus

logger = logging.getLogger(__name__)

# Signature of ProcessHandle.spawn, injectable for tests
Spawner = Callable[..., ProcessHandle]


class ProcessSupervisor:
    """Start, reuse, restart and kill engine processes, one per language.

    Every lifecycle decision runs under a single lock, so concurrent callers
    asking for the same language never spawn two engines. Liveness is judged
    by whether the recorded port is still bound; a port that was reclaimed by
    an unrelated process is mistaken for a live engine.
    """

    def __init__(
        self,
        config: SupervisorConfig | None = None,
        *,
        registry: EngineRegistry | None = None,
        port_allocator: PortAllocator | None = None,
        port_checker: PortChecker | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: Supervisor settings. Defaults to SupervisorConfig.default().
            registry: Registry to own. A fresh one is created if None.
            port_allocator: Source of free ports.
            port_checker: Liveness check for registered ports. Defaults to the
                port allocator's own bind check.
            spawner: Callable with the signature of ProcessHandle.spawn.
        """
        self.config = config or SupervisorConfig.default()
        self.registry = registry or EngineRegistry()
        self.port_allocator = port_allocator or PortAllocator()
        self.port_checker: PortChecker = port_checker or self.port_allocator
        self._spawner = spawner or ProcessHandle.spawn
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def acquire(self, language: str) -> EngineInstance:
        """Return a live engine for ``language``, starting one if needed.

        Raises:
            NoPortAvailableError: If no port is free in the configured range.
            EngineSpawnError: If the engine could not be launched.
        """
        with self._lock:
            instance = self.registry.get(language)
            if instance is not None:
                if not self.port_checker.is_port_free(instance.port):
                    return instance

                logger.warning(
                    "Engine for %s no longer listens on port %d; restarting",
                    language,
                    instance.port,
                )
                self.registry.remove(language)
                instance.handle.kill()

            return self._start(language)

    def report_failure(
        self,
        language: str,
        diagnosed_as_crash: bool,
        message: str = "",
    ) -> str:
        """Apply the corrective action for a failed query and return the error to show.

        A diagnosed crash kills and unregisters the engine and yields the last
        line of its log. Otherwise the engine's own message is returned as is.
        """
        if not diagnosed_as_crash:
            return message

        with self._lock:
            instance = self.registry.remove(language)
            if instance is None:
                logger.warning("Crash reported for %s but no engine is registered", language)
                return ""

            logger.warning(
                "Killing engine for %s on port %d after diagnosed crash",
                language,
                instance.port,
            )
            instance.handle.kill()
            return instance.handle.last_log_line()

    def get(self, language: str) -> EngineInstance | None:
        return self.registry.get(language)

    def status(self, language: str) -> EngineStatus:
        instance = self.registry.get(language)
        if instance is None:
            return EngineStatus.ABSENT
        return self._port_status(instance)

    def list_engines(self) -> list[dict[str, Any]]:
        """Return status objects for all registered engines."""
        return [
            instance.to_dict(self._port_status(instance))
            for instance in self.registry.snapshot().values()
        ]

    def shutdown(self) -> int:
        """Kill every registered engine and empty the registry.

        Returns:
            Number of engines stopped.
        """
        with self._lock:
            instances = self.registry.clear()
            for instance in instances:
                instance.handle.kill()
        if instances:
            logger.info("Stopped %d engine(s)", len(instances))
        return len(instances)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _port_status(self, instance: EngineInstance) -> EngineStatus:
        if self.port_checker.is_port_free(instance.port):
            return EngineStatus.STALE
        return EngineStatus.RUNNING

    def _start(self, language: str) -> EngineInstance:
        executable = find_engine_executable(self.config)
        if not executable:
            raise EngineSpawnError(
                None,
                None,
                f"Engine executable {self.config.engine_name!r} not found",
            )

        port = self.port_allocator.next_free_port(
            self.config.port_range_low,
            self.config.port_range_high,
            exclude=self.registry.ports(),
        )
        log_path = self.config.log_path_for(port)
        handle = self._spawner(
            executable,
            port,
            log_path,
            language,
            self.config.engine_timeout,
            stop_timeout=self.config.stop_timeout,
        )

        instance = EngineInstance(language=language, port=port, handle=handle, log_path=log_path)
        self.registry.put(language, instance)
        logger.info("Engine for %s registered on port %d", language, port)
        return instance


__all__ = ["ProcessSupervisor", "Spawner"]
