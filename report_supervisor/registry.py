# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Language-keyed registry of running engine instances."""

from __future__ import annotations

import threading

from .types import EngineInstance


class EngineRegistry:
    """Map each language tag to at most one EngineInstance.

    Every operation is atomic with respect to the others. Compound
    check-then-act sequences are the supervisor's job.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._instances: dict[str, EngineInstance] = {}

    def get(self, language: str) -> EngineInstance | None:
        with self._lock:
            return self._instances.get(language)

    def put(self, language: str, instance: EngineInstance) -> None:
        with self._lock:
            self._instances[language] = instance

    def remove(self, language: str) -> EngineInstance | None:
        with self._lock:
            return self._instances.pop(language, None)

    def clear(self) -> list[EngineInstance]:
        with self._lock:
            removed = list(self._instances.values())
            self._instances.clear()
            return removed

    def ports(self) -> set[int]:
        """Return the ports currently held by registered instances."""
        with self._lock:
            return {instance.port for instance in self._instances.values()}

    def snapshot(self) -> dict[str, EngineInstance]:
        with self._lock:
            return dict(self._instances)

    def __contains__(self, language: object) -> bool:
        with self._lock:
            return language in self._instances

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)


__all__ = ["EngineRegistry"]
