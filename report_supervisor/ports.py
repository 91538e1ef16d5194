# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Local TCP port allocation for engine processes."""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Iterable
from typing import Protocol

from .types import SupervisorError

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"


class NoPortAvailableError(SupervisorError):
    """Raised when every port in the requested range is taken."""

    def __init__(self, low: int, high: int):
        self.low = low
        self.high = high
        super().__init__(f"No free port available in range [{low}, {high})")


class PortChecker(Protocol):
    """Liveness seam: tells whether anything still holds a port."""

    def is_port_free(self, port: int) -> bool: ...


class PortAllocator:
    """Find free loopback ports.

    Holds no state; every call is an independent OS-level bind check.
    """

    def __init__(self, host: str = LOOPBACK_HOST) -> None:
        self.host = host

    def is_port_free(self, port: int) -> bool:
        """Return True if nothing listens on ``port`` on the loopback interface.

        Connections lingering in TIME_WAIT do not count as listening.
        """
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            # On Windows SO_REUSEADDR would let the bind steal a listening port
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.bind((self.host, port))
            except OSError:
                return False
        return True

    def next_free_port(self, low: int, high: int, exclude: Iterable[int] = ()) -> int:
        """Return the first free port in ``[low, high)`` that is not excluded.

        Raises:
            NoPortAvailableError: If the whole range is exhausted.
        """
        skipped = set(exclude)
        for port in range(low, high):
            if port in skipped:
                continue
            if self.is_port_free(port):
                logger.debug("Selected free port %d", port)
                return port
        raise NoPortAvailableError(low, high)


__all__ = [
    "LOOPBACK_HOST",
    "NoPortAvailableError",
    "PortAllocator",
    "PortChecker",
]
