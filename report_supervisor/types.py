# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Shared types for the report engine supervisor.

Query outcomes form a closed set of three variants. Callers branch on the
variant type instead of poking at raw JSON.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

if TYPE_CHECKING:
    from .process import ProcessHandle

T = TypeVar("T")


class SupervisorError(Exception):
    """Base exception for supervisor errors."""

    pass


class EngineStatus(str, Enum):
    """Lifecycle states of an engine instance for one language."""

    ABSENT = "ABSENT"
    RUNNING = "RUNNING"
    STALE = "STALE"


class TransportErrorKind(str, Enum):
    """Why a query never produced an engine answer."""

    UNREACHABLE = "unreachable"
    PARSE_FAILURE = "parse_failure"


@dataclass(frozen=True)
class EngineInstance:
    """One registered engine process.

    Instances are replaced wholesale on restart, never mutated.
    """

    language: str
    port: int
    handle: ProcessHandle
    log_path: str
    created_at: float = field(default_factory=time.time)

    def to_dict(self, status: EngineStatus) -> dict[str, Any]:
        return {
            "language": self.language,
            "port": self.port,
            "pid": self.handle.pid,
            "status": status.value,
            "log_path": self.log_path,
            "uptime_seconds": max(time.time() - self.created_at, 0.0),
        }


@dataclass(frozen=True)
class QuerySuccess:
    """The engine answered with a JSON array."""

    payload: list[Any]


@dataclass(frozen=True)
class EngineErrorOutcome:
    """The engine answered with an error object.

    An empty message means the engine is in a bad state.
    """

    message: str


@dataclass(frozen=True)
class TransportFailure:
    """The query failed before a usable engine answer was received."""

    kind: TransportErrorKind
    detail: str = ""


QueryOutcome = Union[QuerySuccess, EngineErrorOutcome, TransportFailure]


@dataclass(frozen=True)
class QueryResult:
    """Payload and user-facing error of one supervised query."""

    payload: list[Any] = field(default_factory=list)
    error: str = ""


@dataclass(frozen=True)
class ReportModel:
    """A report model offered by the engine."""

    id: str
    label: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportModel:
        label = str(data["label"])
        return cls(id=str(data.get("id", label)), label=label)


@dataclass
class CatalogListing(Generic[T]):
    """Items returned to the host, plus the error to display (if any)."""

    items: list[T] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


__all__ = [
    "CatalogListing",
    "EngineErrorOutcome",
    "EngineInstance",
    "EngineStatus",
    "QueryOutcome",
    "QueryResult",
    "QuerySuccess",
    "ReportModel",
    "SupervisorError",
    "TransportErrorKind",
    "TransportFailure",
]
