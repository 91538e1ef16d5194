# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""HTTP client for querying supervised report engines.

Each query is classified into one of three outcomes:

- ``QuerySuccess``: the engine returned a JSON array.
- ``EngineErrorOutcome``: the engine returned ``{"message": ...}``.
- ``TransportFailure``: the engine could not be reached, or its answer
  could not be parsed.

Transport failures are treated as "no data yet". Engine errors are shown to
the user, and an engine error with an empty message is treated as a crash:
the supervisor kills the engine and the last line of its log is shown instead.

Example:
    >>> client = EngineQueryClient(supervisor)
    >>> result = await client.fetch("eng", "getReportModels", "/work/job")
    >>> result.payload, result.error
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from .config import SupervisorConfig
from .supervisor import ProcessSupervisor
from .types import (
    EngineErrorOutcome,
    QueryOutcome,
    QueryResult,
    QuerySuccess,
    TransportErrorKind,
    TransportFailure,
)

logger = logging.getLogger(__name__)

GET_REPORT_MODELS = "getReportModels"
GET_REPORT_TEMPLATES = "getReportTemplates"


def parse_engine_response(body: str | bytes) -> QueryOutcome:
    """Decode an engine response body into a QueryOutcome.

    Bytes that are not valid UTF-8 are a parse failure like any invalid JSON.
    """
    try:
        data: Any = json.loads(body)
    except ValueError as exc:
        return TransportFailure(TransportErrorKind.PARSE_FAILURE, f"invalid JSON: {exc}")

    if isinstance(data, list):
        return QuerySuccess(data)
    if isinstance(data, dict) and "message" in data:
        message = data["message"]
        return EngineErrorOutcome("" if message is None else str(message))
    return TransportFailure(
        TransportErrorKind.PARSE_FAILURE,
        f"unexpected JSON {type(data).__name__}",
    )


def build_query_url(host: str, port: int, namespace: str, operation: str, directory: str) -> str:
    """Build an engine query URL; the directory is percent-encoded."""
    return f"http://{host}:{port}/{namespace}/{operation}?dir={quote(directory, safe='/')}"


class EngineQueryClient:
    """Issue queries to engines obtained from a ProcessSupervisor."""

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        config: SupervisorConfig | None = None,
    ) -> None:
        self.supervisor = supervisor
        self.config = config or supervisor.config
        self.http_session: aiohttp.ClientSession | None = None
        self.timeout = aiohttp.ClientTimeout(total=self.config.http_timeout)

    async def initialize(self) -> None:
        if not self.http_session:
            self.http_session = aiohttp.ClientSession(timeout=self.timeout)
            logger.debug("HTTP session initialized for engine queries")

    async def cleanup(self) -> None:
        if self.http_session:
            await self.http_session.close()
            self.http_session = None
            logger.debug("HTTP session closed")

    async def __aenter__(self) -> EngineQueryClient:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cleanup()

    async def query(self, url: str) -> QueryOutcome:
        """GET ``url`` and classify the answer."""
        if not self.http_session:
            await self.initialize()
        if not self.http_session:
            raise RuntimeError("HTTP session not initialized")

        try:
            async with self.http_session.get(url) as response:
                body = await response.read()
        except aiohttp.ClientPayloadError as exc:
            return TransportFailure(TransportErrorKind.PARSE_FAILURE, f"incomplete body: {exc}")
        except aiohttp.ClientError as exc:
            return TransportFailure(TransportErrorKind.UNREACHABLE, str(exc))
        except asyncio.TimeoutError:
            return TransportFailure(
                TransportErrorKind.UNREACHABLE,
                f"timed out after {self.timeout.total}s",
            )

        logger.debug("GET %s -> %d (%d bytes)", url, response.status, len(body))
        return parse_engine_response(body)

    async def fetch(self, language: str, operation: str, directory: str) -> QueryResult:
        """Query the engine for ``language`` and apply failure recovery.

        Raises:
            NoPortAvailableError: If no engine could be given a port.
            EngineSpawnError: If no engine could be started.
        """
        # Spawning and killing block, so they run off the event loop
        instance = await asyncio.to_thread(self.supervisor.acquire, language)
        url = build_query_url(
            self.config.host,
            instance.port,
            self.config.namespace,
            operation,
            directory,
        )
        outcome = await self.query(url)

        if isinstance(outcome, QuerySuccess):
            return QueryResult(payload=outcome.payload)

        if isinstance(outcome, TransportFailure):
            if outcome.kind is TransportErrorKind.PARSE_FAILURE:
                logger.error("Unparseable answer from %s: %s", url, outcome.detail)
            else:
                logger.info("Engine for %s not reachable yet: %s", language, outcome.detail)
            return QueryResult()

        if outcome.message:
            logger.warning("Engine for %s reported: %s", language, outcome.message)
            error = self.supervisor.report_failure(language, False, outcome.message)
        else:
            error = await asyncio.to_thread(self.supervisor.report_failure, language, True)
        return QueryResult(error=error)


__all__ = [
    "EngineQueryClient",
    "GET_REPORT_MODELS",
    "GET_REPORT_TEMPLATES",
    "build_query_url",
    "parse_engine_response",
]
