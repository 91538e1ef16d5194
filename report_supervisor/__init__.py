# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""
Report engine supervisor - local process management for report engines.

The supervisor keeps at most one external report engine process per
language, providing:
- Lazy start of an engine on a free local port
- Restart of engines whose port was released
- Kill and unregister of engines diagnosed as crashed
- JSON-over-HTTP queries for report models and templates
"""

from .catalog import MISSING_WORKSPACE, ReportCatalog, resolve_workspace
from .config import ENGINE_PATH_ENV, SupervisorConfig, find_engine_executable
from .ports import NoPortAvailableError, PortAllocator, PortChecker
from .process import EngineSpawnError, ProcessHandle
from .query_client import (
    GET_REPORT_MODELS,
    GET_REPORT_TEMPLATES,
    EngineQueryClient,
    build_query_url,
    parse_engine_response,
)
from .registry import EngineRegistry
from .supervisor import ProcessSupervisor
from .types import (
    CatalogListing,
    EngineErrorOutcome,
    EngineInstance,
    EngineStatus,
    QueryOutcome,
    QueryResult,
    QuerySuccess,
    ReportModel,
    SupervisorError,
    TransportErrorKind,
    TransportFailure,
)

__all__ = [
    # Types
    "EngineInstance",
    "EngineStatus",
    "QueryOutcome",
    "QuerySuccess",
    "EngineErrorOutcome",
    "TransportFailure",
    "TransportErrorKind",
    "QueryResult",
    "ReportModel",
    "CatalogListing",
    # Errors
    "SupervisorError",
    "NoPortAvailableError",
    "EngineSpawnError",
    # Configuration
    "ENGINE_PATH_ENV",
    "SupervisorConfig",
    "find_engine_executable",
    # Processes and ports
    "PortAllocator",
    "PortChecker",
    "ProcessHandle",
    "EngineRegistry",
    "ProcessSupervisor",
    # Queries
    "EngineQueryClient",
    "GET_REPORT_MODELS",
    "GET_REPORT_TEMPLATES",
    "build_query_url",
    "parse_engine_response",
    # Host-facing catalog
    "MISSING_WORKSPACE",
    "ReportCatalog",
    "resolve_workspace",
]
