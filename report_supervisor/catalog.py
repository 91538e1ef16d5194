# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Report model and template listings for a build host."""

from __future__ import annotations

import logging
import os
from typing import Any

from .query_client import GET_REPORT_MODELS, GET_REPORT_TEMPLATES, EngineQueryClient
from .types import CatalogListing, ReportModel, SupervisorError

logger = logging.getLogger(__name__)

# Directory value sent when the host has no usable workspace
MISSING_WORKSPACE = "null"


def resolve_workspace(workspace: str | os.PathLike[str] | None) -> str:
    if workspace is None or not os.path.exists(workspace):
        return MISSING_WORKSPACE
    return os.fspath(workspace)


class ReportCatalog:
    """Answer the host's two listing questions for a workspace and language.

    ``last_error`` holds the user-facing error of the most recent call, or an
    empty string when that call produced none.
    """

    def __init__(self, client: EngineQueryClient) -> None:
        self.client = client
        self.last_error = ""

    async def list_report_models(
        self,
        workspace: str | os.PathLike[str] | None,
        language: str | None = None,
    ) -> CatalogListing[ReportModel]:
        listing = await self._list(GET_REPORT_MODELS, workspace, language)
        models = [self._decode_model(item) for item in listing.items]
        return CatalogListing(
            items=[model for model in models if model is not None],
            error=listing.error,
        )

    async def list_report_templates(
        self,
        workspace: str | os.PathLike[str] | None,
        language: str | None = None,
    ) -> CatalogListing[str]:
        listing = await self._list(GET_REPORT_TEMPLATES, workspace, language)
        templates = [item for item in listing.items if self._is_template(item)]
        return CatalogListing(items=templates, error=listing.error)

    async def _list(
        self,
        operation: str,
        workspace: str | os.PathLike[str] | None,
        language: str | None,
    ) -> CatalogListing[Any]:
        self.last_error = ""
        language = language or self.client.config.default_language
        directory = resolve_workspace(workspace)

        try:
            result = await self.client.fetch(language, operation, directory)
        except SupervisorError as exc:
            logger.error("Could not start engine for %s: %s", language, exc)
            self.last_error = str(exc)
            return CatalogListing(error=self.last_error)

        self.last_error = result.error
        return CatalogListing(items=list(result.payload), error=result.error)

    @staticmethod
    def _decode_model(item: Any) -> ReportModel | None:
        if not isinstance(item, dict) or "label" not in item:
            logger.warning("Ignoring report model without a label: %r", item)
            return None
        return ReportModel.from_dict(item)

    @staticmethod
    def _is_template(item: Any) -> bool:
        if not isinstance(item, str):
            logger.warning("Ignoring non-string report template: %r", item)
            return False
        return True


__all__ = ["MISSING_WORKSPACE", "ReportCatalog", "resolve_workspace"]
