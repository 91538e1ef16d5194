# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: Copyright contributors to the SAGE project

"""Tests for registry and shared types."""

import dataclasses
from unittest.mock import MagicMock

import pytest

from report_supervisor import (
    CatalogListing,
    EngineInstance,
    EngineRegistry,
    EngineStatus,
    ReportModel,
)


def make_instance(language: str = "eng", port: int = 4000) -> EngineInstance:
    handle = MagicMock(pid=1234)
    handle.is_alive.return_value = True
    return EngineInstance(
        language=language,
        port=port,
        handle=handle,
        log_path=f"/tmp/engineLog_{port}.log",
    )


class TestEngineRegistry:
    """Tests for EngineRegistry."""

    def test_empty(self):
        registry = EngineRegistry()
        assert registry.get("eng") is None
        assert len(registry) == 0
        assert "eng" not in registry

    def test_put_get_remove(self):
        registry = EngineRegistry()
        instance = make_instance()

        registry.put("eng", instance)
        assert registry.get("eng") is instance
        assert "eng" in registry

        assert registry.remove("eng") is instance
        assert registry.get("eng") is None
        assert registry.remove("eng") is None

    def test_put_replaces(self):
        registry = EngineRegistry()
        registry.put("eng", make_instance(port=4000))
        replacement = make_instance(port=4001)

        registry.put("eng", replacement)

        assert registry.get("eng") is replacement
        assert len(registry) == 1

    def test_ports_and_snapshot(self):
        registry = EngineRegistry()
        registry.put("eng", make_instance("eng", 4000))
        registry.put("fra", make_instance("fra", 4001))

        assert registry.ports() == {4000, 4001}
        snapshot = registry.snapshot()
        snapshot.pop("eng")
        assert "eng" in registry

    def test_clear(self):
        registry = EngineRegistry()
        registry.put("eng", make_instance("eng", 4000))
        registry.put("fra", make_instance("fra", 4001))

        removed = registry.clear()

        assert {i.language for i in removed} == {"eng", "fra"}
        assert len(registry) == 0


class TestEngineInstance:
    def test_is_immutable(self):
        instance = make_instance()
        with pytest.raises(dataclasses.FrozenInstanceError):
            instance.port = 5000  # type: ignore[misc]

    def test_to_dict(self):
        data = make_instance().to_dict(EngineStatus.RUNNING)
        assert data["language"] == "eng"
        assert data["port"] == 4000
        assert data["pid"] == 1234
        assert data["status"] == "RUNNING"

    def test_to_dict_reports_given_status(self):
        """Test that the status comes from the caller, not from the process."""
        data = make_instance().to_dict(EngineStatus.STALE)
        assert data["status"] == "STALE"


class TestReportModel:
    def test_label_only(self):
        assert ReportModel.from_dict({"label": "Coverage"}) == ReportModel("Coverage", "Coverage")

    def test_with_id(self):
        model = ReportModel.from_dict({"id": 7, "label": "Traceability"})
        assert model.id == "7"
        assert model.label == "Traceability"


class TestCatalogListing:
    def test_ok(self):
        assert CatalogListing(items=["a"]).ok
        assert not CatalogListing(error="boom").ok
