"""Pytest configuration and fixtures for AECCheck tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from typing import Any

import pytest

from aeccheck import catalog as catalog_module
from aeccheck.catalog import parse_catalog
from aeccheck.config import reset_config
from aeccheck.models import Compliance, ElementRow


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("AEC_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("DISCIPLINE_CATALOG", raising=False)
    monkeypatch.setattr(catalog_module, "_catalog", None)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_project_id() -> str:
    return "b.project-123"


@pytest.fixture
def test_model_id() -> str:
    return "model-abc"


def _make_element(
    element_id: str,
    revit_id: str = "",
    **properties: Any,
) -> dict[str, Any]:
    """Raw platform element as returned by elementsByElementGroup."""
    return {
        "id": element_id,
        "name": properties.pop("name", f"Element {element_id}"),
        "alternativeIdentifiers": {"revitElementId": revit_id, "externalElementId": ""},
        "properties": {
            "results": [
                {"name": name.replace("_", " "), "value": value}
                for name, value in properties.items()
            ]
        },
    }


def _make_row(pct: int, element_id: str = "el-1", category: str = "Walls", **fields: Any) -> ElementRow:
    """ElementRow with a given compliance pct over a 4-parameter set."""
    filled = {0: 0, 25: 1, 50: 2, 75: 3, 100: 4}[pct]
    return ElementRow(
        element_id=element_id,
        category=category,
        compliance=Compliance(filled=filled, total=4, pct=pct),
        **fields,
    )


@pytest.fixture
def make_element():
    return _make_element


@pytest.fixture
def make_row():
    return _make_row


@pytest.fixture
def sample_catalog():
    return parse_catalog(
        {
            "version": 1,
            "defaults": {"required_parameters": ["Manufacturer", "Model"]},
            "aliases": {"Curtain Panels": ["CurtainPanel"]},
            "disciplines": [
                {
                    "id": "ARC",
                    "name": "Architecture",
                    "categories": [
                        {"id": "arc_walls", "name": "Walls", "query": "Walls"},
                        {"id": "arc_windows", "name": "Windows", "query": "Windows"},
                    ],
                },
                {
                    "id": "STR",
                    "name": "Structural",
                    "categories": [
                        {
                            "id": "str_columns",
                            "name": "Structural Columns",
                            "query": "Structural Columns",
                            "required_parameters": ["Type Mark"],
                        }
                    ],
                },
            ],
        }
    )

