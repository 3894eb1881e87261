"""Request/response schemas for the AECCheck web API.

Usage:
    from aeccheck.web.models import SaveCheckRequest

    @router.post("/api/aec/{project_id}/parameter-checks")
    async def save(project_id: str, request: SaveCheckRequest):
        ...
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from aeccheck.models import (
    Check,
    DisciplineSummary,
    ElementRow,
    LastDiscipline,
)


class SaveCheckRequest(BaseModel):
    """Body of POST /api/aec/{project_id}/parameter-checks.

    When ``summary`` is omitted it is recomputed from the rows.
    """

    model_id: str
    model_name: str = ""
    discipline_id: str
    category_id: str = "ALL"
    rows: list[ElementRow] = Field(default_factory=list)
    summary: Optional[DisciplineSummary] = None

    class Config:
        protected_namespaces = ()


class LatestCheckResponse(BaseModel):
    found: bool
    check: Optional[Check] = None


class LastDisciplineResponse(BaseModel):
    found: bool
    last: Optional[LastDiscipline] = None


class CategoryInfo(BaseModel):
    id: str
    name: str
    query: str
    required_parameters: list[str] = Field(default_factory=list)


class DisciplineInfo(BaseModel):
    id: str
    name: str
    categories: list[CategoryInfo] = Field(default_factory=list)
