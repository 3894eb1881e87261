"""AECCheck Pydantic models for type-safe data validation.

Element rows, summaries and checks are frozen: a saved check is a complete
snapshot, never a diff of an earlier one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisStatus(str, Enum):
    """Lifecycle of a discipline analysis run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PropertyDefinition(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    specification: str = ""


class RawProperty(BaseModel):
    """One name/value pair exposed by the platform for an element."""

    name: str
    value: Any = None
    definition: PropertyDefinition | None = None

    class Config:
        frozen = True


class Compliance(BaseModel):
    """Fill ratio of an element's required parameters."""

    filled: int
    total: int
    pct: int

    @field_validator("pct")
    @classmethod
    def validate_pct(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("pct must be between 0 and 100")
        return v

    @model_validator(mode="after")
    def validate_counts(self) -> Compliance:
        if self.total < 1:
            raise ValueError("total must be at least 1")
        if not 0 <= self.filled <= self.total:
            raise ValueError("filled must be between 0 and total")
        return self

    class Config:
        frozen = True


class ElementRow(BaseModel):
    """One analyzed building element.

    ``element_id`` is the platform identity, ``revit_element_id`` and
    ``external_element_id`` the authoring identities. ``viewer_db_id`` only
    means something inside one viewer session.
    """

    element_id: str = ""
    external_element_id: str = ""
    revit_element_id: str = ""
    viewer_db_id: int | None = None
    db_id: int | None = None

    # Classification
    category: str = ""
    family_name: str = ""
    element_name: str = ""
    type_mark: str = ""
    description: str = ""
    model: str = ""
    manufacturer: str = ""
    assembly_code: str = ""
    assembly_description: str = ""

    count: int = 1
    raw_properties: list[RawProperty] = Field(default_factory=list)
    compliance: Compliance

    # Stamped by the discipline orchestrator
    analysis_category_id: str = ""
    analysis_category_name: str = ""
    analysis_category_query: str = ""

    @field_validator("count")
    @classmethod
    def validate_count(cls, v: int) -> int:
        return max(1, v)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "element_id": "YWVjZX5lbGVtZW50fjEyMzQ1",
                "revit_element_id": "312456",
                "category": "Walls",
                "family_name": "Basic Wall",
                "type_mark": "W-01",
                "manufacturer": "",
                "compliance": {"filled": 8, "total": 10, "pct": 80},
            }
        }


class CategorySummary(BaseModel):
    """Aggregate over the element rows of one category."""

    total_elements: int = 0
    average_compliance_pct: int = 0
    fully_compliant: int = 0

    @model_validator(mode="after")
    def validate_fully_compliant(self) -> CategorySummary:
        if self.fully_compliant > self.total_elements:
            raise ValueError("fully_compliant cannot exceed total_elements")
        return self

    class Config:
        frozen = True


class DisciplineSummary(CategorySummary):
    """Aggregate over every category of a discipline.

    The average is the mean of the category averages, each category weighted
    equally regardless of its element count.
    """


class CategoryAnalysis(BaseModel):
    """Rows and summary produced for a single category query."""

    model_id: str
    category: str
    resolved_category_token: str | None = None
    filter_query_used: str | None = None
    rows: list[ElementRow] = Field(default_factory=list)
    summary: CategorySummary = Field(default_factory=CategorySummary)

    class Config:
        protected_namespaces = ()


class DisciplineAnalysisResult(BaseModel):
    project_id: str
    model_id: str
    discipline_id: str
    status: AnalysisStatus
    rows: list[ElementRow] = Field(default_factory=list)
    category_summaries: dict[str, CategorySummary] = Field(default_factory=dict)
    summary: DisciplineSummary = Field(default_factory=DisciplineSummary)
    failed_categories: list[str] = Field(default_factory=list)
    message: str = ""

    @property
    def has_failures(self) -> bool:
        return len(self.failed_categories) > 0

    class Config:
        protected_namespaces = ()


class Check(BaseModel):
    """Persisted, immutable snapshot of one discipline analysis."""

    check_id: str | None = None
    project_id: str
    model_id: str
    model_name: str = ""
    discipline_id: str
    category_id: str = "ALL"
    rows: list[ElementRow] = Field(default_factory=list)
    summary: DisciplineSummary
    timestamp: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True
        protected_namespaces = ()


class SaveResult(BaseModel):
    check_id: str
    saved_elements: int
    summary: DisciplineSummary


class LastDiscipline(BaseModel):
    """Discipline of the most recent check saved for a model."""

    check_id: str
    discipline_id: str
    category_id: str = "ALL"
    created_at: datetime


class ProjectComplianceRow(BaseModel):
    """One model in the project-wide rollup, computed on read."""

    model_id: str
    model_name: str = ""
    total_elements: int = 0
    model_compliance_pct: int = 0
    latest_check_id: str | None = None
    last_check_at: datetime | None = None

    class Config:
        protected_namespaces = ()


class ProjectGrandTotal(BaseModel):
    total_elements: int = 0
    average_compliance_pct: int = 0  # element-weighted across models
    analyzed_models: int = 0
    updated_at: datetime = Field(default_factory=utcnow)


class ProjectRollup(BaseModel):
    rows: list[ProjectComplianceRow] = Field(default_factory=list)
    grand_total: ProjectGrandTotal = Field(default_factory=ProjectGrandTotal)
