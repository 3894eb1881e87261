"""Category, discipline and project level compliance aggregation."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from aeccheck.analysis.scorer import round_half_up
from aeccheck.models import (
    CategorySummary,
    DisciplineSummary,
    ElementRow,
    ProjectComplianceRow,
    ProjectGrandTotal,
    ProjectRollup,
    utcnow,
)


def summarize_rows(rows: Sequence[ElementRow]) -> CategorySummary:
    """Fold element rows into a CategorySummary.

    Args:
        rows: Analyzed rows of one category (may be empty)

    Returns:
        CategorySummary with the rounded mean row pct
    """
    total_elements = len(rows)
    if not total_elements:
        return CategorySummary()

    pcts = [row.compliance.pct for row in rows]
    return CategorySummary(
        total_elements=total_elements,
        average_compliance_pct=round_half_up(sum(pcts) / total_elements),
        fully_compliant=sum(1 for pct in pcts if pct >= 100),
    )


def summarize_discipline(summaries: Sequence[CategorySummary]) -> DisciplineSummary:
    """Combine category summaries with equal weight per category.

    Failed categories are expected to be passed in as zero summaries so they
    pull the average down instead of being excluded.
    """
    if not summaries:
        return DisciplineSummary()

    return DisciplineSummary(
        total_elements=sum(s.total_elements for s in summaries),
        fully_compliant=sum(s.fully_compliant for s in summaries),
        average_compliance_pct=round_half_up(
            sum(s.average_compliance_pct for s in summaries) / len(summaries)
        ),
    )


@dataclass(slots=True)
class CheckHeader:
    """Summary columns of one stored check, enough to build a rollup."""

    check_id: str
    model_id: str
    model_name: str
    discipline_id: str
    total_elements: int
    average_compliance_pct: int
    created_at: datetime


def latest_per_model_discipline(headers: Iterable[CheckHeader]) -> list[CheckHeader]:
    """Keep only the newest check for each (model, discipline) pair."""
    latest: dict[tuple[str, str], CheckHeader] = {}
    for header in headers:
        if not header.model_id:
            continue
        key = (header.model_id, header.discipline_id)
        existing = latest.get(key)
        if existing is None or header.created_at >= existing.created_at:
            latest[key] = header
    return list(latest.values())


def build_project_rollup(headers: Iterable[CheckHeader]) -> ProjectRollup:
    """Build one row per analyzed model from stored check headers.

    A model's pct is the mean of the averages of its latest check per
    discipline; the grand total is element-weighted across models.
    """
    by_model: dict[str, list[CheckHeader]] = {}
    for header in latest_per_model_discipline(headers):
        by_model.setdefault(header.model_id, []).append(header)

    rows: list[ProjectComplianceRow] = []
    for model_id, group in by_model.items():
        group.sort(key=lambda h: h.created_at, reverse=True)
        newest = group[0]
        model_name = next((h.model_name for h in group if h.model_name), "")
        rows.append(
            ProjectComplianceRow(
                model_id=model_id,
                model_name=model_name,
                total_elements=sum(h.total_elements for h in group),
                model_compliance_pct=round_half_up(
                    sum(h.average_compliance_pct for h in group) / len(group)
                ),
                latest_check_id=newest.check_id,
                last_check_at=newest.created_at,
            )
        )

    rows.sort(key=lambda row: row.model_id)

    grand_total_elements = sum(row.total_elements for row in rows)
    weighted = sum(row.model_compliance_pct * row.total_elements for row in rows)

    return ProjectRollup(
        rows=rows,
        grand_total=ProjectGrandTotal(
            total_elements=grand_total_elements,
            average_compliance_pct=(
                round_half_up(weighted / grand_total_elements) if grand_total_elements else 0
            ),
            analyzed_models=len(rows),
            updated_at=utcnow(),
        ),
    )


def summarize_rows_by_category(rows: Sequence[ElementRow]) -> DisciplineSummary:
    """Rebuild a discipline summary from stamped rows.

    Rows are grouped by their analysis category so each category keeps equal
    weight, as in the orchestrator's own summary.
    """
    groups: dict[str, list[ElementRow]] = {}
    for row in rows:
        groups.setdefault(row.analysis_category_id or row.category, []).append(row)
    return summarize_discipline([summarize_rows(group) for group in groups.values()])
