"""Unit tests for the discipline analysis orchestrator."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from aeccheck.analysis.aggregation import summarize_rows
from aeccheck.analysis.category import CategoryAnalyzer
from aeccheck.analysis.orchestrator import DisciplineAnalysisOrchestrator, build_status_message
from aeccheck.catalog import Discipline, DisciplineCategory
from aeccheck.errors import AllCategoriesFailedError, RemoteFetchError
from aeccheck.models import AnalysisStatus, CategoryAnalysis, CategorySummary

ARC = Discipline(
    id="ARC",
    name="Architecture",
    categories=(
        DisciplineCategory(id="arc_walls", name="Walls", query="Walls"),
        DisciplineCategory(id="arc_windows", name="Windows", query="Windows"),
    ),
)


class FakeAnalyzer:
    """Returns canned rows or raises per category query."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def analyze(self, project_id, model_id, category_query, required_parameters=None):
        self.calls.append(category_query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            outcome = self.outcomes[category_query]
            if isinstance(outcome, BaseException):
                raise outcome
            if callable(outcome):
                return await outcome()
            return CategoryAnalysis(
                model_id=model_id,
                category=category_query,
                rows=outcome,
                summary=summarize_rows(outcome),
            )
        finally:
            self.in_flight -= 1


def orchestrator_for(analyzer, **kwargs):
    kwargs.setdefault("sleep", AsyncMock())
    return DisciplineAnalysisOrchestrator(analyzer, **kwargs)


class TestRun:
    @pytest.mark.asyncio
    async def test_partial_failure_walls_and_windows(self, make_row):
        analyzer = FakeAnalyzer(
            {
                "Walls": [make_row(100, "w1"), make_row(50, "w2")],
                "Windows": RemoteFetchError("AEC API error: 500"),
            }
        )
        orchestrator = orchestrator_for(analyzer)

        result = await orchestrator.run("p", "m", ARC)

        assert result.status == AnalysisStatus.COMPLETED
        assert result.category_summaries["arc_walls"] == CategorySummary(
            total_elements=2, average_compliance_pct=75, fully_compliant=1
        )
        assert result.category_summaries["arc_windows"] == CategorySummary(
            total_elements=0, average_compliance_pct=0, fully_compliant=0
        )
        assert (
            result.summary.total_elements,
            result.summary.average_compliance_pct,
            result.summary.fully_compliant,
        ) == (2, 38, 1)
        assert result.failed_categories == ["Windows"]
        assert result.has_failures
        assert result.message == (
            "Discipline analysis completed. 2 elements found across 2 categories. "
            "Failed categories: Windows."
        )
        assert orchestrator.status == AnalysisStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rows_stamped_with_category(self, make_row):
        analyzer = FakeAnalyzer({"Walls": [make_row(100, "w1")], "Windows": [make_row(0, "n1")]})

        result = await orchestrator_for(analyzer).run("p", "m", ARC)

        assert [r.element_id for r in result.rows] == ["w1", "n1"]
        assert result.rows[0].analysis_category_id == "arc_walls"
        assert result.rows[0].analysis_category_name == "Walls"
        assert result.rows[1].analysis_category_query == "Windows"
        assert not result.has_failures

    @pytest.mark.asyncio
    async def test_all_categories_failed(self):
        analyzer = FakeAnalyzer(
            {"Walls": RemoteFetchError("boom"), "Windows": RemoteFetchError("boom")}
        )
        orchestrator = orchestrator_for(analyzer)

        result = await orchestrator.run("p", "m", ARC)

        assert result.status == AnalysisStatus.FAILED
        assert result.rows == []
        assert result.failed_categories == ["Walls", "Windows"]
        assert result.message == "All category requests failed. Please retry the analysis."
        assert orchestrator.status == AnalysisStatus.FAILED

    @pytest.mark.asyncio
    async def test_run_or_raise(self):
        analyzer = FakeAnalyzer(
            {"Walls": RemoteFetchError("boom"), "Windows": RemoteFetchError("boom")}
        )

        with pytest.raises(AllCategoriesFailedError) as exc_info:
            await orchestrator_for(analyzer).run_or_raise("p", "m", ARC)

        assert exc_info.value.failed_categories == ["Walls", "Windows"]

    @pytest.mark.asyncio
    async def test_categories_run_sequentially_in_order(self, make_row):
        analyzer = FakeAnalyzer({"Walls": [], "Windows": [make_row(50)]})

        await orchestrator_for(analyzer).run("p", "m", ARC)

        assert analyzer.calls == ["Walls", "Windows"]
        assert analyzer.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_cooldown_between_categories_only(self):
        three = Discipline(
            id="X",
            name="X",
            categories=tuple(
                DisciplineCategory(id=f"c{i}", name=f"C{i}", query=f"C{i}") for i in range(3)
            ),
        )
        sleep = AsyncMock()
        analyzer = FakeAnalyzer({"C0": [], "C1": [], "C2": []})

        await DisciplineAnalysisOrchestrator(analyzer, delay_seconds=0.25, sleep=sleep).run(
            "p", "m", three
        )

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)

    @pytest.mark.asyncio
    async def test_category_timeout_counts_as_failure(self, make_row):
        async def hang():
            await asyncio.sleep(10)

        analyzer = FakeAnalyzer({"Walls": hang, "Windows": [make_row(100)]})

        result = await orchestrator_for(analyzer, category_timeout_seconds=0.01).run("p", "m", ARC)

        assert result.status == AnalysisStatus.COMPLETED
        assert result.failed_categories == ["Walls"]
        assert result.summary.average_compliance_pct == 50

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        analyzer = FakeAnalyzer({"Walls": KeyError("bug"), "Windows": []})

        with pytest.raises(KeyError):
            await orchestrator_for(analyzer).run("p", "m", ARC)

    @pytest.mark.asyncio
    async def test_empty_discipline(self):
        empty = Discipline(id="E", name="Empty")

        result = await orchestrator_for(FakeAnalyzer({})).run("p", "m", empty)

        assert result.status == AnalysisStatus.COMPLETED
        assert result.summary.total_elements == 0

    @pytest.mark.asyncio
    async def test_malformed_payload_fails_only_its_category(self, make_element):
        source = AsyncMock()
        source.fetch_elements.side_effect = lambda model_id, property_filter: (
            [{"id": "a", "properties": [{"name": "Category", "value": "Walls"}]}]
            if "Walls" in property_filter
            else [make_element("win-1", Manufacturer="Acme")]
        )
        orchestrator = orchestrator_for(CategoryAnalyzer(source))

        result = await orchestrator.run("p", "m", ARC)

        assert result.status == AnalysisStatus.COMPLETED
        assert result.failed_categories == ["Walls"]
        assert [r.element_id for r in result.rows] == ["win-1"]
        assert result.category_summaries["arc_walls"] == CategorySummary()


def test_status_message_without_failures():
    assert build_status_message(12, 3, []) == (
        "Discipline analysis completed. 12 elements found across 3 categories."
    )
