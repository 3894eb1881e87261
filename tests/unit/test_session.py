"""Unit tests for selection-scoped analysis sessions."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from aeccheck.analysis.session import AnalysisSession
from aeccheck.errors import CatalogError
from aeccheck.models import AnalysisStatus, DisciplineAnalysisResult


def result_for(model_id: str, discipline_id: str) -> DisciplineAnalysisResult:
    return DisciplineAnalysisResult(
        project_id="p",
        model_id=model_id,
        discipline_id=discipline_id,
        status=AnalysisStatus.COMPLETED,
    )


@pytest.fixture
def orchestrator():
    orch = MagicMock()
    orch.run = AsyncMock(side_effect=lambda p, m, d: result_for(m, d.id))
    return orch


class TestAnalysisSession:
    def test_select_bumps_generation(self, orchestrator, sample_catalog):
        session = AnalysisSession(orchestrator, sample_catalog)

        assert session.select("p", "m1", "ARC") == 1
        assert session.select("p", "m1", "STR") == 2
        assert session.selection.discipline_id == "STR"

    def test_select_unknown_discipline_keeps_state(self, orchestrator, sample_catalog):
        session = AnalysisSession(orchestrator, sample_catalog)
        session.select("p", "m1", "ARC")

        with pytest.raises(CatalogError):
            session.select("p", "m1", "NOPE")

        assert session.generation == 1
        assert session.selection.discipline_id == "ARC"

    @pytest.mark.asyncio
    async def test_analyze_requires_selection(self, orchestrator, sample_catalog):
        with pytest.raises(RuntimeError):
            await AnalysisSession(orchestrator, sample_catalog).analyze()

    @pytest.mark.asyncio
    async def test_analyze_stores_result(self, orchestrator, sample_catalog):
        session = AnalysisSession(orchestrator, sample_catalog)
        session.select("p", "m1", "ARC")

        result = await session.analyze()

        assert result.model_id == "m1"
        assert session.result is result

    @pytest.mark.asyncio
    async def test_stale_result_is_discarded(self, orchestrator, sample_catalog):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_run(project_id, model_id, discipline):
            started.set()
            await release.wait()
            return result_for(model_id, discipline.id)

        orchestrator.run = AsyncMock(side_effect=slow_run)
        session = AnalysisSession(orchestrator, sample_catalog)
        session.select("p", "m1", "ARC")

        task = asyncio.create_task(session.analyze())
        await started.wait()
        session.select("p", "m2", "ARC")
        release.set()

        assert await task is None
        assert session.result is None
        assert session.selection.model_id == "m2"

    @pytest.mark.asyncio
    async def test_select_clears_previous_result(self, orchestrator, sample_catalog):
        session = AnalysisSession(orchestrator, sample_catalog)
        session.select("p", "m1", "ARC")
        await session.analyze()

        session.select("p", "m1", "STR")

        assert session.result is None
