"""Discipline Analysis Orchestrator.

Runs the CategoryAnalyzer over every category of a discipline, one category
at a time with a cooldown between requests, and aggregates whatever
succeeded into category and discipline summaries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from aeccheck.analysis.aggregation import summarize_discipline
from aeccheck.analysis.category import CategoryAnalyzer
from aeccheck.catalog import Discipline
from aeccheck.errors import AllCategoriesFailedError, RemoteFetchError
from aeccheck.models import (
    AnalysisStatus,
    CategorySummary,
    DisciplineAnalysisResult,
    ElementRow,
)

logger = logging.getLogger(__name__)


def build_status_message(
    total_elements: int, categories_analyzed: int, failed_categories: list[str]
) -> str:
    message = (
        f"Discipline analysis completed. {total_elements} elements found "
        f"across {categories_analyzed} categories."
    )
    if failed_categories:
        message += f" Failed categories: {', '.join(failed_categories)}."
    return message


class DisciplineAnalysisOrchestrator:
    """Sequential, rate-limited analysis of one discipline.

    Features:
    - One category request in flight at a time, declaration order
    - Fixed cooldown between category requests
    - Per-category timeout treated as a category failure
    - Partial failure tolerance: failed categories get a zero summary and
      are reported by name; the run fails only if every category fails

    Usage:
        orchestrator = DisciplineAnalysisOrchestrator(CategoryAnalyzer(client))
        result = await orchestrator.run(project_id, model_id, catalog.get("ARC"))
        if result.has_failures:
            print(result.message)
    """

    def __init__(
        self,
        analyzer: CategoryAnalyzer,
        delay_seconds: float = 0.1,
        category_timeout_seconds: float | None = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize orchestrator.

        Args:
            analyzer: Analyzer used for each category
            delay_seconds: Cooldown between consecutive category requests
            category_timeout_seconds: Per-category limit (None disables it)
            sleep: Awaitable sleep, injectable for tests
        """
        self.analyzer = analyzer
        self.delay_seconds = delay_seconds
        self.category_timeout_seconds = category_timeout_seconds
        self._sleep = sleep
        self.status = AnalysisStatus.PENDING

    async def run(
        self, project_id: str, model_id: str, discipline: Discipline
    ) -> DisciplineAnalysisResult:
        """Analyze every category of a discipline.

        Returns:
            DisciplineAnalysisResult with status COMPLETED (possibly with
            failed categories) or FAILED when no category succeeded
        """
        self.status = AnalysisStatus.RUNNING
        logger.info(
            f"Analyzing discipline {discipline.id} ({len(discipline.categories)} categories) "
            f"for model {model_id}"
        )

        rows: list[ElementRow] = []
        summaries: dict[str, CategorySummary] = {}
        failed: list[str] = []

        for index, category in enumerate(discipline.categories):
            if index > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)

            try:
                analysis = await asyncio.wait_for(
                    self.analyzer.analyze(
                        project_id,
                        model_id,
                        category.query,
                        required_parameters=category.required_parameters or None,
                    ),
                    timeout=self.category_timeout_seconds,
                )
            except (RemoteFetchError, asyncio.TimeoutError) as e:
                reason = "timed out" if isinstance(e, asyncio.TimeoutError) else str(e)
                logger.warning(f"Category {category.name} failed: {reason}")
                failed.append(category.name)
                summaries[category.id] = CategorySummary()
                continue

            rows.extend(
                row.model_copy(
                    update={
                        "analysis_category_id": category.id,
                        "analysis_category_name": category.name,
                        "analysis_category_query": category.query,
                    }
                )
                for row in analysis.rows
            )
            summaries[category.id] = analysis.summary

        if discipline.categories and len(failed) == len(discipline.categories):
            self.status = AnalysisStatus.FAILED
            logger.error(f"All {len(failed)} categories of {discipline.id} failed")
            return DisciplineAnalysisResult(
                project_id=project_id,
                model_id=model_id,
                discipline_id=discipline.id,
                status=AnalysisStatus.FAILED,
                category_summaries=summaries,
                failed_categories=failed,
                message="All category requests failed. Please retry the analysis.",
            )

        summary = summarize_discipline(list(summaries.values()))
        self.status = AnalysisStatus.COMPLETED

        message = build_status_message(
            summary.total_elements, len(discipline.categories), failed
        )
        logger.info(message)

        return DisciplineAnalysisResult(
            project_id=project_id,
            model_id=model_id,
            discipline_id=discipline.id,
            status=AnalysisStatus.COMPLETED,
            rows=rows,
            category_summaries=summaries,
            summary=summary,
            failed_categories=failed,
            message=message,
        )

    async def run_or_raise(
        self, project_id: str, model_id: str, discipline: Discipline
    ) -> DisciplineAnalysisResult:
        """Same as run() but raises when every category failed.

        Raises:
            AllCategoriesFailedError: If the run ended FAILED
        """
        result = await self.run(project_id, model_id, discipline)
        if result.status == AnalysisStatus.FAILED:
            raise AllCategoriesFailedError(discipline.id, result.failed_categories)
        return result
