"""Selection-scoped analysis state.

Changing the selected model or discipline bumps a generation counter; a run
that finishes under an older generation is discarded instead of overwriting
the newer selection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aeccheck.analysis.orchestrator import DisciplineAnalysisOrchestrator
from aeccheck.catalog import DisciplineCatalog
from aeccheck.models import DisciplineAnalysisResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Selection:
    project_id: str
    model_id: str
    discipline_id: str


class AnalysisSession:
    """Holds the current selection and the result of its latest run."""

    def __init__(self, orchestrator: DisciplineAnalysisOrchestrator, catalog: DisciplineCatalog):
        self.orchestrator = orchestrator
        self.catalog = catalog
        self.selection: Selection | None = None
        self.result: DisciplineAnalysisResult | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def select(self, project_id: str, model_id: str, discipline_id: str) -> int:
        """Switch selection, dropping any result of the previous one."""
        self.catalog.get(discipline_id)  # unknown ids fail before state changes
        self._generation += 1
        self.selection = Selection(project_id, model_id, discipline_id)
        self.result = None
        return self._generation

    async def analyze(self) -> DisciplineAnalysisResult | None:
        """Run the orchestrator for the current selection.

        Returns:
            The result, or None if the selection changed while running
        """
        if self.selection is None:
            raise RuntimeError("No model/discipline selected")

        token = self._generation
        selection = self.selection
        discipline = self.catalog.get(selection.discipline_id)

        result = await self.orchestrator.run(
            selection.project_id, selection.model_id, discipline
        )

        if token != self._generation:
            logger.info(
                f"Discarding stale analysis for {selection.model_id}/{selection.discipline_id} "
                f"(generation {token}, current {self._generation})"
            )
            return None

        self.result = result
        return result
