"""Exception hierarchy for AECCheck.

"Not found" lookups return ``None`` and an empty viewer resolution returns an
empty id list; neither is an error.
"""

from __future__ import annotations


class AECCheckError(Exception):
    """Base class for all AECCheck errors."""


class CatalogError(AECCheckError):
    """Discipline catalog is malformed or a discipline id is unknown."""


class RemoteFetchError(AECCheckError):
    """An element/property query against the AEC platform failed.

    Recovered per category by the discipline orchestrator.
    """

    def __init__(self, message: str, category: str | None = None):
        super().__init__(message)
        self.category = category


class FilterSyntaxError(RemoteFetchError):
    """The platform rejected a property filter as syntactically invalid."""


class AllCategoriesFailedError(AECCheckError):
    """Every category of a discipline failed; no partial result is usable."""

    def __init__(self, discipline_id: str, failed_categories: list[str]):
        self.discipline_id = discipline_id
        self.failed_categories = list(failed_categories)
        super().__init__("All category requests failed. Please retry the analysis.")


class ValidationError(AECCheckError):
    """Input rejected before any write (e.g. saving a check without rows)."""


class PersistenceError(AECCheckError):
    """Read or write against the check store failed. Safe to retry manually."""


class ViewerNotReadyError(AECCheckError):
    """Viewer handle has no loaded model to resolve against."""
