"""Single-category parameter analysis.

Fetches the elements of one category, normalizes them into ElementRows and
scores each against the category's required parameters.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from aeccheck.aec.normalizer import (
    build_category_candidates,
    category_filters,
    element_fields,
)
from aeccheck.analysis.aggregation import summarize_rows
from aeccheck.analysis.scorer import DEFAULT_REQUIRED_TOTAL, score
from aeccheck.catalog import DisciplineCatalog
from aeccheck.errors import FilterSyntaxError, RemoteFetchError, ValidationError
from aeccheck.models import CategoryAnalysis, ElementRow, RawProperty

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_PARAMETERS: tuple[str, ...] = (
    "revit_element_id",
    "category",
    "family_name",
    "element_name",
    "type_mark",
    "description",
    "model",
    "manufacturer",
    "assembly_code",
    "assembly_description",
)


class ElementSource(Protocol):
    async def fetch_elements(self, model_id: str, property_filter: str) -> list[dict[str, Any]]:
        ...


def build_element_row(
    element: dict[str, Any],
    required_parameters: Sequence[str],
    fallback_total: int = DEFAULT_REQUIRED_TOTAL,
) -> ElementRow:
    """Normalize a raw element and attach its compliance score.

    Required parameters may name canonical fields (``manufacturer``) or raw
    platform properties (``Fire Rating``).
    """
    fields = element_fields(element)
    raw_properties: list[RawProperty] = fields["raw_properties"]

    scored: dict[str, Any] = {prop.name: prop.value for prop in raw_properties}
    scored.update(
        {name: value for name, value in fields.items() if isinstance(value, str)}
    )

    return ElementRow(
        **fields,
        compliance=score(scored, required_parameters, fallback_total=fallback_total),
    )


class CategoryAnalyzer:
    """Analyzes one category of a model against the AEC platform.

    Tries each filter candidate for the category name (instance-only filter
    first, then unrestricted). The first non-empty result wins; a syntax
    error moves on to the next candidate.
    """

    def __init__(
        self,
        source: ElementSource,
        catalog: DisciplineCatalog | None = None,
        fallback_total: int = DEFAULT_REQUIRED_TOTAL,
    ):
        self.source = source
        self.catalog = catalog
        self.fallback_total = fallback_total

    async def analyze(
        self,
        project_id: str,
        model_id: str,
        category_query: str,
        required_parameters: Sequence[str] | None = None,
    ) -> CategoryAnalysis:
        """Fetch, normalize and score every element of a category.

        Args:
            project_id: AEC project identifier
            model_id: Model (element group) identifier
            category_query: Filter token from the discipline catalog
            required_parameters: Parameters to score; defaults to the
                canonical classification/manufacturer set

        Returns:
            CategoryAnalysis with rows in platform order and their summary.
            An empty category is a successful, empty analysis.

        Raises:
            ValidationError: If an identifier is blank
            RemoteFetchError: If the upstream query fails or returns a
                malformed element payload
        """
        if not str(project_id or "").strip():
            raise ValidationError("Missing project_id")
        if not str(model_id or "").strip():
            raise ValidationError("Missing model_id")
        category = str(category_query or "").strip()
        if not category:
            raise ValidationError("Missing category")

        required = (
            tuple(required_parameters)
            if required_parameters is not None
            else DEFAULT_REQUIRED_PARAMETERS
        )

        elements, token, filter_used = await self._resolve_elements(model_id, category)
        try:
            rows = [build_element_row(e, required, self.fallback_total) for e in elements]
        except (TypeError, ValueError) as e:
            raise RemoteFetchError(
                f"Malformed element payload for category '{category}': {e}", category=category
            ) from e

        logger.info(
            f"Category {category!r}: {len(rows)} elements (token={token!r})"
        )

        return CategoryAnalysis(
            model_id=model_id,
            category=category,
            resolved_category_token=token,
            filter_query_used=filter_used,
            rows=rows,
            summary=summarize_rows(rows),
        )

    async def _resolve_elements(
        self, model_id: str, category: str
    ) -> tuple[list[dict[str, Any]], str | None, str | None]:
        aliases = self.catalog.aliases_for(category) if self.catalog else []
        candidates = build_category_candidates(category, aliases)

        first_empty: tuple[list[dict[str, Any]], str, str] | None = None
        last_syntax_error: FilterSyntaxError | None = None

        for candidate in candidates:
            for property_filter in category_filters(candidate):
                try:
                    elements = await self.source.fetch_elements(model_id, property_filter)
                except FilterSyntaxError as e:
                    logger.debug(f"Filter rejected for {candidate!r}: {e}")
                    last_syntax_error = e
                    continue
                except RemoteFetchError as e:
                    e.category = e.category or category
                    raise

                if elements:
                    return elements, candidate, property_filter
                if first_empty is None:
                    first_empty = (elements, candidate, property_filter)

        if first_empty is not None:
            return first_empty

        if last_syntax_error is not None:
            raise RemoteFetchError(
                f"Could not build a valid filter for category '{category}'. {last_syntax_error}".strip(),
                category=category,
            )

        return [], None, None
