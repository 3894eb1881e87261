"""Correlation of analyzed element rows with viewer object ids.

Rows carry platform and authoring identities; a viewer knows its objects by
session-local dbIds. Rows that already carry a dbId are used directly, the
rest are matched through an element-id index built from the viewer's
property database.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from aeccheck.aec.normalizer import to_positive_int
from aeccheck.config import get_config
from aeccheck.errors import ViewerNotReadyError
from aeccheck.models import ElementRow

logger = logging.getLogger(__name__)

ELEMENT_ID_PROP_FILTER = ["Revit Element ID", "Element Id", "ElementId", "Id"]
ELEMENT_ID_PROP_NAMES = {name.lower() for name in ELEMENT_ID_PROP_FILTER}
DIRECT_DB_ID_PROP_NAMES = {"dbid", "db id"}


class ViewerHandle(Protocol):
    """Operations the resolver needs from a model viewer."""

    @property
    def model_loaded(self) -> bool:
        ...

    async def load_model(self, urn: str) -> None:
        ...

    async def all_object_ids(self) -> list[int]:
        ...

    async def get_bulk_properties(
        self, db_ids: Sequence[int], prop_filter: Sequence[str]
    ) -> list[dict[str, Any]]:
        """Return ``[{"dbId": 1, "properties": [{"displayName", "displayValue"}]}]``."""
        ...

    async def isolate(self, db_ids: Sequence[int]) -> None:
        ...

    async def fit_to_view(self, db_ids: Sequence[int]) -> None:
        ...

    async def show_all(self) -> None:
        ...


def normalize_element_id_keys(value: Any) -> list[str]:
    """Index keys for an element id.

    ``"1,234.0"`` yields both the raw text and ``"1234"``.
    """
    raw = str(value if value is not None else "").strip()
    if not raw:
        return []

    keys = [raw]
    compact = raw.replace(",", "")
    if re.fullmatch(r"\d+(\.0+)?", compact):
        integral = str(int(compact.split(".")[0]))
        if integral not in keys:
            keys.append(integral)
    return keys


def valid_db_ids(values: Iterable[Any]) -> list[int]:
    """Positive integer ids, deduplicated in first-seen order."""
    ids: list[int] = []
    seen: set[int] = set()
    for value in values:
        parsed = to_positive_int(value)
        if parsed and parsed not in seen:
            seen.add(parsed)
            ids.append(parsed)
    return ids


def direct_db_id(row: ElementRow) -> int | None:
    candidates: list[Any] = [row.viewer_db_id]
    candidates.extend(
        prop.value
        for prop in row.raw_properties
        if prop.name.strip().lower() in DIRECT_DB_ID_PROP_NAMES
    )
    for candidate in candidates:
        parsed = to_positive_int(candidate)
        if parsed:
            return parsed
    return None


def row_element_id_keys(row: ElementRow) -> list[str]:
    keys: list[str] = []
    values: list[Any] = [row.revit_element_id, row.external_element_id, row.element_id]
    values.extend(
        prop.value
        for prop in row.raw_properties
        if prop.name.strip().lower() in ELEMENT_ID_PROP_NAMES
    )
    for value in values:
        for key in normalize_element_id_keys(value):
            if key not in keys:
                keys.append(key)
    return keys


def bulk_result_keys(result: dict[str, Any]) -> list[str]:
    keys: list[str] = []
    for prop in result.get("properties") or []:
        name = str(
            prop.get("displayName") or prop.get("attributeName") or prop.get("name") or ""
        ).strip().lower()
        if name not in ELEMENT_ID_PROP_NAMES:
            continue
        value = prop.get("displayValue", prop.get("value"))
        for key in normalize_element_id_keys(value):
            if key not in keys:
                keys.append(key)
    return keys


@dataclass
class IsolationResult:
    ids: list[int] = field(default_factory=list)
    message: str = ""

    @property
    def isolated(self) -> bool:
        return bool(self.ids)


class ViewerCorrelationResolver:
    """Maps element rows to viewer dbIds and drives isolation.

    The element-id index is built lazily on first use and kept until the
    next ``load_model``. Every viewer call goes through one lock, so a
    concurrent isolate cannot interleave with an index build.

    Usage:
        resolver = ViewerCorrelationResolver(viewer)
        await resolver.load_model(urn)
        result = await resolver.isolate_rows([row])
        print(result.message)
    """

    def __init__(self, viewer: ViewerHandle, chunk_size: int | None = None):
        if chunk_size is None:
            chunk_size = get_config().analysis.viewer_bulk_chunk_size
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.viewer = viewer
        self.chunk_size = chunk_size
        self._index: dict[str, list[int]] | None = None
        self._lock = asyncio.Lock()

    async def load_model(self, urn: str) -> None:
        """Load a model into the viewer and drop the previous index."""
        if not str(urn or "").strip():
            raise ValueError("Missing model URN")
        async with self._lock:
            self._index = None
            await self.viewer.load_model(urn)

    async def resolve(self, rows: Sequence[ElementRow]) -> list[int]:
        """Resolve rows to viewer dbIds.

        Returns:
            Deduplicated dbIds; every match of an element id is included.
            An empty list means nothing resolved, not an error.

        Raises:
            ViewerNotReadyError: If the viewer has no loaded model
        """
        if not rows:
            return []
        if not self.viewer.model_loaded:
            raise ViewerNotReadyError("Viewer has no loaded model")

        resolved: list[int] = []
        unresolved: list[ElementRow] = []
        for row in rows:
            db_id = direct_db_id(row)
            if db_id:
                resolved.append(db_id)
            else:
                unresolved.append(row)

        if unresolved:
            index = await self._get_index()
            for row in unresolved:
                for key in row_element_id_keys(row):
                    resolved.extend(index.get(key, []))

        return valid_db_ids(resolved)

    async def isolate(self, db_ids: Sequence[int]) -> None:
        """Isolate and frame ids; an empty selection shows everything."""
        ids = valid_db_ids(db_ids)
        if not ids:
            await self.clear_isolation()
            return
        async with self._lock:
            await self.viewer.isolate(ids)
            await self.viewer.fit_to_view(ids)

    async def clear_isolation(self) -> None:
        async with self._lock:
            await self.viewer.show_all()

    async def isolate_rows(self, rows: Sequence[ElementRow]) -> IsolationResult:
        ids = await self.resolve(rows)
        if not ids:
            return IsolationResult(message="No visible viewer dbId found for this element.")

        await self.isolate(ids)
        return IsolationResult(
            ids=ids,
            message=f"Element isolated in viewer (dbIds: {', '.join(str(i) for i in ids)}).",
        )

    async def _get_index(self) -> dict[str, list[int]]:
        async with self._lock:
            if self._index is None:
                self._index = await self._build_index()
            return self._index

    async def _build_index(self) -> dict[str, list[int]]:
        all_ids = valid_db_ids(await self.viewer.all_object_ids())
        index: dict[str, list[int]] = {}

        for start in range(0, len(all_ids), self.chunk_size):
            chunk = all_ids[start:start + self.chunk_size]
            results = await self.viewer.get_bulk_properties(chunk, ELEMENT_ID_PROP_FILTER)
            for item in results or []:
                db_id = to_positive_int(item.get("dbId"))
                if not db_id:
                    continue
                for key in bulk_result_keys(item):
                    matches = index.setdefault(key, [])
                    if db_id not in matches:
                        matches.append(db_id)

        logger.info(f"Built viewer element-id index: {len(index)} keys over {len(all_ids)} objects")
        return index
