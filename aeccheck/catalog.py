"""Discipline / category catalog.

Loads the YAML table that maps disciplines to ordered categories and each
category to its platform filter token and required parameters. New
disciplines or categories are added in YAML, never in analysis code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from aeccheck.errors import CatalogError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisciplineCategory:
    """One category of a discipline.

    Attributes:
        id: Stable category identifier (e.g. "arc_walls")
        name: Display name
        query: Opaque platform filter token
        required_parameters: Parameters counted by the compliance score
    """

    id: str
    name: str
    query: str
    required_parameters: tuple[str, ...] = ()


@dataclass(frozen=True)
class Discipline:
    id: str
    name: str
    categories: tuple[DisciplineCategory, ...] = ()


@dataclass
class DisciplineCatalog:
    """Immutable lookup of disciplines by id, in declaration order."""

    disciplines: list[Discipline]
    category_aliases: dict[str, list[str]] = field(default_factory=dict)
    version: int = 1

    def get(self, discipline_id: str) -> Discipline:
        """Return a discipline by id (case-insensitive).

        Raises:
            CatalogError: If the discipline is not in the catalog
        """
        discipline = self.find(discipline_id)
        if discipline is None:
            raise CatalogError(f"Unknown discipline: {discipline_id}")
        return discipline

    def find(self, discipline_id: str) -> Discipline | None:
        wanted = str(discipline_id or "").strip().upper()
        return next((d for d in self.disciplines if d.id.upper() == wanted), None)

    def aliases_for(self, category_query: str) -> list[str]:
        return list(self.category_aliases.get(str(category_query or "").strip(), []))

    @property
    def ids(self) -> list[str]:
        return [d.id for d in self.disciplines]


def _parse_category(
    raw: Any, defaults: tuple[str, ...], discipline_id: str, idx: int
) -> DisciplineCategory:
    if not isinstance(raw, dict):
        raise CatalogError(f"Category {idx} of discipline {discipline_id} is not a mapping")

    missing = [key for key in ("id", "name", "query") if not str(raw.get(key) or "").strip()]
    if missing:
        raise CatalogError(
            f"Category {idx} of discipline {discipline_id} is missing: {', '.join(missing)}"
        )

    required = raw.get("required_parameters")
    if required is None:
        required_parameters = defaults
    elif isinstance(required, list):
        required_parameters = tuple(str(p).strip() for p in required if str(p).strip())
    else:
        raise CatalogError(f"required_parameters of {raw['id']} must be a list")

    return DisciplineCategory(
        id=str(raw["id"]).strip(),
        name=str(raw["name"]).strip(),
        query=str(raw["query"]).strip(),
        required_parameters=required_parameters,
    )


def parse_catalog(data: Any) -> DisciplineCatalog:
    """Build a catalog from already-parsed YAML data.

    Raises:
        CatalogError: If the structure is invalid or ids are duplicated
    """
    if not isinstance(data, dict) or not isinstance(data.get("disciplines"), list):
        raise CatalogError("Catalog must be a mapping with a 'disciplines' list")

    defaults_block = data.get("defaults") or {}
    defaults = tuple(
        str(p).strip() for p in defaults_block.get("required_parameters", []) if str(p).strip()
    )

    disciplines: list[Discipline] = []
    seen: set[str] = set()
    for raw in data["disciplines"]:
        if not isinstance(raw, dict) or not raw.get("id"):
            raise CatalogError("Every discipline needs an 'id'")

        discipline_id = str(raw["id"]).strip()
        if discipline_id.upper() in seen:
            raise CatalogError(f"Duplicate discipline id: {discipline_id}")
        seen.add(discipline_id.upper())

        categories = tuple(
            _parse_category(cat, defaults, discipline_id, idx)
            for idx, cat in enumerate(raw.get("categories") or [])
        )
        category_ids = [c.id for c in categories]
        if len(set(category_ids)) != len(category_ids):
            raise CatalogError(f"Duplicate category id in discipline {discipline_id}")
        if not categories:
            logger.warning(f"Discipline {discipline_id} declares no categories")

        disciplines.append(
            Discipline(
                id=discipline_id,
                name=str(raw.get("name") or discipline_id).strip(),
                categories=categories,
            )
        )

    aliases = {
        str(name).strip(): [str(alias).strip() for alias in values or []]
        for name, values in (data.get("aliases") or {}).items()
    }

    return DisciplineCatalog(
        disciplines=disciplines,
        category_aliases=aliases,
        version=int(data.get("version", 1)),
    )


def load_catalog(path: Path) -> DisciplineCatalog:
    """Load the discipline catalog from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CatalogError: If the YAML is malformed or structurally invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Discipline catalog not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    catalog = parse_catalog(data)
    logger.info(f"Loaded {len(catalog.disciplines)} disciplines from {path}")
    return catalog


_catalog: DisciplineCatalog | None = None


def get_catalog() -> DisciplineCatalog:
    """Get or load the singleton catalog from the configured path."""
    global _catalog
    if _catalog is None:
        from aeccheck.config import get_config

        _catalog = load_catalog(get_config().catalog_path)
    return _catalog
