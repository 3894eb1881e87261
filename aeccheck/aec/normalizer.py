"""Normalization of AEC platform element payloads.

The platform exposes the same semantic field under different property names
depending on the authoring template and locale. Each canonical ElementRow
field is resolved from an ordered list of aliases.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from aeccheck.analysis.scorer import normalize_key, to_text
from aeccheck.models import PropertyDefinition, RawProperty

# Restricts element queries to placed instances (types are excluded)
BULK_CONTEXT_FILTER = "'property.name.Element Context'==Instance"

PROPERTY_ALIASES: dict[str, list[str]] = {
    "revit_element_id": ["Revit Element ID", "Element Id", "ElementId", "Id"],
    "category": ["Revit Category Type Id", "Category", "Category Name"],
    "family_name": ["Family Name", "Family"],
    "element_name": ["Element Name", "Name"],
    "type_mark": ["Type Mark", "Mark"],
    "description": ["Description", "Type Description"],
    "model": ["Model", "Model Number", "Modelo"],
    "manufacturer": ["Manufacturer", "Fabricante"],
    "assembly_code": ["Assembly Code", "OmniClass Number"],
    "assembly_description": ["Assembly Description", "OmniClass Title"],
}

DB_ID_PROPERTY_NAMES = ["DbId", "dbId", "Db Id"]

_FILTER_SYNTAX_ERROR = re.compile(r"Error with query syntax|Lexical error", re.IGNORECASE)


def to_positive_int(value: Any) -> int | None:
    """Parse a strictly positive integer, rejecting floats and signs."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None

    text = str(value if value is not None else "").strip()
    if not re.fullmatch(r"\d+", text):
        return None
    parsed = int(text)
    return parsed if parsed > 0 else None


def pick_property(properties: Sequence[dict[str, Any]], names: str | Iterable[str]) -> str:
    """Return the first property value whose name matches one of ``names``."""
    wanted = [normalize_key(n) for n in ([names] if isinstance(names, str) else names)]
    hit = next((p for p in properties if normalize_key(p.get("name")) in wanted), None)
    return to_text(hit.get("value")) if hit else ""


def to_raw_properties(properties: Sequence[dict[str, Any]]) -> list[RawProperty]:
    raw: list[RawProperty] = []
    for prop in properties:
        definition = prop.get("definition") or {}
        if not isinstance(definition, dict):
            raise TypeError(f"Malformed property definition for {prop.get('name')!r}")
        raw.append(
            RawProperty(
                name=to_text(prop.get("name")),
                value=prop.get("value"),
                definition=PropertyDefinition(
                    id=to_text(definition.get("id")),
                    name=to_text(definition.get("name")),
                    description=to_text(definition.get("description")),
                    specification=to_text(definition.get("specification")),
                )
                if definition
                else None,
            )
        )
    return raw


def element_properties(element: dict[str, Any]) -> list[dict[str, Any]]:
    """Property objects of an element's ``properties.results`` page.

    Raises:
        TypeError: If the element or its property page is not shaped as the
            platform returns it
    """
    if not isinstance(element, dict):
        raise TypeError(f"Malformed element payload: {type(element).__name__}")
    page = element.get("properties") or {}
    if not isinstance(page, dict):
        raise TypeError(f"Malformed properties for element {element.get('id')!r}")
    results = page.get("results") or []
    if not isinstance(results, list):
        raise TypeError(f"Malformed property results for element {element.get('id')!r}")
    return [p for p in results if isinstance(p, dict)]


def element_fields(element: dict[str, Any]) -> dict[str, Any]:
    """Map one raw platform element onto canonical ElementRow fields.

    Only an explicit DbId counts as a viewer id; authoring and platform ids
    are matched through the viewer's element-id index instead.
    Compliance is not computed here; see CategoryAnalyzer.

    Raises:
        TypeError: If the payload shape is malformed
    """
    properties = element_properties(element)
    alt_ids = element.get("alternativeIdentifiers") or {}
    if not isinstance(alt_ids, dict):
        raise TypeError(f"Malformed alternativeIdentifiers for element {element.get('id')!r}")

    fields: dict[str, Any] = {
        name: pick_property(properties, aliases) for name, aliases in PROPERTY_ALIASES.items()
    }
    fields["revit_element_id"] = to_text(alt_ids.get("revitElementId")) or fields["revit_element_id"]
    fields["element_name"] = fields["element_name"] or to_text(element.get("name"))

    element_id = to_text(element.get("id"))
    explicit_db_id = pick_property(properties, DB_ID_PROPERTY_NAMES)
    viewer_db_id = to_positive_int(explicit_db_id) or to_positive_int(element.get("dbId"))

    fields.update(
        element_id=element_id,
        external_element_id=to_text(alt_ids.get("externalElementId")),
        viewer_db_id=viewer_db_id,
        db_id=viewer_db_id,
        raw_properties=to_raw_properties(properties),
    )
    return fields


def singularize_word(word: str) -> str:
    if not word:
        return ""
    lower = word.lower()
    if lower.endswith("ies"):
        return f"{word[:-3]}y"
    if lower.endswith("sses"):
        return word
    if lower.endswith("s") and len(word) > 3:
        return word[:-1]
    return word


def build_category_candidates(category: str, aliases: Iterable[str] = ()) -> list[str]:
    """Ordered, de-duplicated filter tokens to try for a category name.

    "Structural Columns" yields the raw name, "StructuralColumns" and the
    singular "StructuralColumn", followed by any configured aliases.

    Raises:
        ValueError: If the category is blank
    """
    raw = str(category or "").strip()
    if not raw:
        raise ValueError("Missing category")

    candidates: list[str] = []

    def push(candidate: str) -> None:
        candidate = candidate.strip()
        if candidate and candidate not in candidates:
            candidates.append(candidate)

    push(raw)

    words = [w for w in re.split(r"[^a-zA-Z0-9]+", raw) if w]
    push("".join(words))
    push("".join(w[0].upper() + w[1:] for w in words))
    singular = [singularize_word(w) for w in words]
    push("".join(singular))
    push("".join(w[0].upper() + w[1:] for w in singular if w))

    for alias in aliases:
        push(alias)

    return candidates


def quote_if_needed(candidate: str) -> str:
    return f"'{candidate}'" if re.search(r"\s", candidate) else candidate


def category_filters(candidate: str) -> list[str]:
    """Filter queries for a candidate: instance-only first, then unrestricted."""
    base = f"property.name.category=={quote_if_needed(candidate)}"
    return [f"{base} and {BULK_CONTEXT_FILTER}", base]


def is_filter_syntax_error(message: str) -> bool:
    return bool(_FILTER_SYNTAX_ERROR.search(message or ""))
