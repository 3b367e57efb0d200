"""Reshape raw SPARQL bindings into flat book records.

Each binding field wraps its literal in a term object
(``{"type": "literal", "xml:lang": "en", "value": "..."}``); only ``value``
is kept. The ``authors`` field arrives as one ``GROUP_CONCAT`` string and is
deduplicated per record.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from .errors import MalformedBindingError
from .records import AUTHOR_SEPARATOR, BOOK_FIELDS, RawBinding, Record


def dedupe_authors(authors: str, separator: str = AUTHOR_SEPARATOR) -> str:
    """Drop blank and repeated author names, ignoring case.

    The first spelling of a name wins; later variants are dropped, not merged.
    """
    seen: set[str] = set()
    kept: List[str] = []
    for name in authors.split(separator):
        if not name.strip():
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        kept.append(name)
    return separator.join(kept)


def _unwrap(field: str, term: Any) -> str:
    if term is None:
        raise MalformedBindingError(f"binding has no {field!r} field")
    if not isinstance(term, Mapping):
        raise MalformedBindingError(f"field {field!r} is not an RDF term: {term!r}")
    value = term.get("value")
    if not isinstance(value, str):
        raise MalformedBindingError(f"field {field!r} has no string value")
    return value


def normalize_binding(binding: RawBinding) -> Record:
    """Flatten one binding into a Record with deduplicated authors.

    Every field in BOOK_FIELDS must be present; other variables are ignored.
    """
    if not isinstance(binding, Mapping):
        raise MalformedBindingError(f"binding is not a mapping: {binding!r}")

    out: Dict[str, str] = {}
    for field in BOOK_FIELDS:
        out[field] = _unwrap(field, binding.get(field))
    out["authors"] = dedupe_authors(out["authors"])
    return out  # type: ignore[return-value]
