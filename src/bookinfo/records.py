from __future__ import annotations

from typing import Any, List, Mapping, TypedDict

# Joins author names both in the remote GROUP_CONCAT and in the local split.
AUTHOR_SEPARATOR = " & "

BOOK_FIELDS = ("book", "title", "authors", "abstract")

# One row of `results.bindings`, e.g. {"title": {"type": "literal", "xml:lang": "en", "value": "..."}}
RawBinding = Mapping[str, Mapping[str, Any]]


class Record(TypedDict):
    book: str
    title: str
    authors: str
    abstract: str


ResultSet = List[Record]
