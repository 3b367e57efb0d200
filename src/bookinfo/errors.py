from __future__ import annotations


class BookInfoError(Exception):
    """Base class for failures surfaced by a book lookup."""


class MalformedBindingError(BookInfoError):
    """A binding from the endpoint does not have the expected shape."""


class SourceError(BookInfoError):
    """The SPARQL endpoint could not be reached or returned an unusable response."""


class IdentifierSourceError(BookInfoError):
    """The fallback identifier list could not be read."""
