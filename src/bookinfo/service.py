from __future__ import annotations

import logging
from typing import AsyncIterator, Callable, Sequence

from .aggregate import Aggregator
from .connectors.sparql import build_book_query
from .records import RawBinding, ResultSet

logger = logging.getLogger(__name__)

BindingFetcher = Callable[[str], AsyncIterator[RawBinding]]


async def lookup_books(
    identifiers: Sequence[str],
    fetch_bindings: BindingFetcher,
    *,
    language: str = "en",
) -> ResultSet:
    """Query the endpoint for the given book URIs and return normalized records.

    Raises SourceError or MalformedBindingError; never returns a partial list.
    """
    query = build_book_query(identifiers, language=language)
    logger.info("book lookup: %d identifiers", len(identifiers))
    records = await Aggregator().collect_async(fetch_bindings(query))
    logger.info("book lookup: %d records", len(records))
    return records
