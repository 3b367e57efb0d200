from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from ..errors import SourceError
from ..records import AUTHOR_SEPARATOR, RawBinding

logger = logging.getLogger(__name__)

DBPEDIA_SPARQL = "https://dbpedia.org/sparql"
RESULTS_JSON = "application/sparql-results+json"


def _sparql_string(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace("\"", "\\\"") + '"'


def uri_filter(identifiers: Sequence[str]) -> str:
    """Render identifiers as the body of an ``IN (...)`` filter.

    Identifiers pass through verbatim, duplicates included; an empty list
    renders ``IN ()`` which matches nothing.
    """
    return ", ".join(f"<{uri}>" for uri in identifiers)


def build_book_query(identifiers: Sequence[str], language: str = "en") -> str:
    lang = _sparql_string(language)
    sep = _sparql_string(AUTHOR_SEPARATOR)
    return f"""
    PREFIX dbo: <http://dbpedia.org/ontology/>
    PREFIX dbp: <http://dbpedia.org/property/>
    PREFIX rdfs: <http://www.w3.org/2000/01/rdf-schema#>
    SELECT ?book ?title (GROUP_CONCAT(DISTINCT ?author; separator={sep}) AS ?authors) ?abstract WHERE {{
      ?book a dbo:Book .
      {{
        ?book ?p ?author .
        FILTER (?p = dbp:author || ?p = dbp:authors)
      }}
      UNION
      {{
        ?book ?p ?agent .
        ?agent ?n ?author .
        FILTER (?p = dbp:author || ?p = dbp:authors)
        FILTER (?n = dbp:name || ?n = rdfs:label)
      }}
      ?book rdfs:label ?title .
      ?book dbo:abstract ?abstract .
      FILTER (langMatches(lang(?abstract), {lang}))
      FILTER (langMatches(lang(?title), {lang}))
      FILTER (langMatches(lang(?author), {lang}))
      FILTER (?book IN ({uri_filter(identifiers)}))
    }} GROUP BY ?book ?title ?abstract
    """.strip()


def extract_bindings(data: Any) -> List[RawBinding]:
    """Pull ``results.bindings`` out of a SPARQL JSON results document."""
    results = data.get("results") if isinstance(data, dict) else None
    bindings = results.get("bindings") if isinstance(results, dict) else None
    if not isinstance(bindings, list):
        raise SourceError("response has no results.bindings array")
    return bindings


class SparqlBindingSource:
    """Run a SELECT query and yield its bindings one at a time.

    Each call to :meth:`fetch_bindings` returns a fresh, single-use iterator.
    Transport and protocol failures are raised as :class:`SourceError` from
    the iterator.
    """

    def __init__(
        self,
        endpoint: str = DBPEDIA_SPARQL,
        *,
        method: str = "POST",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"unsupported SPARQL method: {method}")
        self.endpoint = endpoint
        self.method = method
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Any) -> "SparqlBindingSource":
        return cls(
            settings.SPARQL_ENDPOINT,
            method=settings.SPARQL_METHOD,
            timeout=settings.SPARQL_TIMEOUT,
        )

    async def _request(self, client: httpx.AsyncClient, query: str) -> httpx.Response:
        if self.method == "POST":
            return await client.post(self.endpoint, data={"query": query})
        return await client.get(self.endpoint, params={"query": query})

    async def fetch_bindings(self, query: str) -> AsyncIterator[RawBinding]:
        headers = {"Accept": RESULTS_JSON}
        logger.info("sparql %s %s", self.method, self.endpoint)
        async with httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self._transport) as client:
            try:
                r = await self._request(client, query)
                r.raise_for_status()
                data: Dict[str, Any] = r.json()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise SourceError(f"SPARQL request to {self.endpoint} failed: {e}") from e
            except ValueError as e:
                raise SourceError(f"SPARQL endpoint {self.endpoint} returned invalid JSON") from e
        for binding in extract_bindings(data):
            yield binding
