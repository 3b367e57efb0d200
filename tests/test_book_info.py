import asyncio

import pytest
from fastapi.testclient import TestClient

from bookinfo.api import app, get_binding_source, get_identifier_source
from bookinfo.errors import SourceError
from bookinfo.identifiers import StaticIdentifierSource
from bookinfo.service import lookup_books


def _b(name, authors):
    return {
        "book": {"type": "uri", "value": f"http://dbpedia.org/resource/{name}"},
        "title": {"type": "literal", "xml:lang": "en", "value": name.replace("_", " ")},
        "authors": {"type": "literal", "value": authors},
        "abstract": {"type": "literal", "xml:lang": "en", "value": f"About {name}."},
    }


class FakeSource:
    def __init__(self, bindings, error=None):
        self.bindings = bindings
        self.error = error
        self.queries = []

    async def fetch_bindings(self, query):
        self.queries.append(query)
        for b in self.bindings:
            yield b
        if self.error is not None:
            raise self.error


@pytest.fixture
def wire():
    def _wire(source, fallback=()):
        app.dependency_overrides[get_binding_source] = lambda: source
        app.dependency_overrides[get_identifier_source] = lambda: StaticIdentifierSource(fallback)
        return TestClient(app)

    yield _wire
    app.dependency_overrides.clear()


def test_post_returns_normalized_records(wire):
    src = FakeSource([
        _b("Good_Omens", "Terry Pratchett & Neil Gaiman & neil gaiman"),
        _b("The_Hobbit", " & J. R. R. Tolkien & "),
    ])
    client = wire(src)
    r = client.post("/book_info", json=["http://dbpedia.org/resource/Good_Omens", "http://dbpedia.org/resource/The_Hobbit"])
    assert r.status_code == 200
    data = r.json()
    assert [d["title"] for d in data] == ["Good Omens", "The Hobbit"]
    assert data[0]["authors"] == "Terry Pratchett & Neil Gaiman"
    assert data[1]["authors"] == "J. R. R. Tolkien"
    assert set(data[0]) == {"book", "title", "authors", "abstract"}
    assert "<http://dbpedia.org/resource/Good_Omens>, <http://dbpedia.org/resource/The_Hobbit>" in src.queries[0]


def test_get_without_body_uses_fallback_identifiers(wire):
    src = FakeSource([_b("Dune", "Frank Herbert")])
    client = wire(src, fallback=["http://dbpedia.org/resource/Dune"])
    r = client.get("/book_info")
    assert r.status_code == 200
    assert r.json()[0]["authors"] == "Frank Herbert"
    assert "<http://dbpedia.org/resource/Dune>" in src.queries[0]


def test_malformed_binding_is_500_without_records(wire):
    bad = _b("Emma", "Jane Austen")
    del bad["authors"]
    client = wire(FakeSource([_b("Dune", "Frank Herbert"), bad]))
    r = client.post("/book_info", json=["http://dbpedia.org/resource/Dune"])
    assert r.status_code == 500
    assert r.json() == {"ok": False, "error": "MalformedBindingError"}


def test_source_error_is_500(wire):
    client = wire(FakeSource([_b("Dune", "Frank Herbert")], error=SourceError("endpoint down")))
    r = client.post("/book_info", json=["http://dbpedia.org/resource/Dune"])
    assert r.status_code == 500
    assert r.json()["error"] == "SourceError"


def test_empty_identifier_list_end_to_end():
    src = FakeSource([])
    out = asyncio.run(lookup_books([], src.fetch_bindings))
    assert out == []
    assert "IN ()" in src.queries[0]
