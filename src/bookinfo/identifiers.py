from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Protocol, Sequence

from .errors import IdentifierSourceError

logger = logging.getLogger(__name__)


def _request_identifiers(body: Any) -> List[str] | None:
    """Identifiers carried by the request, or None when the body holds none."""
    if isinstance(body, list) and body:
        return [str(x) for x in body]
    return None


class IdentifierSource(Protocol):
    def resolve(self, body: Any) -> List[str]:
        ...


class StaticIdentifierSource:
    """Falls back to a fixed list of identifiers."""

    def __init__(self, fallback: Sequence[str] = ()) -> None:
        self.fallback = list(fallback)

    def resolve(self, body: Any) -> List[str]:
        ids = _request_identifiers(body)
        return ids if ids is not None else list(self.fallback)


class FileIdentifierSource:
    """Falls back to a JSON array of URIs stored on disk.

    The file is read on every fallback so edits are picked up without a
    restart.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> List[str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise IdentifierSourceError(f"cannot read identifier file {self.path}: {e}") from e
        except ValueError as e:
            raise IdentifierSourceError(f"identifier file {self.path} is not valid JSON") from e
        if not isinstance(data, list) or not all(isinstance(x, str) for x in data):
            raise IdentifierSourceError(f"identifier file {self.path} must hold a JSON array of strings")
        return data

    def resolve(self, body: Any) -> List[str]:
        ids = _request_identifiers(body)
        if ids is not None:
            return ids
        logger.info("no identifiers in request, using %s", self.path)
        return self.load()
