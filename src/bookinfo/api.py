import json
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, List

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from .connectors.sparql import SparqlBindingSource
from .errors import BookInfoError
from .identifiers import FileIdentifierSource, IdentifierSource
from .service import lookup_books
from .settings import get_settings

logger = logging.getLogger(__name__)

# ---------------- Observability: logging, metrics, error tracking ---------------

_PROM_REGISTRY = CollectorRegistry()
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
    registry=_PROM_REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    registry=_PROM_REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 20),
)
LOOKUP_FAILURES = Counter(
    "book_lookup_failures_total",
    "Book lookups that ended in an error",
    ["error"],
    registry=_PROM_REGISTRY,
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        obj = {
            "ts": int(time.time() * 1000),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


def _configure_logging() -> None:
    s = get_settings()
    level = getattr(logging, (s.LOG_LEVEL or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)

    if (s.LOG_FORMAT or "plain").lower() == "json":
        for h in logging.getLogger().handlers:
            h.setFormatter(JsonFormatter())


def _configure_sentry() -> None:
    s = get_settings()
    if not s.SENTRY_DSN:
        return
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(dsn=s.SENTRY_DSN, environment=s.ENV, integrations=[FastApiIntegration()])
    logger.info("sentry enabled")


def _install_metrics(app: FastAPI) -> None:
    s = get_settings()
    if not s.METRICS_ENABLED:
        return

    @app.middleware("http")
    async def _metrics_mw(request: Request, call_next):
        path = request.url.path
        method = request.method
        if path == "/metrics":
            return await call_next(request)
        start = time.perf_counter()
        resp = await call_next(request)
        dur = time.perf_counter() - start
        REQUEST_LATENCY.labels(method=method, path=path).observe(dur)
        REQUEST_COUNT.labels(method=method, path=path, status=str(resp.status_code)).inc()
        return resp

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(_PROM_REGISTRY), media_type=CONTENT_TYPE_LATEST)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _configure_logging()
    _configure_sentry()
    s = get_settings()
    logger.info("bookinfo starting (env=%s, endpoint=%s)", s.ENV, s.SPARQL_ENDPOINT)
    yield


app = FastAPI(title="Book Info API", version="0.1.0", lifespan=lifespan)
_install_metrics(app)


@app.exception_handler(BookInfoError)
async def _book_info_error(request: Request, exc: BookInfoError) -> JSONResponse:
    name = type(exc).__name__
    LOOKUP_FAILURES.labels(error=name).inc()
    logger.error("%s %s failed: %s: %s", request.method, request.url.path, name, exc)
    return JSONResponse({"ok": False, "error": name}, status_code=500)


# ---------------- Collaborators (overridable via app.dependency_overrides) ---------------

def get_identifier_source() -> IdentifierSource:
    return FileIdentifierSource(get_settings().URIS_FILE)


def get_binding_source() -> SparqlBindingSource:
    return SparqlBindingSource.from_settings(get_settings())


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("ignoring non-JSON request body on %s", request.url.path)
        return None


@app.get("/health")
def health() -> dict:
    settings = get_settings()
    return {
        "ok": True,
        "endpoint": settings.SPARQL_ENDPOINT,
        "env": settings.ENV,
    }


@app.api_route("/book_info", methods=["GET", "POST"])
async def book_info(
    request: Request,
    identifiers: IdentifierSource = Depends(get_identifier_source),
    source: SparqlBindingSource = Depends(get_binding_source),
) -> List[dict]:
    """Return title, authors and abstract for each requested book URI.

    The body is an optional JSON array of URIs; without one the configured
    fallback list is used. Any lookup failure yields a 500 with no records.
    """
    body = await _read_body(request)
    uris = identifiers.resolve(body)
    records = await lookup_books(uris, source.fetch_bindings, language=get_settings().QUERY_LANGUAGE)
    return [dict(r) for r in records]


_static_dir = Path(get_settings().STATIC_DIR)
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(_static_dir.resolve()), html=True), name="static")
