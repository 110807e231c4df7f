import logging
import time

from fastapi import Request
from fastapi.responses import PlainTextResponse
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

file_operations = Counter(
    "keyshare_file_operations_total",
    "File lifecycle operations by outcome",
    ["operation", "outcome"],
)
rollbacks = Counter(
    "keyshare_rollbacks_total",
    "Compensating rollbacks performed after a partial failure",
    ["operation"],
)
cache_purges = Counter(
    "keyshare_cache_purges_total",
    "CDN purge requests by outcome",
    ["outcome"],
)
reconcile_findings = Counter(
    "keyshare_reconcile_orphans_total",
    "Divergences between the upload table and the upload directory",
    ["kind"],
)
reconcile_duration = Histogram(
    "keyshare_reconcile_duration_seconds",
    "Duration of a reconcile run in seconds",
)


def report_operation(operation: str, outcome: str) -> None:
    file_operations.labels(operation=operation, outcome=outcome).inc()


def report_rollback(operation: str) -> None:
    rollbacks.labels(operation=operation).inc()


def report_purge(outcome: str) -> None:
    cache_purges.labels(outcome=outcome).inc()


def report_reconcile(orphans: int, dangling: int, removed: int, duration: float) -> None:
    """Record reconcile metrics to Prometheus."""
    if orphans:
        reconcile_findings.labels(kind="orphan_directory").inc(orphans)
    if dangling:
        reconcile_findings.labels(kind="dangling_row").inc(dangling)
    if removed:
        reconcile_findings.labels(kind="orphan_removed").inc(removed)
    reconcile_duration.observe(duration)


def setup_monitoring(app: ASGIApp):
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error: %s %s -> %s", request.method, request.url.path, e)
            response = PlainTextResponse("Internal Server Error", status_code=500)
        finally:
            process_time = time.time() - start_time
            logger.info("method=%s path=%s status=%s duration=%.4fs",
                        request.method, request.url.path,
                        getattr(response, "status_code", "?"), process_time)
        return response
