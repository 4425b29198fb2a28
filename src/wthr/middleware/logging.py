"""Request logging, request ids and HTTP metrics."""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from wthr.config import Settings

REQUEST_ID_HEADER = "X-Request-ID"

# Health probes and metric scrapes log at debug level.
QUIET_PATH_PREFIXES = ("/health/", "/metrics")

# Metrics
http_requests = Counter(
    "wthr_http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)
http_duration = Histogram(
    "wthr_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the server and the importer."""
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    log_level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _route_label(request: Request) -> str:
    """Route template used as the metrics label."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def _is_quiet(path: str) -> bool:
    return path.startswith(QUIET_PATH_PREFIXES)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id to every log line and records HTTP metrics.

    An incoming ``X-Request-ID`` is reused so ids can be followed across a
    proxy; otherwise a short random id is generated. Either way it is echoed
    on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request with logging and metrics."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )
        logger = structlog.get_logger()

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start_time
            self._observe(request, "500", duration)
            logger.exception("Request failed with exception", duration_ms=round(duration * 1000, 2))
            raise

        duration = time.perf_counter() - start_time
        self._observe(request, str(response.status_code), duration)

        log = logger.debug if _is_quiet(request.url.path) else logger.info
        log(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _observe(request: Request, status: str, duration: float) -> None:
        route = _route_label(request)
        http_requests.labels(method=request.method, route=route, status=status).inc()
        http_duration.labels(method=request.method, route=route).observe(duration)
