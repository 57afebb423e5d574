"""
Logging setup and the per-request access log.

Each access line also carries `severity`, `httpRequest` and `latency`
attributes on its record, in the Cloud Logging request-log shape, for
handlers that emit structured output.
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

logger = logging.getLogger("gateway.access")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _request_fields(request: Request, url: str, status: int, elapsed: float) -> dict:
    latency = f"{elapsed:.9f}s"
    return {
        "severity": "ERROR" if status >= 500 else "INFO",
        "httpRequest": {
            "requestMethod": request.method,
            "requestUrl": url,
            "status": status,
            "userAgent": request.headers.get("user-agent", ""),
            "remoteIp": request.client.host if request.client else "",
            "referer": request.headers.get("referer", ""),
            "latency": latency,
        },
        "latency": latency,
    }


async def access_log_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    # Latency is measured to response start: streamed bodies may take much longer.
    started = time.perf_counter()
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"

    try:
        response = await call_next(request)
    except Exception:
        elapsed = time.perf_counter() - started
        logger.exception(
            "%s %s => 500 in %.3fs",
            request.method,
            url,
            elapsed,
            extra=_request_fields(request, url, 500, elapsed),
        )
        raise

    elapsed = time.perf_counter() - started
    level = logging.ERROR if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s => %d in %.3fs",
        request.method,
        url,
        response.status_code,
        elapsed,
        extra=_request_fields(request, url, response.status_code, elapsed),
    )
    return response
