"""
Natours Backend: Request Logging Guard
========================================

What:  One access-log line per request: method, path, status, duration, IP.
How:   Captures the start time when the guard runs and registers a response
       hook; the pipeline calls the hook with the final status code once the
       response has started, whichever path produced it.
Who:   Second guard in the pipeline, installed in development only.

Log line:
    GET /api/v1/tours 200 3.4ms from 127.0.0.1
"""

import logging
import time

from natours.middleware.context import RequestContext

logger = logging.getLogger("natours.access")


class RequestLoggingGuard:
    """
    Logs each request when its response starts.

    Level by status:
        5xx → ERROR
        4xx → WARNING
        2xx/3xx → INFO
    """

    async def __call__(self, ctx: RequestContext) -> None:
        start_time = time.perf_counter()

        def log_response(status: int) -> None:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if status >= 500:
                log_level = logging.ERROR
            elif status >= 400:
                log_level = logging.WARNING
            else:
                log_level = logging.INFO

            logger.log(
                log_level,
                "%s %s %d %.1fms from %s",
                ctx.method,
                ctx.path,
                status,
                duration_ms,
                ctx.client_ip,
                extra={
                    "method": ctx.method,
                    "path": ctx.path,
                    "status": status,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": ctx.client_ip,
                },
            )

        ctx.response_hooks.append(log_response)
