"""
Request logging middleware.
Logs method, path, status and processing time of every request.
"""
import logging
import time
from fastapi import Request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000


async def request_logging_middleware(request: Request, call_next):
    request_start_time = time.time()

    response = await call_next(request)

    request_duration = (time.time() - request_start_time) * 1000
    log = logger.warning if request_duration > SLOW_REQUEST_MS else logger.info
    log("%s %s -> %s (%.2f ms)", request.method, request.url.path, response.status_code, request_duration)

    response.headers["X-Response-Time"] = str(round(request_duration, 2))
    return response
