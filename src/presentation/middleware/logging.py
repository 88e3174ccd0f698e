import logging
import time
from fastapi import Request

logger = logging.getLogger("request_logger")


async def log_request_middleware(request: Request, call_next):
    started = time.monotonic()
    response = await call_next(request)
    logger.info(
        "%s %s range=%s -> %s (%.1f ms до заголовков)",
        request.method,
        request.url.path,
        request.headers.get("range"),
        response.status_code,
        (time.monotonic() - started) * 1000,
    )
    return response
