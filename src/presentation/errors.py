import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from core.error_logger import report
from domain.errors import RelayError
from domain.services import cors_headers

logger = logging.getLogger("relay")


async def relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
	logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
	return PlainTextResponse(exc.message, status_code=exc.status_code, headers=cors_headers())


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
	logger.exception("Необработанная ошибка %s %s: %s", request.method, request.url.path, exc)
	report("log_error", exc, {"path": request.url.path}, "Unhandled relay error")

	# strerror не содержит путь к файлу, в отличие от str(OSError)
	detail = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
	return PlainTextResponse(f"Error: {detail or type(exc).__name__}", status_code=500, headers=cors_headers())


def register_error_handlers(app: FastAPI) -> None:
	app.add_exception_handler(RelayError, relay_error_handler)
	app.add_exception_handler(Exception, unhandled_error_handler)
