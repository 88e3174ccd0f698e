import logging
from typing import Awaitable, Callable, Optional, TypeVar

import anyio
from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect
from starlette.types import Receive, Scope, Send

from domain.errors import ClientDisconnected

logger = logging.getLogger("relay")

T = TypeVar("T")


class RelayStreamingResponse(StreamingResponse):
	"""StreamingResponse, освобождающий ресурсы тела на любом выходе.

	BackgroundTask не выполняется, если клиент отвалился на отправке заголовков,
	а генератор тела в этом случае даже не стартует. Поэтому cleanup вызывается
	здесь, в finally; все cleanup релея идемпотентны.
	"""

	def __init__(self, content, cleanup: Optional[Callable[[], Awaitable[object]]] = None, **kwargs):
		super().__init__(content, **kwargs)
		self._cleanup = cleanup

	async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
		try:
			await super().__call__(scope, receive, send)
		except ClientDisconnect:
			logger.info("Клиент отключился во время передачи %s", scope.get("path"))
		finally:
			# отмена снаружи (например, BaseHTTPMiddleware) не должна прервать очистку
			with anyio.CancelScope(shield=True):
				close_body = getattr(self.body_iterator, "aclose", None)
				if close_body is not None:
					await close_body()
				if self._cleanup is not None:
					await self._cleanup()


async def run_until_disconnected(
	request: Request,
	operation: Callable[[], Awaitable[T]],
	poll_interval: float,
) -> T:
	"""Выполнить operation, отменив ее, если клиент отключится раньше.

	Ни uvicorn, ни Starlette не отменяют обработчик при http.disconnect, поэтому
	долгий ремукс без этого доработал бы впустую. Отмена доходит до операции как
	CancelledError: внешний процесс убивается, временные файлы удаляются.
	"""
	outcome = {}

	async with anyio.create_task_group() as tg:

		async def watch() -> None:
			while not await request.is_disconnected():
				await anyio.sleep(poll_interval)
			logger.info("Клиент отключился, отменяем %s", request.url.path)
			tg.cancel_scope.cancel()

		tg.start_soon(watch)
		try:
			outcome["result"] = await operation()
		except Exception as e:
			# поднимаем после выхода из task group, чтобы не получить ExceptionGroup
			outcome["error"] = e
		tg.cancel_scope.cancel()

	if "error" in outcome:
		raise outcome["error"]
	if "result" not in outcome:
		raise ClientDisconnected()
	return outcome["result"]
