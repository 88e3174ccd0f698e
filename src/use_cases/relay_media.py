import logging
from typing import AsyncIterator, Optional
from urllib.parse import SplitResult

from core.config import RelaySettings
from core.error_logger import report
from domain.errors import StreamingFailure, UpstreamFailure
from domain.models import RelayMode, RelayRequest, UpstreamHead
from domain.ports.upstream import UpstreamClient, UpstreamStream
from domain.services import HostAllowList, relay_headers, require_media_extension, resolve_content_type
from use_cases.results import RelayResult


class RelayMediaUseCase:
	def __init__(
		self,
		upstream: UpstreamClient,
		allow_list: HostAllowList,
		settings: RelaySettings,
		logger: logging.Logger | None = None,
	) -> None:
		self._upstream = upstream
		self._allow_list = allow_list
		self._settings = settings
		self._logger = logger or logging.getLogger("relay")

	def validate(self, request: RelayRequest) -> SplitResult:
		parsed = self._allow_list.validate(request.upstream_url)
		if request.mode is RelayMode.media:
			require_media_extension(parsed, self._settings.media_extensions)
		return parsed

	def _headers(self, head: UpstreamHead, request: RelayRequest, parsed: SplitResult) -> dict:
		content_type = resolve_content_type(head, request.mode, parsed.path, self._settings.forced_media_type)
		return relay_headers(head, content_type, self._settings)

	async def execute(self, request: RelayRequest) -> RelayResult:
		parsed = self.validate(request)
		url = parsed.geturl()
		self._logger.debug("Relay url=%s mode=%s range=%s", url, request.mode.value, request.range_header)

		try:
			if self._settings.stream_bodies:
				result = await self._try_stream(url, request, parsed)
				if result is not None:
					return result
			return await self._buffered(url, request, parsed)
		except UpstreamFailure as e:
			report("log_upstream_error", e, url, e.upstream_status, request.range_header)
			raise

	async def _try_stream(self, url: str, request: RelayRequest, parsed: SplitResult) -> Optional[RelayResult]:
		upstream = await self._upstream.open(url, request.range_header)
		headers = self._headers(upstream.head, request, parsed)
		chunks = upstream.iter_bytes()

		# первый чанк читаем до отправки заголовков, чтобы еще можно было уйти в буфер
		try:
			first = await chunks.__anext__()
		except StopAsyncIteration:
			first = b""
		except Exception as e:
			self._logger.warning("Потоковая передача недоступна url=%s, буферизуем: %s", url, e)
			await upstream.aclose()
			return None

		return RelayResult(
			status_code=upstream.head.status_code,
			headers=headers,
			body=self._relay_body(upstream, chunks, first, url),
			cleanup=upstream.aclose,
		)

	async def _relay_body(
		self,
		upstream: UpstreamStream,
		chunks: AsyncIterator[bytes],
		first: bytes,
		url: str,
	) -> AsyncIterator[bytes]:
		sent = 0
		try:
			if first:
				yield first
				sent += len(first)
			async for chunk in chunks:
				yield chunk
				sent += len(chunk)
		except Exception as e:
			# заголовки уже ушли клиенту: статус не меняем, соединение обрываем
			self._logger.error("Обрыв передачи url=%s после %d байт: %s", url, sent, e)
			report("log_streaming_error", e, url, sent)
			raise StreamingFailure(str(e)) from e
		finally:
			await upstream.aclose()
			self._logger.debug("Передача завершена url=%s отправлено=%d байт", url, sent)

	async def _buffered(self, url: str, request: RelayRequest, parsed: SplitResult) -> RelayResult:
		head, content = await self._upstream.fetch_buffered(url, request.range_header)
		headers = self._headers(head, request, parsed)
		return RelayResult(status_code=head.status_code, headers=headers, body=content)
