import logging
from pathlib import Path
from typing import AsyncIterator, Dict, Optional, Tuple

import anyio
import httpx
from domain.models import UpstreamHead
from domain.errors import BufferFailure, UpstreamFailure
from core.config import RelaySettings


def head_from_response(response: httpx.Response) -> UpstreamHead:
	return UpstreamHead(
		status_code=response.status_code,
		content_type=response.headers.get("content-type"),
		content_length=response.headers.get("content-length"),
		content_range=response.headers.get("content-range"),
		accept_ranges=response.headers.get("accept-ranges"),
	)


def _reason(error: Exception) -> str:
	return str(error) or type(error).__name__


class HttpUpstreamStream:
	"""Открытый потоковый ответ httpx; владеет соединением до aclose()"""

	def __init__(self, response: httpx.Response, chunk_size: int):
		self._response = response
		self._chunk_size = chunk_size
		self._closed = False
		self.head = head_from_response(response)

	def iter_bytes(self) -> AsyncIterator[bytes]:
		return self._response.aiter_bytes(self._chunk_size)

	async def aclose(self) -> None:
		if self._closed:
			return
		self._closed = True
		await self._response.aclose()


class HttpUpstreamClient:
	"""Реализация UpstreamClient поверх httpx.AsyncClient"""

	def __init__(self, settings: RelaySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
		self._logger = logging.getLogger("relay.upstream")
		self._chunk_size = settings.chunk_size
		self._client = httpx.AsyncClient(
			follow_redirects=True,
			timeout=httpx.Timeout(settings.upstream_timeout, connect=settings.upstream_connect_timeout),
			transport=transport,
		)
		self._logger.info(
			"Upstream client initialized timeout=%s connect_timeout=%s chunk_size=%s",
			settings.upstream_timeout,
			settings.upstream_connect_timeout,
			self._chunk_size,
		)

	async def _send(self, url: str, range_header: Optional[str]) -> httpx.Response:
		# без сжатия: Content-Length и Content-Range должны описывать отдаваемые байты
		headers: Dict[str, str] = {"Accept-Encoding": "identity"}
		if range_header:
			headers["Range"] = range_header
		request = self._client.build_request("GET", url, headers=headers)
		try:
			response = await self._client.send(request, stream=True)
		except httpx.HTTPError as e:
			self._logger.warning("Upstream недоступен url=%s: %s", url, _reason(e))
			raise UpstreamFailure(reason=_reason(e)) from e

		self._logger.debug(
			"GET %s range=%s status=%s content_type=%s content_length=%s",
			url,
			range_header,
			response.status_code,
			response.headers.get("content-type"),
			response.headers.get("content-length"),
		)
		if not response.is_success:
			await response.aclose()
			raise UpstreamFailure(response.status_code)
		return response

	async def open(self, url: str, range_header: Optional[str] = None) -> HttpUpstreamStream:
		"""Открыть потоковый GET-запрос; Range пробрасывается как есть"""
		response = await self._send(url, range_header)
		return HttpUpstreamStream(response, self._chunk_size)

	async def fetch_buffered(self, url: str, range_header: Optional[str] = None) -> Tuple[UpstreamHead, bytes]:
		"""Получить объект целиком в память"""
		response = await self._send(url, range_header)
		try:
			content = await response.aread()
		except (httpx.HTTPError, MemoryError) as e:
			self._logger.error("Не удалось прочитать тело ответа url=%s: %s", url, _reason(e))
			raise BufferFailure(_reason(e)) from e
		finally:
			await response.aclose()

		self._logger.debug("Буферизовано %d байт url=%s", len(content), url)
		return head_from_response(response), content

	async def download_to(self, url: str, path: Path) -> int:
		"""Скачать объект в файл чанками, не держа его целиком в памяти"""
		response = await self._send(url, None)
		written = 0
		try:
			async with await anyio.open_file(path, "wb") as target:
				async for chunk in response.aiter_bytes(self._chunk_size):
					await target.write(chunk)
					written += len(chunk)
		except httpx.HTTPError as e:
			self._logger.warning("Обрыв загрузки url=%s после %d байт: %s", url, written, _reason(e))
			raise UpstreamFailure(reason=_reason(e)) from e
		finally:
			await response.aclose()

		self._logger.debug("Загружено %d байт url=%s", written, url)
		return written

	async def aclose(self) -> None:
		await self._client.aclose()
