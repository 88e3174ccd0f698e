import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator

import anyio
from core.config import RelaySettings, TranscodeSettings
from core.error_logger import report
from domain.errors import StreamingFailure, TranscodeFailure, TranscodeUnavailable, UpstreamFailure
from domain.models import RelayRequest
from domain.ports.transcoder import Transcoder
from domain.ports.upstream import UpstreamClient
from domain.services import CORS_HEADERS, HostAllowList, cache_headers, require_media_extension
from infrastructure.staging import StagingFiles, staging_files
from use_cases.results import RelayResult


class TranscodeMediaUseCase:
	"""Скачать объект во временный файл, сделать remux в fast-start MP4 и отдать результат"""

	def __init__(
		self,
		upstream: UpstreamClient,
		transcoder: Transcoder,
		allow_list: HostAllowList,
		relay_settings: RelaySettings,
		transcode_settings: TranscodeSettings,
		logger: logging.Logger | None = None,
	) -> None:
		self._upstream = upstream
		self._transcoder = transcoder
		self._allow_list = allow_list
		self._relay_settings = relay_settings
		self._settings = transcode_settings
		self._logger = logger or logging.getLogger("relay.transcode")

	async def execute(self, request: RelayRequest) -> RelayResult:
		parsed = self._allow_list.validate(request.upstream_url)
		extension = require_media_extension(parsed, self._relay_settings.media_extensions)
		url = parsed.geturl()

		async with AsyncExitStack() as stack:
			staging = await stack.enter_async_context(
				staging_files(
					self._settings.temp_dir,
					input_suffix=extension,
					output_suffix=f".{self._settings.output_format}",
				)
			)
			try:
				downloaded = await self._upstream.download_to(url, staging.input_path)
				self._logger.debug("Вход для ремукса загружен: %d байт (%s)", downloaded, staging.token)
				await self._transcoder.remux(staging.input_path, staging.output_path)
			except UpstreamFailure as e:
				report("log_upstream_error", e, url, e.upstream_status)
				raise
			except (TranscodeFailure, TranscodeUnavailable) as e:
				report("log_transcode_error", e, url, getattr(e, "diagnostics", None))
				raise

			size = staging.output_path.stat().st_size
			# дальше файлами владеет тело ответа
			cleanup = stack.pop_all()

		headers = {
			"Content-Type": self._settings.output_media_type,
			"Content-Length": str(size),
		}
		headers.update(cache_headers(self._relay_settings))
		headers.update(CORS_HEADERS)
		return RelayResult(
			status_code=200,
			headers=headers,
			body=self._stream_output(staging, cleanup, url),
			cleanup=cleanup.aclose,
		)

	async def _stream_output(self, staging: StagingFiles, cleanup: AsyncExitStack, url: str) -> AsyncIterator[bytes]:
		sent = 0
		try:
			async with await anyio.open_file(staging.output_path, "rb") as source:
				while True:
					chunk = await source.read(self._relay_settings.chunk_size)
					if not chunk:
						break
					yield chunk
					sent += len(chunk)
		except OSError as e:
			self._logger.error("Ошибка чтения результата ремукса после %d байт: %s", sent, e)
			report("log_streaming_error", e, url, sent)
			raise StreamingFailure(e.strerror or type(e).__name__) from e
		finally:
			await cleanup.aclose()
