import logging

from core.config import RelaySettings
from domain.errors import PreviewUnavailable
from domain.services import CORS_HEADERS, HostAllowList, cache_headers, require_media_extension
from infrastructure.preview import PreviewConverter
from use_cases.results import RelayResult


class PreviewMediaUseCase:
	def __init__(
		self,
		converter: PreviewConverter,
		allow_list: HostAllowList,
		settings: RelaySettings,
		logger: logging.Logger | None = None,
	) -> None:
		self._converter = converter
		self._allow_list = allow_list
		self._settings = settings
		self._logger = logger or logging.getLogger("relay.preview")

	async def execute(self, url: str) -> RelayResult:
		parsed = self._allow_list.validate(url)
		extension = require_media_extension(parsed, self._settings.media_extensions)

		data = await self._converter.convert(parsed.geturl(), extension)
		if data is None:
			raise PreviewUnavailable()

		headers = {"Content-Type": "video/mp4"}
		headers.update(cache_headers(self._settings))
		headers.update(CORS_HEADERS)
		return RelayResult(status_code=200, headers=headers, body=data)
