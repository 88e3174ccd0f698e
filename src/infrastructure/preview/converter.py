import logging
import uuid
from typing import Callable, List, Optional

from core.config import PreviewSettings
from core.error_logger import report
from domain.ports.preview_engine import PreviewEngine
from domain.ports.upstream import UpstreamClient
from infrastructure.preview.lazy import LazyResource
from infrastructure.preview.ffmpeg_engine import FfmpegPreviewEngine


class PreviewConverter:
	"""Best-effort конвертация MOV -> MP4 для предпросмотра.

	Скачивание файлов всегда идет в исходном формате; здесь любая ошибка
	превращается в None ("недоступно"), а не в исключение.
	"""

	def __init__(
		self,
		settings: PreviewSettings,
		upstream: UpstreamClient,
		engine_factory: Optional[Callable[[], PreviewEngine]] = None,
	):
		self._logger = logging.getLogger("relay.preview")
		self._settings = settings
		self._upstream = upstream
		self._engine_factory = engine_factory or (lambda: FfmpegPreviewEngine(settings))
		self._engine: LazyResource[PreviewEngine] = LazyResource(self._load_engine, "preview engine")

	async def _load_engine(self) -> PreviewEngine:
		engine = self._engine_factory()
		await engine.load()
		return engine

	async def get_engine(self) -> Optional[PreviewEngine]:
		return await self._engine.get()

	def conversion_args(self, input_name: str, output_name: str) -> List[str]:
		return [
			"-i", input_name,
			"-c:v", self._settings.video_codec,
			"-c:a", self._settings.audio_codec,
			"-preset", self._settings.preset,
			"-crf", str(self._settings.crf),
			"-movflags", "+faststart",
			output_name,
		]

	async def convert(self, url: str, extension: str = ".mov") -> Optional[bytes]:
		if not self._settings.enabled:
			return None

		engine = await self.get_engine()
		if engine is None:
			self._logger.warning("Preview engine недоступен, конвертация невозможна")
			return None

		token = uuid.uuid4().hex
		input_name = f"input-{token}{extension}"
		output_name = f"output-{token}.mp4"
		try:
			self._logger.info("Начало конвертации для предпросмотра url=%s", url)
			_, data = await self._upstream.fetch_buffered(url)
			if len(data) > self._settings.max_source_bytes:
				self._logger.warning("Файл слишком большой для предпросмотра: %d байт", len(data))
				return None

			await engine.write_file(input_name, data)
			await engine.exec(self.conversion_args(input_name, output_name))
			output = await engine.read_file(output_name)

			await engine.delete_file(input_name)
			await engine.delete_file(output_name)
			self._logger.info("Конвертация завершена: %d -> %d байт", len(data), len(output))
			return output
		except Exception as e:
			self._logger.error("Конвертация для предпросмотра не удалась: %s", e)
			report("log_error", e, {"url": url}, "Preview conversion failed", include_traceback=False)
			return None

	async def aclose(self) -> None:
		engine = await self._engine.reset()
		if engine is not None:
			await engine.close()
