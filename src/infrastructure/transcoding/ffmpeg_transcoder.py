import asyncio
import contextlib
import logging
from pathlib import Path
from typing import List

from core.config import TranscodeSettings
from domain.errors import TranscodeFailure, TranscodeTimeout, TranscodeUnavailable
from domain.ports.transcoder import Transcoder
from infrastructure.transcoding.mp4_atoms import is_fast_start


def scrub_paths(text: str, input_path: Path, output_path: Path) -> str:
	"""Убрать локальные пути из диагностики ffmpeg перед отдачей клиенту"""
	text = text.replace(str(input_path), "<input>").replace(str(output_path), "<output>")
	return text.replace(str(input_path.parent), "<tmp>")


class FfmpegTranscoder(Transcoder):
	"""Transcoder, запускающий внешний ffmpeg: копирование потоков и перенос moov в начало"""

	def __init__(self, settings: TranscodeSettings):
		self._logger = logging.getLogger("relay.transcode")
		self._ffmpeg_bin = settings.ffmpeg_bin
		self._timeout = settings.timeout
		self._output_format = settings.output_format

	def build_command(self, input_path: Path, output_path: Path) -> List[str]:
		return [
			self._ffmpeg_bin,
			"-nostdin",
			"-hide_banner",
			"-loglevel", "error",
			"-y",
			"-i", str(input_path),
			"-c", "copy",
			"-movflags", "+faststart",
			"-f", self._output_format,
			str(output_path),
		]

	async def _kill(self, proc: asyncio.subprocess.Process) -> None:
		with contextlib.suppress(ProcessLookupError):
			proc.kill()
		with contextlib.suppress(asyncio.TimeoutError):
			await asyncio.wait_for(proc.wait(), timeout=5.0)

	async def remux(self, input_path: Path, output_path: Path) -> None:
		cmd = self.build_command(input_path, output_path)
		self._logger.info("Запуск ремукса %s -> %s", input_path.name, output_path.name)

		try:
			proc = await asyncio.create_subprocess_exec(
				*cmd,
				stdin=asyncio.subprocess.DEVNULL,
				stdout=asyncio.subprocess.DEVNULL,
				stderr=asyncio.subprocess.PIPE,
			)
		except (FileNotFoundError, PermissionError) as e:
			self._logger.error("Не удалось запустить '%s': %s", self._ffmpeg_bin, e)
			raise TranscodeUnavailable() from e

		try:
			_, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
		except asyncio.TimeoutError:
			self._logger.error("ffmpeg pid=%s превысил таймаут %.0fs, завершаем", proc.pid, self._timeout)
			await self._kill(proc)
			raise TranscodeTimeout(self._timeout)
		except asyncio.CancelledError:
			# клиент отключился: не оставляем осиротевший процесс
			self._logger.warning("Запрос отменен, завершаем ffmpeg pid=%s", proc.pid)
			await self._kill(proc)
			raise

		diagnostics = scrub_paths(stderr.decode("utf-8", errors="replace"), input_path, output_path).strip()
		if proc.returncode != 0:
			self._logger.error("ffmpeg завершился с кодом %s: %s", proc.returncode, diagnostics)
			raise TranscodeFailure(diagnostics or f"exit code {proc.returncode}")
		if not output_path.exists():
			raise TranscodeFailure("output file was not produced")

		if not is_fast_start(output_path):
			self._logger.warning("Результат ремукса %s не fast-start: moov после mdat", output_path.name)
		self._logger.info("Ремукс завершен %s (%d байт)", output_path.name, output_path.stat().st_size)
