import logging
import os
import tempfile
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

logger = logging.getLogger("relay.transcode")


class StagingFiles:
	"""Пара временных файлов (вход, выход) одной операции транскодирования.

	Имена содержат время запуска в наносекундах и uuid4, поэтому параллельные
	запросы никогда не делят и не перезаписывают файлы друг друга.
	"""

	def __init__(self, directory: Optional[str] = None, input_suffix: str = ".mov", output_suffix: str = ".mp4"):
		base = Path(directory or tempfile.gettempdir())
		token = f"{time.time_ns()}-{uuid.uuid4().hex}"
		self.token = token
		self.input_path = base / f"relay-{token}-input{input_suffix}"
		self.output_path = base / f"relay-{token}-output{output_suffix}"
		self._released = False

	@property
	def released(self) -> bool:
		return self._released

	def release(self) -> None:
		"""Удалить оба файла; повторный вызов ничего не делает, ошибки удаления игнорируются"""
		if self._released:
			return
		self._released = True
		for path in (self.input_path, self.output_path):
			try:
				os.unlink(path)
			except FileNotFoundError:
				pass
			except OSError as e:
				logger.debug("Не удалось удалить временный файл %s: %s", path.name, e)


@asynccontextmanager
async def staging_files(
	directory: Optional[str] = None,
	input_suffix: str = ".mov",
	output_suffix: str = ".mp4",
) -> AsyncIterator[StagingFiles]:
	staging = StagingFiles(directory, input_suffix, output_suffix)
	try:
		yield staging
	finally:
		staging.release()
