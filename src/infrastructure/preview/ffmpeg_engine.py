import asyncio
import contextlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import anyio
from core.config import PreviewSettings
from domain.ports.preview_engine import PreviewEngine


class PreviewEngineError(RuntimeError):
	pass


class FfmpegPreviewEngine(PreviewEngine):
	"""ffmpeg с приватной рабочей директорией вместо виртуальной ФС.

	Задачи конвертации выполняются строго по одной.
	"""

	def __init__(self, settings: PreviewSettings):
		self._logger = logging.getLogger("relay.preview")
		self._ffmpeg_bin = settings.ffmpeg_bin
		self._timeout = settings.timeout
		self._workspace: Optional[Path] = None
		self._lock = asyncio.Lock()

	@property
	def workspace(self) -> Optional[Path]:
		return self._workspace

	async def load(self) -> None:
		proc = await asyncio.create_subprocess_exec(
			self._ffmpeg_bin,
			"-version",
			stdin=asyncio.subprocess.DEVNULL,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.DEVNULL,
		)
		try:
			stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=15.0)
		except asyncio.TimeoutError:
			with contextlib.suppress(ProcessLookupError):
				proc.kill()
			raise PreviewEngineError("ffmpeg -version did not answer")
		if proc.returncode != 0:
			raise PreviewEngineError(f"ffmpeg -version exited with {proc.returncode}")

		version = stdout.decode("utf-8", errors="replace").splitlines()[:1]
		self._workspace = Path(tempfile.mkdtemp(prefix="relay-preview-"))
		self._logger.info("Preview engine готов: %s", version[0] if version else "ffmpeg")

	def _path(self, name: str) -> Path:
		if self._workspace is None:
			raise PreviewEngineError("engine is not loaded")
		if not name or Path(name).name != name:
			raise ValueError(f"invalid engine file name: {name!r}")
		return self._workspace / name

	async def write_file(self, name: str, data: bytes) -> None:
		await anyio.Path(self._path(name)).write_bytes(data)

	async def read_file(self, name: str) -> bytes:
		return await anyio.Path(self._path(name)).read_bytes()

	async def delete_file(self, name: str) -> None:
		await anyio.Path(self._path(name)).unlink()

	async def exec(self, args: Sequence[str]) -> None:
		if self._workspace is None:
			raise PreviewEngineError("engine is not loaded")

		async with self._lock:
			proc = await asyncio.create_subprocess_exec(
				self._ffmpeg_bin,
				"-nostdin",
				"-hide_banner",
				"-loglevel", "error",
				"-y",
				*args,
				cwd=str(self._workspace),
				stdin=asyncio.subprocess.DEVNULL,
				stdout=asyncio.subprocess.DEVNULL,
				stderr=asyncio.subprocess.PIPE,
			)
			try:
				_, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
			except (asyncio.TimeoutError, asyncio.CancelledError):
				with contextlib.suppress(ProcessLookupError):
					proc.kill()
				with contextlib.suppress(asyncio.TimeoutError):
					await asyncio.wait_for(proc.wait(), timeout=5.0)
				raise

			if proc.returncode != 0:
				raise PreviewEngineError(stderr.decode("utf-8", errors="replace").strip())

	async def close(self) -> None:
		if self._workspace is not None:
			shutil.rmtree(self._workspace, ignore_errors=True)
			self._workspace = None
