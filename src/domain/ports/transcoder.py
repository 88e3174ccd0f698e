from __future__ import annotations
from pathlib import Path
from typing import Protocol


class Transcoder(Protocol):
	"""Ремукс временного входного файла в fast-start выходной"""

	async def remux(self, input_path: Path, output_path: Path) -> None: ...
