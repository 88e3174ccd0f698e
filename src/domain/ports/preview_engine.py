from __future__ import annotations
from typing import Protocol, Sequence


class PreviewEngine(Protocol):
	"""Движок конвертации со своим приватным пространством файлов"""

	async def load(self) -> None: ...
	async def write_file(self, name: str, data: bytes) -> None: ...
	async def exec(self, args: Sequence[str]) -> None: ...
	async def read_file(self, name: str) -> bytes: ...
	async def delete_file(self, name: str) -> None: ...
	async def close(self) -> None: ...
