from __future__ import annotations
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol, Tuple
from domain.models import UpstreamHead


class UpstreamStream(Protocol):
	"""Открытый потоковый ответ upstream-хранилища"""

	head: UpstreamHead

	def iter_bytes(self) -> AsyncIterator[bytes]:
		"""Итерировать тело ответа чанками"""
		...

	async def aclose(self) -> None:
		"""Закрыть соединение с upstream (повторный вызов безопасен)"""
		...


class UpstreamClient(Protocol):
	"""Интерфейс доступа к объектному хранилищу"""

	async def open(self, url: str, range_header: Optional[str] = None) -> UpstreamStream:
		"""Открыть потоковый GET-запрос, пробрасывая Range"""
		...

	async def fetch_buffered(self, url: str, range_header: Optional[str] = None) -> Tuple[UpstreamHead, bytes]:
		"""Получить объект целиком в память"""
		...

	async def download_to(self, url: str, path: Path) -> int:
		"""Скачать объект в файл потоково, вернуть число записанных байт"""
		...
