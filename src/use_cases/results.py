from __future__ import annotations
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Union


@dataclass
class RelayResult:
	status_code: int
	headers: Dict[str, str]
	body: Union[bytes, AsyncIterator[bytes]]
	# освобождает ресурсы, если тело так и не было прочитано
	cleanup: Optional[Callable[[], Awaitable[object]]] = None

	@property
	def streaming(self) -> bool:
		return not isinstance(self.body, (bytes, bytearray))
