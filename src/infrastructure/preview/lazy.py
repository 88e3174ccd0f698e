import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class LazyResource(Generic[T]):
	"""Ленивая загрузка один раз: первый get() вызывает loader, дальше результат переиспользуется.

	Неудачная загрузка не кешируется: get() вернет None, следующий вызов попробует снова.
	"""

	def __init__(self, loader: Callable[[], Awaitable[T]], name: str = "resource"):
		self._logger = logging.getLogger("relay.preview")
		self._loader = loader
		self._name = name
		self._value: Optional[T] = None
		self._loaded = False
		self._lock = asyncio.Lock()

	@property
	def loaded(self) -> bool:
		return self._loaded

	async def get(self) -> Optional[T]:
		if self._loaded:
			return self._value

		async with self._lock:
			# другой запрос мог успеть загрузить, пока мы ждали lock
			if self._loaded:
				return self._value
			try:
				value = await self._loader()
			except Exception as e:
				self._logger.error("Не удалось загрузить %s: %s", self._name, e)
				return None
			self._value = value
			self._loaded = True
			self._logger.info("%s загружен", self._name)
			return value

	async def reset(self) -> Optional[T]:
		"""Сбросить загруженное значение и вернуть его для освобождения"""
		async with self._lock:
			value = self._value
			self._value = None
			self._loaded = False
			return value
