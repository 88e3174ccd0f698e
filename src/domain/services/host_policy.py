from __future__ import annotations
from typing import Iterable
from urllib.parse import SplitResult, urlsplit

from domain.errors import HostNotAllowed, InvalidURL, UnsupportedMedia


ALLOWED_SCHEMES = {"http", "https"}


def _normalize_suffix(suffix: str) -> str:
	suffix = suffix.strip().lower()
	return suffix if suffix.startswith(".") else f".{suffix}"


class HostAllowList:
	"""Разрешенные upstream-хосты: точные имена и доменные суффиксы.

	Сравнивается только hostname после разбора URL, поэтому userinfo, путь
	и query не помогут выдать чужой хост за разрешенный.
	"""

	def __init__(self, hosts: Iterable[str], suffixes: Iterable[str] = ()) -> None:
		self._hosts = frozenset(h.strip().lower() for h in hosts if h.strip())
		self._suffixes = tuple(_normalize_suffix(s) for s in suffixes if s.strip())

	def is_allowed(self, hostname: str) -> bool:
		hostname = hostname.lower().rstrip(".")
		if hostname in self._hosts:
			return True
		return any(hostname.endswith(suffix) for suffix in self._suffixes)

	def validate(self, url: str) -> SplitResult:
		"""Разобрать url и проверить хост.

		InvalidURL, если это не абсолютный http(s) URL с hostname;
		HostNotAllowed, если хоста нет в списке.
		"""
		try:
			parsed = urlsplit(url.strip())
			hostname = parsed.hostname
			parsed.port  # ValueError on a malformed port
		except ValueError:
			raise InvalidURL()

		if parsed.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
			raise InvalidURL()

		if not self.is_allowed(hostname):
			raise HostNotAllowed()
		return parsed


def path_extension(parsed: SplitResult) -> str:
	last = parsed.path.rsplit("/", 1)[-1].lower()
	if "." not in last:
		return ""
	return "." + last.rsplit(".", 1)[-1]


def require_media_extension(parsed: SplitResult, extensions: Iterable[str]) -> str:
	"""Вернуть расширение пути или UnsupportedMedia со списком допустимых"""
	accepted = [e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions]
	ext = path_extension(parsed)
	if ext not in accepted:
		raise UnsupportedMedia(e.lstrip(".").upper() for e in accepted)
	return ext
