from __future__ import annotations
from typing import Iterable, Optional


class RelayError(Exception):
	"""Базовая ошибка релея: превращается в text/plain ответ с status_code"""

	status_code: int = 500

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class MissingParameter(RelayError):
	status_code = 400

	def __init__(self, name: str = "url") -> None:
		super().__init__(f"Missing {name} parameter")


class InvalidURL(RelayError):
	status_code = 400

	def __init__(self) -> None:
		super().__init__("Invalid url")


class InvalidMode(RelayError):
	status_code = 400

	def __init__(self, mode: str) -> None:
		super().__init__(f"Unknown relay mode: {mode}")


class HostNotAllowed(RelayError):
	status_code = 403

	def __init__(self) -> None:
		super().__init__("Host not allowed")


class UnsupportedMedia(RelayError):
	status_code = 400

	def __init__(self, extensions: Iterable[str]) -> None:
		self.extensions = list(extensions)
		names = "/".join(self.extensions)
		super().__init__(f"This endpoint is for {names} files only")


class UpstreamFailure(RelayError):
	status_code = 502

	def __init__(self, upstream_status: Optional[int] = None, reason: Optional[str] = None) -> None:
		self.upstream_status = upstream_status
		detail = upstream_status if upstream_status is not None else (reason or "unreachable")
		super().__init__(f"Upstream fetch failed: {detail}")


class StreamingFailure(RelayError):
	"""Обрыв передачи после отправки заголовков: статус изменить уже нельзя"""

	status_code = 500

	def __init__(self, reason: str) -> None:
		super().__init__(f"Streaming error: {reason}")


class BufferFailure(RelayError):
	status_code = 500

	def __init__(self, reason: str) -> None:
		super().__init__(f"Error: {reason}")


class TranscodeUnavailable(RelayError):
	status_code = 500

	def __init__(self) -> None:
		super().__init__("Transcoding is unavailable: the media tool could not be started")


class TranscodeFailure(RelayError):
	status_code = 500

	def __init__(self, diagnostics: str) -> None:
		self.diagnostics = diagnostics
		super().__init__(f"FFmpeg failed: {diagnostics}")


class TranscodeTimeout(TranscodeFailure):
	def __init__(self, timeout: float) -> None:
		super().__init__(f"timed out after {timeout:g}s")


class PreviewUnavailable(RelayError):
	status_code = 503

	def __init__(self) -> None:
		super().__init__("Preview conversion unavailable")


class ClientDisconnected(RelayError):
	"""Клиент ушел до ответа; долгая операция отменена, отвечать уже некому"""

	# nginx-код "client closed request"
	status_code = 499

	def __init__(self) -> None:
		super().__init__("Client closed request")
