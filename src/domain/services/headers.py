from __future__ import annotations
from typing import Dict, Optional

from core.config import RelaySettings
from domain.models import RelayMode, UpstreamHead


CORS_HEADERS: Dict[str, str] = {
	"Access-Control-Allow-Origin": "*",
	"Access-Control-Allow-Methods": "GET, OPTIONS",
	"Access-Control-Allow-Headers": "Content-Type, Range",
}

GENERIC_CONTENT_TYPE = "application/octet-stream"

# Используется, когда upstream отдает пустой или generic Content-Type
VIDEO_TYPES: Dict[str, str] = {
	"mp4": "video/mp4",
	"m4v": "video/mp4",
	"webm": "video/webm",
	"ogg": "video/ogg",
	"ogv": "video/ogg",
	"mov": "video/quicktime",
	"qt": "video/quicktime",
	"avi": "video/x-msvideo",
	"wmv": "video/x-ms-wmv",
	"flv": "video/x-flv",
	"mkv": "video/x-matroska",
	"3gp": "video/3gpp",
	"3g2": "video/3gpp2",
	"ts": "video/mp2t",
	"mts": "video/mp2t",
	"m2ts": "video/mp2t",
}

IMAGE_TYPES: Dict[str, str] = {
	"jpg": "image/jpeg",
	"jpeg": "image/jpeg",
	"png": "image/png",
	"gif": "image/gif",
	"webp": "image/webp",
	"svg": "image/svg+xml",
	"bmp": "image/bmp",
	"ico": "image/x-icon",
}


def cors_headers() -> Dict[str, str]:
	return dict(CORS_HEADERS)


def cache_headers(settings: RelaySettings) -> Dict[str, str]:
	"""Заголовки кеширования для браузера и CDN"""
	return {
		"Cache-Control": f"public, max-age={settings.browser_max_age}",
		settings.cdn_cache_header: (
			f"public, s-maxage={settings.cdn_max_age}, "
			f"stale-while-revalidate={settings.cdn_stale_while_revalidate}"
		),
	}


def guess_type_from_path(path: str) -> Optional[str]:
	extension = path.lower().rsplit("/", 1)[-1]
	if "." not in extension:
		return None
	extension = extension.rsplit(".", 1)[-1]
	return VIDEO_TYPES.get(extension) or IMAGE_TYPES.get(extension)


def resolve_content_type(
	head: UpstreamHead,
	mode: RelayMode,
	path: str,
	forced_media_type: str,
) -> str:
	"""Выбрать Content-Type для клиента.

	Вне passthrough всегда отдается forced_media_type: плееры принимают H.264
	в QuickTime под видом MP4, но кодек не проверяется (best-effort).
	"""
	if mode is not RelayMode.passthrough:
		return forced_media_type

	content_type = head.content_type or GENERIC_CONTENT_TYPE
	if content_type.split(";", 1)[0].strip().lower() == GENERIC_CONTENT_TYPE or "/" not in content_type:
		return guess_type_from_path(path) or GENERIC_CONTENT_TYPE
	return content_type


def relay_headers(head: UpstreamHead, content_type: str, settings: RelaySettings) -> Dict[str, str]:
	headers: Dict[str, str] = {"Content-Type": content_type}
	if head.content_length:
		headers["Content-Length"] = head.content_length
	if head.content_range:
		headers["Content-Range"] = head.content_range
	headers["Accept-Ranges"] = head.accept_ranges or "bytes"
	headers.update(cache_headers(settings))
	headers.update(CORS_HEADERS)
	return headers
