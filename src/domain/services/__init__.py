from .host_policy import HostAllowList, require_media_extension
from .headers import CORS_HEADERS, cache_headers, cors_headers, relay_headers, resolve_content_type

__all__ = [
	"HostAllowList",
	"require_media_extension",
	"CORS_HEADERS",
	"cache_headers",
	"cors_headers",
	"relay_headers",
	"resolve_content_type",
]
