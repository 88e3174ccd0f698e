from .relay import RelayMode, RelayRequest, UpstreamHead

__all__ = [
	"RelayMode",
	"RelayRequest",
	"UpstreamHead",
]
