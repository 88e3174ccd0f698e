from .upstream import UpstreamClient, UpstreamStream
from .transcoder import Transcoder
from .preview_engine import PreviewEngine

__all__ = [
	"UpstreamClient",
	"UpstreamStream",
	"Transcoder",
	"PreviewEngine",
]
