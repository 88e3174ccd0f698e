from .lazy import LazyResource
from .ffmpeg_engine import FfmpegPreviewEngine, PreviewEngineError
from .converter import PreviewConverter

__all__ = [
	"LazyResource",
	"FfmpegPreviewEngine",
	"PreviewEngineError",
	"PreviewConverter",
]
