from .ffmpeg_transcoder import FfmpegTranscoder
from .mp4_atoms import is_fast_start, iter_top_level_atoms

__all__ = [
	"FfmpegTranscoder",
	"is_fast_start",
	"iter_top_level_atoms",
]
