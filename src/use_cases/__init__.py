from .results import RelayResult
from .relay_media import RelayMediaUseCase
from .transcode_media import TranscodeMediaUseCase
from .preview_media import PreviewMediaUseCase

__all__ = [
	"RelayResult",
	"RelayMediaUseCase",
	"TranscodeMediaUseCase",
	"PreviewMediaUseCase",
]
