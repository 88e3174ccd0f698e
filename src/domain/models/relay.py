from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class RelayMode(str, Enum):
	passthrough = "passthrough"
	media = "media"
	transcode = "transcode"


class RelayRequest(BaseModel):
	upstream_url: str
	range_header: Optional[str] = None
	mode: RelayMode = RelayMode.media


class UpstreamHead(BaseModel):
	status_code: int
	content_type: Optional[str] = None
	content_length: Optional[str] = None
	content_range: Optional[str] = None
	accept_ranges: Optional[str] = None
