import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from core.config import Settings, settings
from domain.errors import InvalidMode, MissingParameter
from domain.models import RelayMode, RelayRequest
from domain.ports.preview_engine import PreviewEngine
from domain.ports.transcoder import Transcoder
from domain.ports.upstream import UpstreamClient
from domain.services import HostAllowList, cors_headers
from infrastructure.http_clients.upstream_client import HttpUpstreamClient
from infrastructure.preview import PreviewConverter
from infrastructure.transcoding import FfmpegTranscoder
from presentation.streaming import RelayStreamingResponse, run_until_disconnected
from use_cases import PreviewMediaUseCase, RelayMediaUseCase, RelayResult, TranscodeMediaUseCase

router = APIRouter()


# --- DI Container ---
class Container:
	def __init__(
		self,
		app_settings: Settings = settings,
		upstream_client: Optional[UpstreamClient] = None,
		transcoder: Optional[Transcoder] = None,
		preview_engine_factory: Optional[Callable[[], PreviewEngine]] = None,
	):
		logger = logging.getLogger("relay")

		self.settings = app_settings
		self.allow_list = HostAllowList(
			app_settings.relay.allowed_hosts,
			app_settings.relay.allowed_host_suffixes,
		)
		self.upstream_client = upstream_client or HttpUpstreamClient(settings=app_settings.relay)
		self.transcoder = transcoder or FfmpegTranscoder(settings=app_settings.transcode)
		self.preview_converter = PreviewConverter(
			settings=app_settings.preview,
			upstream=self.upstream_client,
			engine_factory=preview_engine_factory,
		)

		self.relay_uc = RelayMediaUseCase(
			upstream=self.upstream_client,
			allow_list=self.allow_list,
			settings=app_settings.relay,
			logger=logger,
		)
		self.transcode_uc = TranscodeMediaUseCase(
			upstream=self.upstream_client,
			transcoder=self.transcoder,
			allow_list=self.allow_list,
			relay_settings=app_settings.relay,
			transcode_settings=app_settings.transcode,
		)
		self.preview_uc = PreviewMediaUseCase(
			converter=self.preview_converter,
			allow_list=self.allow_list,
			settings=app_settings.relay,
		)

	async def aclose(self) -> None:
		await self.preview_converter.aclose()
		await self.upstream_client.aclose()


container = Container()


def get_container() -> Container:
	return container


def parse_mode(value: str) -> RelayMode:
	try:
		return RelayMode(value.strip().lower())
	except ValueError:
		raise InvalidMode(value)


def build_relay_request(url: Optional[str], mode: RelayMode, request: Request) -> RelayRequest:
	if not url or not url.strip():
		raise MissingParameter("url")
	return RelayRequest(
		upstream_url=url,
		range_header=request.headers.get("range"),
		mode=mode,
	)


def to_response(result: RelayResult) -> Response:
	if result.streaming:
		return RelayStreamingResponse(
			result.body,
			cleanup=result.cleanup,
			status_code=result.status_code,
			headers=result.headers,
		)
	return Response(content=result.body, status_code=result.status_code, headers=result.headers)


async def dispatch(c: Container, relay_request: RelayRequest, request: Request) -> Response:
	if relay_request.mode is RelayMode.transcode:
		# ремукс долгий: если клиент ушел, ffmpeg останавливаем сразу
		result = await run_until_disconnected(
			request,
			lambda: c.transcode_uc.execute(relay_request),
			c.settings.relay.disconnect_poll_interval,
		)
	else:
		result = await c.relay_uc.execute(relay_request)
	return to_response(result)


async def preflight() -> Response:
	"""CORS preflight: без валидации и без запроса к upstream"""
	return Response(status_code=204, headers=cors_headers())


for path in ("/relay", "/fetch-image", "/convert-video", "/remux-video", "/preview"):
	router.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)


@router.get("/relay")
async def relay_media(
	request: Request,
	url: Optional[str] = Query(None, description="Percent-encoded upstream URL"),
	mode: Optional[str] = Query(None, description="passthrough | media | transcode"),
	c: Container = Depends(get_container),
):
	relay_mode = parse_mode(mode or c.settings.relay.default_mode)
	return await dispatch(c, build_relay_request(url, relay_mode, request), request)


@router.get("/fetch-image")
async def fetch_image(
	request: Request,
	url: Optional[str] = Query(None),
	c: Container = Depends(get_container),
):
	return await dispatch(c, build_relay_request(url, RelayMode.passthrough, request), request)


@router.get("/convert-video")
async def convert_video(
	request: Request,
	url: Optional[str] = Query(None),
	c: Container = Depends(get_container),
):
	return await dispatch(c, build_relay_request(url, RelayMode.media, request), request)


@router.get("/remux-video")
async def remux_video(
	request: Request,
	url: Optional[str] = Query(None),
	c: Container = Depends(get_container),
):
	return await dispatch(c, build_relay_request(url, RelayMode.transcode, request), request)


@router.get("/preview")
async def preview_video(
	request: Request,
	url: Optional[str] = Query(None),
	c: Container = Depends(get_container),
):
	if not url or not url.strip():
		raise MissingParameter("url")
	result = await run_until_disconnected(
		request,
		lambda: c.preview_uc.execute(url),
		c.settings.relay.disconnect_poll_interval,
	)
	return to_response(result)
