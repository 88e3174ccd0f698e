from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi import FastAPI

from core.config import AppSettings, PreviewSettings, RelaySettings, Settings, TranscodeSettings
from infrastructure.http_clients.upstream_client import HttpUpstreamClient
from presentation.errors import register_error_handlers
from presentation.routers.media_relay import Container, get_container, router

from fakes import CopyTranscoder, FakeStorage


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def clip_bytes():
    return bytes(i % 251 for i in range(1000))


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(staging_dir):
    def factory(**relay_overrides) -> Settings:
        return Settings(
            relay=RelaySettings(**relay_overrides),
            transcode=TranscodeSettings(temp_dir=str(staging_dir)),
            preview=PreviewSettings(),
            app=AppSettings(),
        )
    return factory


@pytest.fixture
def make_container(storage, make_settings):
    def factory(transcoder=None, preview_engine_factory=None, **relay_overrides) -> Container:
        app_settings = make_settings(**relay_overrides)
        upstream = HttpUpstreamClient(app_settings.relay, transport=storage.transport())
        return Container(
            app_settings=app_settings,
            upstream_client=upstream,
            transcoder=transcoder or CopyTranscoder(),
            preview_engine_factory=preview_engine_factory,
        )
    return factory


@pytest.fixture
def make_app():
    def factory(container: Container) -> FastAPI:
        app = FastAPI()
        register_error_handlers(app)
        app.include_router(router)
        app.dependency_overrides[get_container] = lambda: container
        return app
    return factory


@pytest.fixture
def client_for(make_app):
    @asynccontextmanager
    async def factory(container: Container):
        transport = httpx.ASGITransport(app=make_app(container))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
        await container.aclose()
    return factory
