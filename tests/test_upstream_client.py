"""
Tests for the httpx-backed upstream client and its streamed responses.
"""

import httpx
import pytest

from core.config import RelaySettings
from domain.errors import BufferFailure, UpstreamFailure
from infrastructure.http_clients.upstream_client import HttpUpstreamClient, HttpUpstreamStream

from fakes import CLIP_URL, BrokenStream


def make_client(handler, **overrides):
    return HttpUpstreamClient(RelaySettings(**overrides), transport=httpx.MockTransport(handler))


class TestUpstreamStream:

    @pytest.mark.asyncio
    async def test_stream_exposes_only_head_chunks_and_close(self, storage, clip_bytes):
        storage.put(CLIP_URL, clip_bytes)
        client = HttpUpstreamClient(RelaySettings(chunk_size=400), transport=storage.transport())

        stream = await client.open(CLIP_URL, "bytes=0-899")
        chunks = [chunk async for chunk in stream.iter_bytes()]
        await stream.aclose()
        await stream.aclose()
        await client.aclose()

        assert isinstance(stream, HttpUpstreamStream)
        assert not hasattr(stream, "read")
        assert stream.head.status_code == 206
        assert stream.head.content_range == "bytes 0-899/1000"
        assert b"".join(chunks) == clip_bytes[:900]
        assert [len(chunk) for chunk in chunks] == [400, 400, 100]

    @pytest.mark.asyncio
    async def test_request_asks_for_identity_encoding(self, storage, clip_bytes):
        storage.put(CLIP_URL, clip_bytes)
        client = HttpUpstreamClient(RelaySettings(), transport=storage.transport())

        stream = await client.open(CLIP_URL)
        await stream.aclose()
        await client.aclose()

        assert storage.requests[0].headers["accept-encoding"] == "identity"
        assert "range" not in storage.requests[0].headers


class TestUpstreamClientErrors:

    @pytest.mark.asyncio
    async def test_non_success_status_is_upstream_failure(self):
        client = make_client(lambda request: httpx.Response(403, text="denied"))

        with pytest.raises(UpstreamFailure) as exc_info:
            await client.open(CLIP_URL)
        await client.aclose()

        assert exc_info.value.upstream_status == 403
        assert exc_info.value.message == "Upstream fetch failed: 403"

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(refuse)

        with pytest.raises(UpstreamFailure) as exc_info:
            await client.fetch_buffered(CLIP_URL)
        await client.aclose()

        assert exc_info.value.upstream_status is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_broken_body_is_buffer_failure(self):
        client = make_client(lambda request: httpx.Response(200, stream=BrokenStream()))

        with pytest.raises(BufferFailure) as exc_info:
            await client.fetch_buffered(CLIP_URL)
        await client.aclose()

        assert exc_info.value.message == "Error: connection reset"

    @pytest.mark.asyncio
    async def test_download_to_writes_file(self, storage, clip_bytes, tmp_path):
        storage.put(CLIP_URL, clip_bytes)
        client = HttpUpstreamClient(RelaySettings(chunk_size=128), transport=storage.transport())
        target = tmp_path / "input.mov"

        written = await client.download_to(CLIP_URL, target)
        await client.aclose()

        assert written == len(clip_bytes)
        assert target.read_bytes() == clip_bytes
