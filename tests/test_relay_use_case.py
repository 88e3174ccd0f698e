"""
Tests for RelayMediaUseCase streaming, fallback and cancellation behaviour.
"""

import httpx
import pytest

from core.config import RelaySettings
from domain.errors import StreamingFailure, UpstreamFailure
from domain.models import RelayMode, RelayRequest
from domain.services import HostAllowList
from use_cases.relay_media import RelayMediaUseCase

from fakes import CLIP_URL, ScriptedStream, ScriptedUpstream


def make_use_case(upstream, **overrides):
    settings = RelaySettings(**overrides)
    allow_list = HostAllowList(settings.allowed_hosts, settings.allowed_host_suffixes)
    return RelayMediaUseCase(upstream=upstream, allow_list=allow_list, settings=settings)


async def collect(body):
    return b"".join([chunk async for chunk in body])


class TestStreaming:

    @pytest.mark.asyncio
    async def test_streams_chunks_and_closes_upstream(self):
        stream = ScriptedStream([b"abc", b"def"])
        use_case = make_use_case(ScriptedUpstream(stream=stream))

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))

        assert result.streaming
        assert result.status_code == 200
        assert result.headers["Content-Type"] == "video/mp4"
        assert not stream.closed
        assert await collect(result.body) == b"abcdef"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_empty_body(self):
        stream = ScriptedStream([])
        use_case = make_use_case(ScriptedUpstream(stream=stream))

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))

        assert await collect(result.body) == b""
        assert stream.closed

    @pytest.mark.asyncio
    async def test_falls_back_to_buffer_when_stream_cannot_start(self):
        stream = ScriptedStream([httpx.StreamConsumed()])
        upstream = ScriptedUpstream(stream=stream, buffered=b"whole-object")
        use_case = make_use_case(upstream)

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))

        assert not result.streaming
        assert result.body == b"whole-object"
        assert upstream.buffered_calls == 1
        assert stream.closed

    @pytest.mark.asyncio
    async def test_mid_stream_failure_is_terminal(self):
        stream = ScriptedStream([b"first", httpx.ReadError("connection reset")])
        use_case = make_use_case(ScriptedUpstream(stream=stream))

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))
        received = []
        with pytest.raises(StreamingFailure) as exc_info:
            async for chunk in result.body:
                received.append(chunk)

        assert received == [b"first"]
        assert "connection reset" in exc_info.value.message
        assert stream.closed

    @pytest.mark.asyncio
    async def test_client_disconnect_releases_upstream(self):
        stream = ScriptedStream([b"one", b"two", b"three"])
        use_case = make_use_case(ScriptedUpstream(stream=stream))

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))
        body = result.body
        assert await body.__anext__() == b"one"
        await body.aclose()

        assert stream.closed

    @pytest.mark.asyncio
    async def test_cleanup_closes_stream_never_iterated(self):
        stream = ScriptedStream([b"data"])
        use_case = make_use_case(ScriptedUpstream(stream=stream))

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL))
        await result.cleanup()

        assert stream.closed


class TestBuffered:

    @pytest.mark.asyncio
    async def test_stream_bodies_disabled_uses_buffer(self):
        upstream = ScriptedUpstream(stream=None, buffered=b"payload")
        use_case = make_use_case(upstream, stream_bodies=False)

        result = await use_case.execute(RelayRequest(upstream_url=CLIP_URL, mode=RelayMode.passthrough))

        assert result.body == b"payload"
        assert result.headers["Content-Type"] == "video/quicktime"
        assert result.headers["Accept-Ranges"] == "bytes"


class TestUpstreamErrors:

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(self):
        class FailingUpstream(ScriptedUpstream):
            async def open(self, url, range_header=None):
                raise UpstreamFailure(404)

        use_case = make_use_case(FailingUpstream())
        with pytest.raises(UpstreamFailure) as exc_info:
            await use_case.execute(RelayRequest(upstream_url=CLIP_URL))

        assert exc_info.value.status_code == 502
        assert exc_info.value.upstream_status == 404
        assert exc_info.value.message == "Upstream fetch failed: 404"
