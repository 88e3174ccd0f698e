"""
Tests for releasing staging files, upstream connections and ffmpeg runs when the
client goes away before or during the response.
"""

import asyncio
from urllib.parse import urlencode

import pytest

from presentation.routers.media_relay import Container

from fakes import CLIP_URL, HangingTranscoder, ScriptedStream, ScriptedUpstream


def http_scope(path, params):
    # uvicorn announces ASGI 2.4; Starlette then maps OSError from send to ClientDisconnect
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.4"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": urlencode(params).encode(),
        "headers": [(b"host", b"relay")],
        "client": ("127.0.0.1", 50000),
        "server": ("relay", 80),
    }


def receive_request(disconnect_after=None):
    """receive(): the GET request, then http.disconnect once ``disconnect_after`` is set."""
    pending = [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        if pending:
            return pending.pop()
        if disconnect_after is None:
            await asyncio.Event().wait()
        await disconnect_after.wait()
        return {"type": "http.disconnect"}

    return receive


def send_failing_after(allowed):
    """send() that accepts ``allowed`` messages and then fails like a closed socket."""
    sent = []

    async def send(message):
        if len(sent) >= allowed:
            raise OSError("client gone")
        sent.append(message)

    send.sent = sent
    return send


def scripted_container(make_settings, stream):
    return Container(app_settings=make_settings(), upstream_client=ScriptedUpstream(stream=stream))


class TestDisconnectBeforeHeaders:

    @pytest.mark.asyncio
    async def test_remux_staging_is_released(self, storage, make_container, make_app, clip_bytes, staging_dir):
        storage.put(CLIP_URL, clip_bytes)
        container = make_container()

        await make_app(container)(http_scope("/remux-video", {"url": CLIP_URL}), receive_request(), send_failing_after(0))

        assert list(staging_dir.iterdir()) == []
        await container.aclose()

    @pytest.mark.asyncio
    async def test_relay_transcode_mode_staging_is_released(
        self, storage, make_container, make_app, clip_bytes, staging_dir
    ):
        storage.put(CLIP_URL, clip_bytes)
        container = make_container()
        scope = http_scope("/relay", {"url": CLIP_URL, "mode": "transcode"})

        await make_app(container)(scope, receive_request(), send_failing_after(0))

        assert list(staging_dir.iterdir()) == []
        await container.aclose()

    @pytest.mark.asyncio
    async def test_relay_upstream_is_closed(self, make_settings, make_app):
        stream = ScriptedStream([b"abc", b"def"])

        await make_app(scripted_container(make_settings, stream))(
            http_scope("/relay", {"url": CLIP_URL}), receive_request(), send_failing_after(0)
        )

        assert stream.closed


class TestDisconnectMidStream:

    @pytest.mark.asyncio
    async def test_relay_upstream_is_closed_after_partial_body(self, make_settings, make_app):
        stream = ScriptedStream([b"abc", b"def", b"ghi"])
        send = send_failing_after(2)

        await make_app(scripted_container(make_settings, stream))(
            http_scope("/relay", {"url": CLIP_URL}), receive_request(), send
        )

        assert send.sent[0]["type"] == "http.response.start"
        assert send.sent[1]["body"] == b"abc"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_remux_staging_is_released_after_partial_body(
        self, storage, make_container, make_app, clip_bytes, staging_dir
    ):
        storage.put(CLIP_URL, clip_bytes)
        container = make_container(chunk_size=100)

        await make_app(container)(http_scope("/remux-video", {"url": CLIP_URL}), receive_request(), send_failing_after(3))

        assert list(staging_dir.iterdir()) == []
        await container.aclose()


class TestDisconnectDuringRemux:

    @pytest.mark.asyncio
    async def test_transcoder_is_cancelled_and_staging_released(
        self, storage, make_container, make_app, clip_bytes, staging_dir
    ):
        storage.put(CLIP_URL, clip_bytes)
        transcoder = HangingTranscoder()
        container = make_container(transcoder=transcoder, disconnect_poll_interval=0.01)
        send = send_failing_after(10)

        await asyncio.wait_for(
            make_app(container)(
                http_scope("/remux-video", {"url": CLIP_URL}),
                receive_request(disconnect_after=transcoder.started),
                send,
            ),
            timeout=5,
        )

        assert transcoder.cancelled
        assert send.sent[0]["status"] == 499
        assert list(staging_dir.iterdir()) == []
        await container.aclose()

    @pytest.mark.asyncio
    async def test_connected_client_gets_the_remux(self, storage, make_container, client_for, clip_bytes):
        storage.put(CLIP_URL, clip_bytes)

        async with client_for(make_container(disconnect_poll_interval=0.01)) as client:
            response = await client.get("/remux-video", params={"url": CLIP_URL})

        assert response.status_code == 200
        assert response.content == clip_bytes
