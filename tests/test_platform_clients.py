"""Adapter tests against scripted platform APIs (httpx.MockTransport)."""
import json
from datetime import datetime, timezone

import httpx
import pytest

from asocial.infrastructure.bluesky_client import BlueskyClient, BlueskySession, record_timestamp
from asocial.infrastructure.mastodon_client import MastodonClient
from asocial.infrastructure.platform_errors import ApiError, AuthError, InvalidCredentials, MalformedResponse, NotAuthenticated
from asocial.infrastructure.secrets import decrypt_secret
from asocial.schemas.platform_schema import BlueskyCredentials, MastodonCredentials


class Recorder:
    """Scripted handler: routes by path and keeps every request it saw."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def paths(self):
        return [r.url.path for r in self.requests]


class TestMastodonClient:
    @pytest.mark.asyncio
    async def test_publish_sends_bearer_token_and_status(self):
        recorder = Recorder({
            "/api/v1/statuses": lambda r: httpx.Response(200, json={"id": "109", "url": "https://mastodon.example/@u1/109"}),
        })
        client = MastodonClient("https://mastodon.example/", "tok-123", transport=recorder.transport())

        receipt = await client.publish("Hello world")

        assert receipt == "https://mastodon.example/@u1/109"
        [request] = recorder.requests
        assert request.method == "POST"
        assert str(request.url) == "https://mastodon.example/api/v1/statuses"
        assert request.headers["Authorization"] == "Bearer tok-123"
        assert json.loads(request.content) == {"status": "Hello world"}

    @pytest.mark.asyncio
    async def test_falls_back_to_status_id_without_url(self):
        recorder = Recorder({"/api/v1/statuses": lambda r: httpx.Response(200, json={"id": "42"})})
        client = MastodonClient("https://mastodon.example", "tok", transport=recorder.transport())

        assert await client.publish("hi") == "42"

    @pytest.mark.asyncio
    async def test_media_is_uploaded_before_the_status(self, tmp_path):
        image = tmp_path / "cat.png"
        image.write_bytes(b"\x89PNG fake")
        recorder = Recorder({
            "/api/v2/media": lambda r: httpx.Response(202, json={"id": "m1"}),
            "/api/v1/statuses": lambda r: httpx.Response(200, json={"id": "7", "url": "https://mastodon.example/@u1/7"}),
        })
        client = MastodonClient("https://mastodon.example", "tok", transport=recorder.transport())

        await client.publish("with picture", [str(image)])

        assert recorder.paths() == ["/api/v2/media", "/api/v1/statuses"]
        upload, status = recorder.requests
        assert upload.headers["Authorization"] == "Bearer tok"
        assert b"cat.png" in upload.content
        assert json.loads(status.content) == {"status": "with picture", "media_ids": ["m1"]}

    @pytest.mark.asyncio
    async def test_unauthorized_is_an_auth_error(self):
        recorder = Recorder({"/api/v1/statuses": lambda r: httpx.Response(401, text='{"error":"The access token is invalid"}')})
        client = MastodonClient("https://mastodon.example", "bad", transport=recorder.transport())

        with pytest.raises(AuthError) as excinfo:
            await client.publish("hi")

        assert excinfo.value.status_code == 401
        assert excinfo.value.retryable is False
        assert "The access token is invalid" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_server_error_is_retryable_api_error(self):
        recorder = Recorder({"/api/v1/statuses": lambda r: httpx.Response(503, text="Service Unavailable")})
        client = MastodonClient("https://mastodon.example", "tok", transport=recorder.transport())

        with pytest.raises(ApiError) as excinfo:
            await client.publish("hi")

        assert str(excinfo.value) == "mastodon post failed (503): Service Unavailable"
        assert excinfo.value.retryable is True

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_malformed(self):
        recorder = Recorder({"/api/v1/statuses": lambda r: httpx.Response(200, text="<html>ok</html>")})
        client = MastodonClient("https://mastodon.example", "tok", transport=recorder.transport())

        with pytest.raises(MalformedResponse) as excinfo:
            await client.publish("hi")

        assert excinfo.value.status_code == 200
        assert excinfo.value.detail == "<html>ok</html>"
        assert excinfo.value.retryable is False

    @pytest.mark.asyncio
    async def test_json_list_body_is_malformed(self):
        recorder = Recorder({"/api/v1/statuses": lambda r: httpx.Response(200, json=["not", "an", "object"])})
        client = MastodonClient("https://mastodon.example", "tok", transport=recorder.transport())

        with pytest.raises(MalformedResponse, match="expected an object"):
            await client.publish("hi")


def _bluesky_routes(**overrides):
    routes = {
        "/xrpc/com.atproto.server.createSession": lambda r: httpx.Response(
            200, json={"accessJwt": "jwt-abc", "refreshJwt": "r", "did": "did:plc:u1", "handle": "u1.bsky.social"}
        ),
        "/xrpc/com.atproto.repo.createRecord": lambda r: httpx.Response(
            200, json={"uri": "at://did:plc:u1/app.bsky.feed.post/3k", "cid": "bafy"}
        ),
        "/xrpc/com.atproto.repo.uploadBlob": lambda r: httpx.Response(
            200, json={"blob": {"$type": "blob", "ref": {"$link": "bafkrei"}, "mimeType": "image/png", "size": 9}}
        ),
    }
    routes.update(overrides)
    return Recorder(routes)


class TestBlueskyClient:
    @pytest.mark.asyncio
    async def test_authenticate_keeps_session(self):
        recorder = _bluesky_routes()
        client = BlueskyClient("https://pds.example", transport=recorder.transport())

        session = await client.authenticate("u1.bsky.social", "app-pass")

        assert session == BlueskySession(access_jwt="jwt-abc", did="did:plc:u1")
        assert client.session == session
        assert json.loads(recorder.requests[0].content) == {"identifier": "u1.bsky.social", "password": "app-pass"}

    @pytest.mark.asyncio
    async def test_second_authenticate_reuses_session(self):
        recorder = _bluesky_routes()
        client = BlueskyClient("https://pds.example", transport=recorder.transport())

        first = await client.authenticate("u1.bsky.social", "app-pass")
        second = await client.authenticate("u1.bsky.social", "app-pass")

        assert first is second
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_login_leaves_no_session(self):
        recorder = _bluesky_routes(**{
            "/xrpc/com.atproto.server.createSession": lambda r: httpx.Response(
                401, json={"error": "AuthenticationRequired", "message": "Invalid identifier or password"}
            ),
        })
        client = BlueskyClient("https://pds.example", transport=recorder.transport())

        with pytest.raises(AuthError):
            await client.authenticate("u1.bsky.social", "wrong")

        assert client.session is None

    @pytest.mark.asyncio
    async def test_publish_without_session_makes_no_request(self):
        recorder = _bluesky_routes()
        client = BlueskyClient("https://pds.example", transport=recorder.transport())

        with pytest.raises(NotAuthenticated):
            await client.publish("Hello world")

        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_publish_creates_feed_post_record(self):
        recorder = _bluesky_routes()
        client = BlueskyClient("https://pds.example", transport=recorder.transport())
        await client.authenticate("u1.bsky.social", "app-pass")

        uri = await client.publish("Hello world")

        assert uri == "at://did:plc:u1/app.bsky.feed.post/3k"
        request = recorder.requests[-1]
        assert request.url.path == "/xrpc/com.atproto.repo.createRecord"
        assert request.headers["Authorization"] == "Bearer jwt-abc"
        body = json.loads(request.content)
        assert body["repo"] == "did:plc:u1"
        assert body["collection"] == "app.bsky.feed.post"
        record = body["record"]
        assert record["$type"] == "app.bsky.feed.post"
        assert record["text"] == "Hello world"
        assert record["createdAt"].endswith("Z")
        assert "embed" not in record

    @pytest.mark.asyncio
    async def test_publish_embeds_uploaded_images(self, tmp_path):
        image = tmp_path / "cat.png"
        image.write_bytes(b"\x89PNG fake")
        recorder = _bluesky_routes()
        client = BlueskyClient("https://pds.example", transport=recorder.transport())
        await client.authenticate("u1.bsky.social", "app-pass")

        await client.publish("with picture", [str(image)])

        assert recorder.paths()[1:] == ["/xrpc/com.atproto.repo.uploadBlob", "/xrpc/com.atproto.repo.createRecord"]
        upload = recorder.requests[1]
        assert upload.headers["Content-Type"] == "image/png"
        assert upload.content == b"\x89PNG fake"
        embed = json.loads(recorder.requests[2].content)["record"]["embed"]
        assert embed["$type"] == "app.bsky.embed.images"
        assert embed["images"][0]["image"]["ref"] == {"$link": "bafkrei"}

    @pytest.mark.asyncio
    async def test_server_error_on_create_record(self):
        recorder = _bluesky_routes(**{
            "/xrpc/com.atproto.repo.createRecord": lambda r: httpx.Response(500, text="InternalServerError"),
        })
        client = BlueskyClient("https://pds.example", transport=recorder.transport())
        await client.authenticate("u1.bsky.social", "app-pass")

        with pytest.raises(ApiError) as excinfo:
            await client.publish("Hello world")

        assert excinfo.value.status_code == 500
        assert "InternalServerError" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_create_record_without_uri_is_malformed(self):
        recorder = _bluesky_routes(**{
            "/xrpc/com.atproto.repo.createRecord": lambda r: httpx.Response(200, json={"cid": "bafy"}),
        })
        client = BlueskyClient("https://pds.example", transport=recorder.transport())
        await client.authenticate("u1.bsky.social", "app-pass")

        with pytest.raises(MalformedResponse, match="no uri"):
            await client.publish("Hello world")

    @pytest.mark.asyncio
    async def test_login_with_garbled_body_leaves_no_session(self):
        recorder = _bluesky_routes(**{
            "/xrpc/com.atproto.server.createSession": lambda r: httpx.Response(200, text="not json"),
        })
        client = BlueskyClient("https://pds.example", transport=recorder.transport())

        with pytest.raises(MalformedResponse):
            await client.authenticate("u1.bsky.social", "app-pass")

        assert client.session is None

    def test_record_timestamp_is_utc_with_millis(self):
        stamp = record_timestamp(datetime(2026, 3, 1, 12, 0, 5, 123456, tzinfo=timezone.utc))
        assert stamp == "2026-03-01T12:00:05.123Z"


class TestCredentialBlobs:
    def test_secret_fields_are_encrypted_at_rest(self):
        blob = MastodonCredentials(token="tok-123", url="https://mastodon.example").to_blob()

        assert blob["url"] == "https://mastodon.example"
        assert blob["token"] != "tok-123"
        assert decrypt_secret(blob["token"]) == "tok-123"

    def test_blob_reads_back(self):
        blob = BlueskyCredentials(identifier="u1.bsky.social", password="app-pass").to_blob()

        creds = BlueskyCredentials.from_blob(blob)

        assert creds.identifier == "u1.bsky.social"
        assert creds.password == "app-pass"

    def test_missing_field_is_invalid(self):
        with pytest.raises(InvalidCredentials) as excinfo:
            BlueskyCredentials.from_blob({"identifier": "u1.bsky.social"})
        assert "password" in str(excinfo.value)

    def test_empty_blob_is_invalid(self):
        with pytest.raises(InvalidCredentials):
            MastodonCredentials.from_blob({})

    def test_undecryptable_secret_is_invalid(self):
        with pytest.raises(InvalidCredentials) as excinfo:
            MastodonCredentials.from_blob({"token": "not-a-fernet-token"})
        assert "could not be decrypted" in str(excinfo.value)
