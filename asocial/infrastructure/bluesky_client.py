# asocial/infrastructure/bluesky_client.py
import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import structlog

from .platform_errors import MalformedResponse, NotAuthenticated, error_for_status, json_object

logger = structlog.get_logger(__name__)

BLUESKY_API_URL = os.getenv("BLUESKY_API_URL", "https://bsky.social")
MAX_IMAGES = 4


@dataclass(frozen=True)
class BlueskySession:
    access_jwt: str
    did: str


def record_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BlueskyClient:
    """
    Session adapter for an AT Protocol PDS. ``authenticate`` trades the
    identifier and app password for an access token and DID, which are kept
    for the lifetime of this instance; ``publish`` refuses to run without them.
    """

    name = "bluesky"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or BLUESKY_API_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.session: Optional[BlueskySession] = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def authenticate(self, identifier: str, password: str) -> BlueskySession:
        if self.session is not None:
            return self.session

        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/xrpc/com.atproto.server.createSession",
                json={"identifier": identifier, "password": password},
            )

        if not response.is_success:
            raise error_for_status(self.name, "login", response.status_code, response.text)

        body = json_object(self.name, "login", response)
        if not body.get("accessJwt") or not body.get("did"):
            raise MalformedResponse(
                f"bluesky login response missing accessJwt/did: {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )

        self.session = BlueskySession(access_jwt=body["accessJwt"], did=body["did"])
        logger.debug("bluesky_session_created", did=self.session.did)
        return self.session

    async def upload_blob(self, client: httpx.AsyncClient, media_path: str) -> dict:
        path = Path(media_path)
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        response = await client.post(
            f"{self.base_url}/xrpc/com.atproto.repo.uploadBlob",
            content=path.read_bytes(),
            headers={"Content-Type": mime},
        )
        if not response.is_success:
            raise error_for_status(self.name, "blob upload", response.status_code, response.text)
        blob = json_object(self.name, "blob upload", response).get("blob")
        if not isinstance(blob, dict):
            raise MalformedResponse(
                f"bluesky blob upload returned no blob: {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )
        return blob

    async def publish(self, content: str, media_paths: Sequence[str] = ()) -> str:
        """Create an app.bsky.feed.post record and return its at:// URI."""
        if self.session is None:
            raise NotAuthenticated("bluesky publish attempted without a session; call authenticate first")

        record: dict = {
            "$type": "app.bsky.feed.post",
            "text": content,
            "createdAt": record_timestamp(),
        }

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.session.access_jwt}"},
        ) as client:
            if media_paths:
                if len(media_paths) > MAX_IMAGES:
                    logger.warning("bluesky_media_truncated", given=len(media_paths), kept=MAX_IMAGES)
                images: List[dict] = []
                for media_path in media_paths[:MAX_IMAGES]:
                    images.append({"alt": "", "image": await self.upload_blob(client, media_path)})
                record["embed"] = {"$type": "app.bsky.embed.images", "images": images}

            response = await client.post(
                f"{self.base_url}/xrpc/com.atproto.repo.createRecord",
                json={"repo": self.session.did, "collection": "app.bsky.feed.post", "record": record},
            )

        if not response.is_success:
            raise error_for_status(self.name, "post", response.status_code, response.text)

        uri = json_object(self.name, "post", response).get("uri")
        if not uri:
            raise MalformedResponse(
                f"bluesky accepted the record but returned no uri: {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )
        return str(uri)
