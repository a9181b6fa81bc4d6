# asocial/infrastructure/mastodon_client.py
import mimetypes
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import structlog

from .platform_errors import MalformedResponse, error_for_status, json_object

logger = structlog.get_logger(__name__)


class MastodonClient:
    """
    Stateless-token adapter: every request carries the account's long-lived
    bearer token, so there is no login step.
    """

    name = "mastodon"

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    async def upload_media(self, client: httpx.AsyncClient, media_path: str) -> str:
        path = Path(media_path)
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with path.open("rb") as fh:
            response = await client.post(
                f"{self.base_url}/api/v2/media",
                files={"file": (path.name, fh.read(), mime)},
            )
        if not response.is_success:
            raise error_for_status(self.name, "media upload", response.status_code, response.text)
        media_id = json_object(self.name, "media upload", response).get("id")
        if not media_id:
            raise MalformedResponse(
                f"mastodon media upload returned no id: {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )
        return str(media_id)

    async def publish(self, content: str, media_paths: Sequence[str] = ()) -> str:
        """Post a status and return its URL (or id when the server sends no URL)."""
        async with self._client() as client:
            media_ids: List[str] = []
            for media_path in media_paths:
                media_ids.append(await self.upload_media(client, media_path))

            payload: dict = {"status": content}
            if media_ids:
                payload["media_ids"] = media_ids
            response = await client.post(f"{self.base_url}/api/v1/statuses", json=payload)

        if not response.is_success:
            raise error_for_status(self.name, "post", response.status_code, response.text)

        body = json_object(self.name, "post", response)
        receipt = body.get("url") or body.get("id")
        if not receipt:
            raise MalformedResponse(
                f"mastodon accepted the status but returned no id: {response.text}",
                status_code=response.status_code,
                detail=response.text,
            )
        logger.debug("mastodon_status_created", status_id=body.get("id"), media=len(media_ids))
        return str(receipt)
