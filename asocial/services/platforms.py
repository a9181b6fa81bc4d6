# asocial/services/platforms.py
from typing import Awaitable, Dict, Optional, Protocol

import httpx

from asocial.infrastructure.bluesky_client import BlueskyClient
from asocial.infrastructure.mastodon_client import MastodonClient
from asocial.infrastructure.platform_errors import InvalidCredentials
from asocial.schemas.job_schema import JobPayload
from asocial.schemas.platform_schema import BlueskyCredentials, MastodonCredentials


class Deliverer(Protocol):
    def __call__(
        self,
        payload: JobPayload,
        *,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Awaitable[str]: ...


async def deliver_mastodon(payload: JobPayload, *, timeout: float, transport=None) -> str:
    creds = MastodonCredentials.from_blob(payload.credentials)
    base_url = payload.api_url or creds.url
    if not base_url:
        raise InvalidCredentials("mastodon instance URL missing: set api_url or credentials.url")
    client = MastodonClient(base_url, creds.token, timeout=timeout, transport=transport)
    return await client.publish(payload.content, payload.media_paths)


async def deliver_bluesky(payload: JobPayload, *, timeout: float, transport=None) -> str:
    creds = BlueskyCredentials.from_blob(payload.credentials)
    client = BlueskyClient(payload.api_url, timeout=timeout, transport=transport)
    await client.authenticate(creds.identifier, creds.password)
    return await client.publish(payload.content, payload.media_paths)


# exact-match on platforms.name; anything else is an UnknownPlatform outcome
PLATFORMS: Dict[str, Deliverer] = {
    "mastodon": deliver_mastodon,
    "bluesky": deliver_bluesky,
}
