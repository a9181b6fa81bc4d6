# asocial/schemas/platform_schema.py
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import ClassVar, Optional, List, Tuple
import uuid
from datetime import datetime

from asocial.infrastructure.platform_errors import InvalidCredentials
from asocial.infrastructure.secrets import encrypt_secret, decrypt_secret


class PlatformCredentials(BaseModel):
    """Typed view over the ``platforms.credentials`` JSON blob.

    Fields listed in ``secret_fields`` are stored encrypted. Anything missing,
    empty or undecryptable raises InvalidCredentials; there is no default value.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    platform: ClassVar[str] = ""
    secret_fields: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_blob(cls, blob: Optional[dict]):
        data = dict(blob or {})
        for name in cls.secret_fields:
            if data.get(name):
                plain = decrypt_secret(data[name])
                if plain is None:
                    raise InvalidCredentials(f"{cls.platform} credential '{name}' could not be decrypted")
                data[name] = plain
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise InvalidCredentials(f"{cls.platform} credentials invalid: {problems}") from exc

    def to_blob(self) -> dict:
        data = self.model_dump(exclude_none=True)
        for name in self.secret_fields:
            if name in data:
                data[name] = encrypt_secret(data[name])
        return data


class MastodonCredentials(PlatformCredentials):
    platform: ClassVar[str] = "mastodon"
    secret_fields: ClassVar[Tuple[str, ...]] = ("token",)

    token: str = Field(min_length=1)
    url: Optional[str] = None


class BlueskyCredentials(PlatformCredentials):
    platform: ClassVar[str] = "bluesky"
    secret_fields: ClassVar[Tuple[str, ...]] = ("password",)

    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)


class MastodonSettings(BaseModel):
    url: str = Field(min_length=1)  # instance URL, e.g. https://mastodon.social
    token: str = Field(min_length=1)


class BlueskySettings(BaseModel):
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)  # app password
    api_url: Optional[str] = None


class PlatformRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    api_url: Optional[str]
    configured_fields: List[str]
    updated_at: datetime
