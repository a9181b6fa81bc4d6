# asocial/infrastructure/platform_errors.py
from typing import Optional

import httpx


class PlatformError(Exception):
    """Base for failures reported by a platform adapter.

    ``status_code`` carries the remote HTTP status when there was one and
    ``detail`` the response body, so callers can log something actionable.
    """

    kind = "platform_error"
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthError(PlatformError):
    kind = "auth_error"


class NotAuthenticated(PlatformError):
    kind = "not_authenticated"


class ApiError(PlatformError):
    kind = "api_error"
    retryable = True


class InvalidCredentials(PlatformError):
    kind = "invalid_credentials"


def error_for_status(platform: str, action: str, status_code: int, body: str) -> PlatformError:
    message = f"{platform} {action} failed ({status_code}): {body}"
    if status_code in (401, 403):
        return AuthError(message, status_code=status_code, detail=body)
    return ApiError(message, status_code=status_code, detail=body)


class MalformedResponse(ApiError):
    """A 2xx answer whose body is not the JSON object the endpoint documents.

    Not retried: the platform may already have acted on the request.
    """

    kind = "malformed_response"
    retryable = False


def json_object(platform: str, action: str, response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError as exc:
        raise MalformedResponse(
            f"{platform} {action} returned a non-JSON body ({response.status_code}): {response.text}",
            status_code=response.status_code,
            detail=response.text,
        ) from exc
    if not isinstance(body, dict):
        raise MalformedResponse(
            f"{platform} {action} returned {type(body).__name__}, expected an object: {response.text}",
            status_code=response.status_code,
            detail=response.text,
        )
    return body
