from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Union


class ErrorCode:
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    AUTH_ERROR = "AUTH_ERROR"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    UNAUTHORIZED = "UNAUTHORIZED"
    ABORTED = "ABORTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    STREAM_ERROR = "STREAM_ERROR"


@dataclass(frozen=True)
class Credentials:
    access_token: str
    refresh_token: str | None = None
    access_token_expires_at: str | None = None
    refresh_token_expires_at: str | None = None

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "Credentials":
        """Build credentials from the backend's login/refresh response body."""
        access_token = payload.get("accessToken")
        if not isinstance(access_token, str) or not access_token.strip():
            raise ValueError("Payload is missing accessToken")

        return Credentials(
            access_token=access_token.strip(),
            refresh_token=_optional_str(payload.get("refreshToken")),
            access_token_expires_at=_optional_str(payload.get("accessTokenExpiresAt")),
            refresh_token_expires_at=_optional_str(payload.get("refreshTokenExpiresAt")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "accessTokenExpiresAt": self.access_token_expires_at,
            "refreshTokenExpiresAt": self.refresh_token_expires_at,
        }

    def refresh_token_expired(self, now: datetime | None = None) -> bool:
        expires_at = _parse_timestamp(self.refresh_token_expires_at)
        if expires_at is None:
            return False
        return expires_at <= (now or datetime.now(timezone.utc))


@dataclass(frozen=True)
class RequestDescriptor:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] | None = None
    json: Any = None
    content: bytes | str | None = None
    data: Mapping[str, Any] | None = None
    files: Mapping[str, Any] | None = None

    def with_headers(self, headers: Mapping[str, str]) -> "RequestDescriptor":
        # Descriptor headers win over the auth defaults.
        merged = dict(headers)
        merged.update(self.headers)
        return replace(self, headers=merged)


@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class TokenExpired:
    pass


@dataclass(frozen=True)
class LoginRequired:
    pass


@dataclass(frozen=True)
class SubscriptionRequired:
    pass


@dataclass(frozen=True)
class Unauthorized:
    code: str
    message: str


@dataclass(frozen=True)
class HttpError:
    code: str
    message: str
    status_code: int


@dataclass(frozen=True)
class StreamError:
    code: str
    message: str


@dataclass(frozen=True)
class Aborted:
    code: str = ErrorCode.ABORTED
    message: str = "Request was aborted"


@dataclass(frozen=True)
class NetworkError:
    message: str
    code: str = ErrorCode.NETWORK_ERROR


@dataclass(frozen=True)
class AuthFailed:
    code: str = ErrorCode.AUTH_ERROR
    message: str = "Token refresh failed"


ClassifiedOutcome = Union[
    Success,
    TokenExpired,
    LoginRequired,
    SubscriptionRequired,
    Unauthorized,
    HttpError,
    StreamError,
    Aborted,
    NetworkError,
    AuthFailed,
]


class RefreshState(Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class RefreshResult:
    ok: bool
    credentials: Credentials | None = None
    error: str | None = None


@dataclass
class OutcomeHandlers:
    on_success: Callable[[Any], None]
    on_error: Callable[[str, str], None]
    on_login_required: Callable[[], None] | None = None
    on_subscription_required: Callable[[], None] | None = None


@dataclass(frozen=True)
class AuthState:
    is_signed_in: bool
    has_anonymous_id: bool = False


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
