from __future__ import annotations

import json
from typing import Any, Mapping

import httpx

from xplaino_client.models import (
    ClassifiedOutcome,
    ErrorCode,
    HttpError,
    LoginRequired,
    StreamError,
    SubscriptionRequired,
    Success,
    TokenExpired,
    Unauthorized,
)

MARKER_FIELDS = ("error_code", "errorCode")


def parse_body(response: httpx.Response) -> Any:
    """Best-effort JSON decode; anything unreadable becomes an empty object."""
    if not response.content:
        return {}
    try:
        return json.loads(response.content)
    except (ValueError, UnicodeDecodeError):
        return {}


def error_body(body: Any) -> dict[str, Any]:
    return body if isinstance(body, dict) else {}


def has_marker(body: Mapping[str, Any], marker: str) -> bool:
    for name in MARKER_FIELDS:
        if body.get(name) == marker:
            return True

    detail = body.get("detail")
    if isinstance(detail, dict):
        return any(detail.get(name) == marker for name in MARKER_FIELDS)
    return False


def extract_error(
    body: Mapping[str, Any],
    default_code: str,
    default_message: str,
) -> tuple[str, str]:
    """Return ``(code, message)`` from an error body.

    The code comes from ``error_code``. The message is taken from
    ``error_message``, then ``detail`` when it is a string, then
    ``detail.message``. Missing values fall back to the defaults.
    ``TOKEN_EXPIRED`` is an internal marker and is never returned as a code.
    """
    code = _non_empty(body.get("error_code"))
    if code is None or code == ErrorCode.TOKEN_EXPIRED:
        code = default_code

    message = _non_empty(body.get("error_message"))
    if message is None:
        detail = body.get("detail")
        if isinstance(detail, str):
            message = _non_empty(detail)
        elif isinstance(detail, dict):
            message = _non_empty(detail.get("message"))

    return code, message or default_message


class ResponseClassifier:
    def __init__(self, refresh_on_bare_401: bool = False):
        self._refresh_on_bare_401 = refresh_on_bare_401

    def classify(
        self,
        status_code: int,
        body: Any,
        reason_phrase: str = "",
        allow_refresh: bool = True,
    ) -> ClassifiedOutcome:
        """Map ``(status, body)`` onto one outcome; no side effects.

        With ``allow_refresh`` off an expired-token 401 is reported as
        ``Unauthorized`` instead of ``TokenExpired``.
        """
        if 200 <= status_code < 300:
            return Success(body)

        fields = error_body(body)
        login_required = has_marker(fields, ErrorCode.LOGIN_REQUIRED)

        if allow_refresh and status_code == 401 and not login_required:
            if has_marker(fields, ErrorCode.TOKEN_EXPIRED):
                return TokenExpired()
            if self._refresh_on_bare_401 and not has_marker(fields, ErrorCode.SUBSCRIPTION_REQUIRED):
                return TokenExpired()

        if login_required:
            return LoginRequired()

        if has_marker(fields, ErrorCode.SUBSCRIPTION_REQUIRED):
            return SubscriptionRequired()

        if status_code == 401:
            code, message = extract_error(fields, ErrorCode.UNAUTHORIZED, "Unauthorized")
            return Unauthorized(code=code, message=message)

        code, message = extract_error(
            fields,
            f"HTTP_{status_code}",
            reason_phrase or f"HTTP {status_code}",
        )
        return HttpError(code=code, message=message, status_code=status_code)


def classify_stream_event(event: Mapping[str, Any]) -> ClassifiedOutcome | None:
    """Return the failure an in-stream ``{"type": "error"}`` event reports, else ``None``."""
    if event.get("type") != "error":
        return None

    if has_marker(event, ErrorCode.LOGIN_REQUIRED):
        return LoginRequired()
    if has_marker(event, ErrorCode.SUBSCRIPTION_REQUIRED):
        return SubscriptionRequired()

    code, message = extract_error(event, ErrorCode.STREAM_ERROR, "Stream reported an error")
    return StreamError(code=code, message=message)


def _non_empty(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
