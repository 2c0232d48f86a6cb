from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from urllib.parse import urlparse


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class AppSettings:
    base_url: str
    timeout_seconds: int
    credentials_path: str
    anonymous_id_header: str
    refresh_path: str
    refresh_on_bare_401: bool = False

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        base_url = os.getenv("XPLAINO_API_BASE_URL", "https://api.xplaino.com").strip().rstrip("/")
        timeout_seconds = int(os.getenv("XPLAINO_TIMEOUT_SECONDS", "45"))

        default_credentials_path = os.path.join(
            os.getenv("LOCALAPPDATA", os.getcwd()),
            "XplainoClient",
            "credentials.bin",
        )
        credentials_path = os.getenv("XPLAINO_CREDENTIALS_PATH", default_credentials_path)
        anonymous_id_header = os.getenv(
            "XPLAINO_ANONYMOUS_ID_HEADER", "X-Unauthenticated-User-Id"
        ).strip()
        refresh_path = os.getenv("XPLAINO_REFRESH_PATH", "/api/auth/refresh-token").strip()
        refresh_on_bare_401 = _read_bool_env("XPLAINO_REFRESH_ON_BARE_401", default=False)

        settings = AppSettings(
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            credentials_path=credentials_path,
            anonymous_id_header=anonymous_id_header,
            refresh_path=refresh_path,
            refresh_on_bare_401=refresh_on_bare_401,
        )
        settings.validate()
        return settings

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def validate(self) -> None:
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError("XPLAINO_API_BASE_URL must be an http(s) URL")

        if not self.refresh_path.startswith("/"):
            raise ConfigurationError("XPLAINO_REFRESH_PATH must start with '/'")

        if not self.anonymous_id_header:
            raise ConfigurationError("XPLAINO_ANONYMOUS_ID_HEADER must not be empty")

        if self.timeout_seconds <= 0:
            raise ConfigurationError("XPLAINO_TIMEOUT_SECONDS must be greater than 0")


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    """Fill unset variables from ``XPLAINO_ENV_FILE``, ``./.env`` and the project root.

    Earlier files win, and values already in the environment are never replaced.
    """
    for path in _env_file_candidates(file_name):
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError:
            continue

        for line in lines:
            entry = _parse_env_line(line)
            if entry is not None:
                os.environ.setdefault(*entry)


def _env_file_candidates(file_name: str) -> list[Path]:
    paths = [Path.cwd() / file_name, Path(__file__).resolve().parent.parent / file_name]

    explicit = os.getenv("XPLAINO_ENV_FILE", "").strip()
    if explicit:
        paths.insert(0, Path(explicit).expanduser())

    unique: dict[str, Path] = {}
    for path in paths:
        unique.setdefault(str(path.resolve()), path)
    return [path for path in unique.values() if path.is_file()]


def _parse_env_line(line: str) -> tuple[str, str] | None:
    text = line.strip()
    if text.startswith("export "):
        text = text[len("export "):].lstrip()
    if not text or text.startswith("#") or "=" not in text:
        return None

    key, _, value = text.partition("=")
    key = key.strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return (key, value) if key else None
