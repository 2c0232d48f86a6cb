from dataclasses import replace

import pytest

from xplaino_client.config import AppSettings, ConfigurationError, _parse_env_line

ENV_NAMES = (
    "XPLAINO_API_BASE_URL",
    "XPLAINO_TIMEOUT_SECONDS",
    "XPLAINO_CREDENTIALS_PATH",
    "XPLAINO_ANONYMOUS_ID_HEADER",
    "XPLAINO_REFRESH_PATH",
    "XPLAINO_REFRESH_ON_BARE_401",
    "XPLAINO_ENV_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_from_env_defaults() -> None:
    settings = AppSettings.from_env()

    assert settings.base_url == "https://api.xplaino.com"
    assert settings.timeout_seconds == 45
    assert settings.anonymous_id_header == "X-Unauthenticated-User-Id"
    assert settings.refresh_path == "/api/auth/refresh-token"
    assert settings.refresh_on_bare_401 is False
    assert settings.credentials_path.endswith("credentials.bin")


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XPLAINO_API_BASE_URL", "http://localhost:8000/")
    monkeypatch.setenv("XPLAINO_TIMEOUT_SECONDS", "10")
    monkeypatch.setenv("XPLAINO_REFRESH_ON_BARE_401", "yes")

    settings = AppSettings.from_env()

    assert settings.base_url == "http://localhost:8000"
    assert settings.url_for("/api/folders") == "http://localhost:8000/api/folders"
    assert settings.timeout_seconds == 10
    assert settings.refresh_on_bare_401 is True


def test_from_env_loads_env_file_without_overriding(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "# local overrides\nXPLAINO_API_BASE_URL='http://127.0.0.1:9000'\nXPLAINO_TIMEOUT_SECONDS=7\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("XPLAINO_ENV_FILE", str(env_file))
    monkeypatch.setenv("XPLAINO_TIMEOUT_SECONDS", "12")
    # Registered so monkeypatch removes the value the file loader writes.
    monkeypatch.setenv("XPLAINO_API_BASE_URL", "placeholder")
    monkeypatch.delenv("XPLAINO_API_BASE_URL")

    settings = AppSettings.from_env()

    assert settings.base_url == "http://127.0.0.1:9000"
    assert settings.timeout_seconds == 12


def test_validate_rejects_bad_values() -> None:
    base = AppSettings(
        base_url="https://api.xplaino.com",
        timeout_seconds=45,
        credentials_path="credentials.bin",
        anonymous_id_header="X-Unauthenticated-User-Id",
        refresh_path="/api/auth/refresh-token",
    )
    base.validate()

    for broken in (
        replace(base, base_url="ftp://api.xplaino.com"),
        replace(base, refresh_path="api/auth/refresh-token"),
        replace(base, anonymous_id_header=""),
        replace(base, timeout_seconds=0),
    ):
        with pytest.raises(ConfigurationError):
            broken.validate()


def test_env_lines_are_parsed_leniently() -> None:
    assert _parse_env_line("XPLAINO_TIMEOUT_SECONDS=7") == ("XPLAINO_TIMEOUT_SECONDS", "7")
    assert _parse_env_line("export XPLAINO_REFRESH_PATH = '/api/refresh'") == (
        "XPLAINO_REFRESH_PATH",
        "/api/refresh",
    )
    assert _parse_env_line('XPLAINO_API_BASE_URL="http://localhost:8000"') == (
        "XPLAINO_API_BASE_URL",
        "http://localhost:8000",
    )
    assert _parse_env_line("XPLAINO_ANONYMOUS_ID_HEADER=it's") == ("XPLAINO_ANONYMOUS_ID_HEADER", "it's")
    assert _parse_env_line("# comment") is None
    assert _parse_env_line("no separator") is None
    assert _parse_env_line("=value") is None
