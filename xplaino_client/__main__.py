from __future__ import annotations

import argparse
import asyncio
import json
import sys

from xplaino_client.config import AppSettings, ConfigurationError
from xplaino_client.logging_utils import configure_logging
from xplaino_client.models import OutcomeHandlers
from xplaino_client.services import create_service


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="xplaino_client", description="Look up synonyms or antonyms.")
    parser.add_argument("words", nargs="+", help="Words to look up")
    parser.add_argument("--antonyms", action="store_true", help="Look up antonyms instead of synonyms")
    return parser.parse_args(argv)


async def _lookup(settings: AppSettings, words: list[str], antonyms: bool) -> int:
    exit_code = 0

    def on_success(payload) -> None:
        print(json.dumps(payload, indent=2))

    def on_error(code: str, message: str) -> None:
        nonlocal exit_code
        exit_code = 1
        print(f"{code}: {message}", file=sys.stderr)

    handlers = OutcomeHandlers(on_success=on_success, on_error=on_error)
    async with create_service(settings) as service:
        if antonyms:
            await service.words.get_antonyms(words, handlers)
        else:
            await service.words.get_synonyms(words, handlers)
    return exit_code


def run_app(argv: list[str] | None = None) -> int:
    configure_logging()
    args = _parse_args(argv)

    try:
        settings = AppSettings.from_env()
    except ConfigurationError as exc:
        print(f"Configuration error. Fix the environment and retry:\n\n{exc}", file=sys.stderr)
        return 2

    return asyncio.run(_lookup(settings, args.words, args.antonyms))


if __name__ == "__main__":
    sys.exit(run_app())
