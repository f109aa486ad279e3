"""Command line entry point serving the API with uvicorn."""

from __future__ import annotations

import argparse
from dataclasses import replace

from planningpoker.backend.config import BackendSettings, load_settings
from planningpoker.backend.logging import configure_logging


def parse_args(settings: BackendSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Planning Poker server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--database-url", default=settings.database_url)
    return parser.parse_args()


def main() -> int:
    settings = load_settings()
    args = parse_args(settings)
    settings = replace(settings, host=args.host, port=args.port, database_url=args.database_url or None)
    configure_logging(json_output=settings.log_json)

    import uvicorn

    from planningpoker.backend.api import create_app

    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
