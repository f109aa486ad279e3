"""Create the poker tables in PostgreSQL."""

from __future__ import annotations

from pathlib import Path

from planningpoker.backend.config import load_settings
from planningpoker.backend.logging import configure_logging, get_logger
from planningpoker.backend.store import PostgresPokerStore

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")


def apply_schema(store: PostgresPokerStore, schema_path: Path = SCHEMA_PATH) -> None:
    """Run the idempotent schema script; driver failures raise PersistenceError."""
    store.apply_schema(schema_path.read_text(encoding="utf-8"))
    logger.info("migrate.applied", schema=schema_path.name)


def main() -> int:
    settings = load_settings()
    configure_logging(json_output=settings.log_json)
    if not settings.database_url:
        logger.error("migrate.missing_database_url")
        return 2
    apply_schema(PostgresPokerStore(database_url=settings.database_url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
