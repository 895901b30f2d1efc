from __future__ import annotations

import logging
from pathlib import Path

from taskboard.infra.db.connection import Database

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).with_name("migrations")


async def apply_migrations(db: Database, migrations_dir: str | Path = MIGRATIONS_DIR, now_iso: str = "") -> int:
    """Apply every NNN_*.sql file not yet recorded; returns how many ran."""
    await db.execute(
        "CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL);"
    )

    dir_path = Path(migrations_dir)
    files = sorted([p for p in dir_path.glob("*.sql") if p.is_file()])

    applied = 0
    for p in files:
        version = int(p.stem.split("_")[0])

        row = await db.fetchone("SELECT version FROM schema_migrations WHERE version = ?;", (version,))
        if row:
            continue

        sql = p.read_text(encoding="utf-8")
        await db.executescript(sql)

        await db.execute(
            "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?);",
            (version, now_iso),
        )
        logger.info("Applied migration %s", p.name)
        applied += 1
    return applied
