from __future__ import annotations

import asyncio
import logging
import os
import sys

from taskboard.config import load_settings
from taskboard.domain.focus.service import FocusService
from taskboard.domain.tasks.rules import counts_by_status
from taskboard.engine.driver import BoardEngine
from taskboard.infra.clock.system_clock import SystemClock
from taskboard.infra.db.connection import Database
from taskboard.infra.db.repo.focus_sessions_sqlite import SqliteFocusSessionRepo
from taskboard.infra.db.repo.tasks_sqlite import SqliteTaskStore
from taskboard.infra.db.schema_version import apply_migrations
from taskboard.infra.ids.uuid_gen import UuidGenerator
from taskboard.infra.snapshot_file import save_board
from taskboard.sample_data import sample_tasks


async def main() -> None:
    """
    Composition root: open the database, build the board engine and the
    focus service, seed sample data on an empty store, and optionally write
    a board snapshot. The presentation layer attaches to `BoardEngine`.
    """
    settings = load_settings()

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] - %(message)s'
    )
    logger = logging.getLogger(__name__)
    logger.info("Taskboard starting - PID: %s", os.getpid())

    os.makedirs(os.path.dirname(settings.db_path) or ".", exist_ok=True)
    db = Database(str(settings.db_path))
    clock = SystemClock(settings.timezone)
    await apply_migrations(db, now_iso=clock.now().isoformat())

    store = SqliteTaskStore(db)
    engine = BoardEngine(store, clock, UuidGenerator())
    focus = FocusService(store, SqliteFocusSessionRepo(db), clock, default_settings=settings.focus)

    await engine.start()
    try:
        if settings.seed_sample_data:
            await engine.seed_if_empty(sample_tasks(clock.now()))

        counts = counts_by_status(engine.state.tasks)
        for status, count in counts.items():
            logger.info("%-12s %d", status.label, count)

        recent = await focus.history(limit=5)
        logger.info("Recorded focus sessions (latest %d shown)", len(recent))

        if settings.snapshot_path is not None:
            save_board(engine.export_board(), settings.snapshot_path)
    finally:
        await engine.stop()
    logger.info("Taskboard ready")


def run() -> None:
    try:
        asyncio.run(main())
    except RuntimeError as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
