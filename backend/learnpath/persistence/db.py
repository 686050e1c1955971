"""SQLite connection + schema initialisation."""
from __future__ import annotations
import logging
import os
import sqlite3
from typing import Optional

from learnpath.core import config

logger = logging.getLogger(__name__)


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or config.DATABASE_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(db_path: Optional[str] = None) -> None:
    """Run all migration SQL files against the database, in name order."""
    path = db_path or config.DATABASE_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    migrations = sorted(f for f in os.listdir(config.MIGRATIONS_DIR) if f.endswith(".sql"))
    conn = get_connection(path)
    try:
        for name in migrations:
            with open(os.path.join(config.MIGRATIONS_DIR, name), "r", encoding="utf-8") as f:
                conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()
    logger.info("Database ready at %s (%d migration(s))", path, len(migrations))
