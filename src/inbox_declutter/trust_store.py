"""SQLite-backed set of trusted sender addresses."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

from . import constants

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS trusted_senders (
    email TEXT PRIMARY KEY
);
"""


class TrustStore:
    """Addresses the analysis must never flag."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = Path(db_path or constants.TRUST_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_CREATE_TABLES_SQL)

    # --- public API ---

    def get_all(self) -> list[str]:
        rows = self._conn.execute("SELECT email FROM trusted_senders ORDER BY email").fetchall()
        return [r["email"] for r in rows]

    def add_many(self, emails: Iterable[str]) -> list[str]:
        """Add addresses (lowercased, blanks ignored) and return the full list."""
        cleaned = {e.strip().lower() for e in emails if e and e.strip()}
        with self._conn:
            self._conn.executemany(
                "INSERT OR IGNORE INTO trusted_senders (email) VALUES (?)",
                [(e,) for e in sorted(cleaned)],
            )
        return self.get_all()

    def remove(self, email: str) -> list[str]:
        with self._conn:
            self._conn.execute(
                "DELETE FROM trusted_senders WHERE email = ?", (email.strip().lower(),)
            )
        return self.get_all()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # --- context manager ---

    def __enter__(self) -> TrustStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()
