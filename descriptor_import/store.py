from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator, Protocol, Sequence

from .validation import DescriptorImport


class DescriptorStore(Protocol):
    def insert_many(self, records: Sequence[DescriptorImport]) -> int: ...

    def count(self, source: str | None = None) -> int: ...

    def delete_by_source(self, source: str) -> int: ...


class SqliteDescriptorStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS descriptors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL,
                    criterion_name TEXT NOT NULL,
                    excellent TEXT,
                    good TEXT,
                    pass TEXT,
                    below_pass TEXT,
                    category TEXT,
                    skill_name TEXT NOT NULL,
                    sector TEXT,
                    source TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    UNIQUE(skill_name, code)
                );

                CREATE INDEX IF NOT EXISTS idx_descriptors_source ON descriptors(source);
                """
            )

    @staticmethod
    def _utcnow() -> str:
        return datetime.now(UTC).isoformat()

    @staticmethod
    def _row(record: DescriptorImport, created_at: str) -> tuple[Any, ...]:
        return (
            record.code,
            record.criterion_name,
            record.excellent,
            record.good,
            record.pass_,
            record.below_pass,
            record.category,
            record.skill_name,
            record.sector,
            record.source,
            int(record.version),
            json.dumps(list(record.tags), ensure_ascii=False),
            created_at,
        )

    def insert_many(self, records: Sequence[DescriptorImport]) -> int:
        if not records:
            return 0
        now = self._utcnow()
        with self._connect() as conn:
            before = conn.total_changes
            conn.executemany(
                """
                INSERT INTO descriptors(
                    code, criterion_name, excellent, good, pass, below_pass,
                    category, skill_name, sector, source, version, tags_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(skill_name, code) DO NOTHING
                """,
                [self._row(record, now) for record in records],
            )
            inserted = conn.total_changes - before
        return int(inserted)

    def count(self, source: str | None = None) -> int:
        with self._connect() as conn:
            if source is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM descriptors").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM descriptors WHERE source = ?", (source,)
                ).fetchone()
        return int(row["n"])

    def delete_by_source(self, source: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM descriptors WHERE source = ?", (source,))
            deleted = cursor.rowcount
        return int(deleted)

    def list_descriptors(self, *, source: str | None = None, limit: int = 1000) -> list[dict[str, Any]]:
        query = "SELECT * FROM descriptors"
        params: tuple[Any, ...] = ()
        if source is not None:
            query += " WHERE source = ?"
            params = (source,)
        query += " ORDER BY id ASC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, (*params, int(limit))).fetchall()
        out: list[dict[str, Any]] = []
        for row in rows:
            item = dict(row)
            item["tags"] = json.loads(item.pop("tags_json") or "[]")
            out.append(item)
        return out
