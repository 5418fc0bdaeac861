"""SQLite-backed store for analysed email records.

Records are append-only: every successful ingestion inserts one row, and rows
are never updated, merged or deleted here.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog

from mail_provenance.models import EmailRecord

logger = structlog.get_logger()


_SCHEMA_VERSION = 1

DEFAULT_HISTORY_LIMIT = 20


class EmailRecordRepository:
    """Repository for persisting and listing email records."""

    def __init__(self, db_path: Path) -> None:
        """Create a repository.

        Args:
            db_path: Path to the SQLite database file.
        """

        self._db_path = db_path

    def initialize(self) -> None:
        """Create the schema if needed and check its version."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

            current_version = self._get_schema_version(conn)
            if current_version is None:
                self._create_schema_v1(conn)
                self._set_schema_version(conn, _SCHEMA_VERSION)
                conn.commit()
                logger.info("email_record_schema_created", version=_SCHEMA_VERSION)
                return

            if current_version != _SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    def save(self, record: EmailRecord) -> EmailRecord:
        """Insert a record.

        Args:
            record: The record to persist. Any ``id``/``created_at`` it carries
                is ignored.

        Returns:
            The record with its store-assigned ``id`` and ``created_at``.
        """

        created_at = datetime.now(timezone.utc)

        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO email_records (
                    subject,
                    from_text,
                    to_text,
                    date_iso,
                    snippet,
                    receiving_chain_json,
                    esp,
                    hops,
                    raw,
                    message_id,
                    created_at_iso
                )
                VALUES (
                    :subject,
                    :from_text,
                    :to_text,
                    :date_iso,
                    :snippet,
                    :receiving_chain_json,
                    :esp,
                    :hops,
                    :raw,
                    :message_id,
                    :created_at_iso
                )
                """,
                {
                    "subject": record.subject,
                    "from_text": record.sender,
                    "to_text": record.recipient,
                    "date_iso": record.date.isoformat(),
                    "snippet": record.snippet,
                    "receiving_chain_json": json.dumps(record.receiving_chain),
                    "esp": record.esp.value,
                    "hops": record.hops,
                    "raw": sqlite3.Binary(record.raw),
                    "message_id": record.message_id,
                    "created_at_iso": created_at.isoformat(timespec="microseconds"),
                },
            )
            conn.commit()
            record_id = int(cursor.lastrowid)

        logger.info("email_record_saved", record_id=record_id, esp=record.esp.value, hops=record.hops)
        return record.persisted(record_id, created_at)

    def recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[EmailRecord]:
        """Return the most recently created records, newest first."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT
                    id,
                    subject,
                    from_text,
                    to_text,
                    date_iso,
                    snippet,
                    receiving_chain_json,
                    esp,
                    hops,
                    raw,
                    message_id,
                    created_at_iso
                FROM email_records
                ORDER BY created_at_iso DESC, id DESC
                LIMIT ?;
                """,
                (limit,),
            ).fetchall()

        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        """Return the number of stored records."""

        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM email_records;").fetchone()
        return int(total or 0)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS email_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                subject TEXT NOT NULL,
                from_text TEXT NOT NULL,
                to_text TEXT NOT NULL,
                date_iso TEXT NOT NULL,
                snippet TEXT NOT NULL,
                receiving_chain_json TEXT NOT NULL,
                esp TEXT NOT NULL,
                hops INTEGER NOT NULL,
                raw BLOB NOT NULL,
                message_id TEXT,
                created_at_iso TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_email_records_created_at
                ON email_records(created_at_iso);
            """
        )

    def _row_to_record(self, row: sqlite3.Row) -> EmailRecord:
        return EmailRecord(
            id=row["id"],
            subject=row["subject"],
            sender=row["from_text"],
            recipient=row["to_text"],
            date=datetime.fromisoformat(row["date_iso"]),
            snippet=row["snippet"],
            receiving_chain=json.loads(row["receiving_chain_json"]),
            esp=row["esp"],
            hops=row["hops"],
            raw=bytes(row["raw"]),
            message_id=row["message_id"],
            created_at=datetime.fromisoformat(row["created_at_iso"]),
        )
