from __future__ import annotations

import os
import sqlite3
import threading
from typing import Protocol

from pydantic import ValidationError

from jobpost.core.config import settings
from jobpost.schemas.fingerprint import CompanyFingerprint


class FingerprintStoreError(RuntimeError):
    def __init__(self, operation: str, slug: str, message: str = ""):
        super().__init__(f"Fingerprint store {operation} failed for '{slug}'" + (f": {message}" if message else ""))
        self.operation = operation
        self.slug = slug
        self.code = "fingerprint_store_error"


class FingerprintStore(Protocol):
    async def get(self, key: str) -> CompanyFingerprint | None: ...

    async def upsert(self, key: str, fingerprint: CompanyFingerprint) -> None: ...


class InMemoryFingerprintStore:
    def __init__(self) -> None:
        self._items: dict[str, CompanyFingerprint] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> CompanyFingerprint | None:
        with self._lock:
            item = self._items.get(key)
        return item.model_copy(deep=True) if item is not None else None

    async def upsert(self, key: str, fingerprint: CompanyFingerprint) -> None:
        with self._lock:
            self._items[key] = fingerprint.model_copy(deep=True)


class SqliteFingerprintStore:
    """Fingerprints persisted as JSON rows keyed by company slug; upsert replaces the whole row."""

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path or settings.fingerprint_db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            if self._db_path != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS company_fingerprints (
                    company_slug TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    fingerprint_json TEXT NOT NULL,
                    last_seen TEXT NOT NULL
                );
                """
            )
            self._conn = conn
            return conn

    async def get(self, key: str) -> CompanyFingerprint | None:
        try:
            conn = self._get_connection()
            with self._lock:
                row = conn.execute(
                    "SELECT fingerprint_json FROM company_fingerprints WHERE company_slug = ?",
                    (key,),
                ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise FingerprintStoreError("get", key, str(exc)) from exc
        if row is None:
            return None
        try:
            return CompanyFingerprint.model_validate_json(row[0])
        except ValidationError as exc:
            raise FingerprintStoreError("get", key, "stored fingerprint is invalid") from exc

    async def upsert(self, key: str, fingerprint: CompanyFingerprint) -> None:
        try:
            conn = self._get_connection()
            with self._lock:
                conn.execute(
                    """
                    INSERT INTO company_fingerprints (company_slug, version, fingerprint_json, last_seen)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(company_slug) DO UPDATE SET
                        version = excluded.version,
                        fingerprint_json = excluded.fingerprint_json,
                        last_seen = excluded.last_seen
                    """,
                    (
                        key,
                        fingerprint.version,
                        fingerprint.model_dump_json(),
                        fingerprint.last_seen.isoformat(),
                    ),
                )
        except (sqlite3.Error, OSError) as exc:
            raise FingerprintStoreError("upsert", key, str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
