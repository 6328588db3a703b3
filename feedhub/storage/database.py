from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
import uuid
from typing import Any

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, db_path: str = "feedhub.db") -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self) -> None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS user_favorites (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    content_id TEXT NOT NULL,
                    content_type TEXT NOT NULL,
                    content_data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    seq INTEGER NOT NULL,
                    UNIQUE (user_id, content_id)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS user_content_order (
                    user_id TEXT PRIMARY KEY,
                    content_order TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._conn.commit()

    def add_favorite(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        content_data: dict[str, Any],
    ) -> dict | None:
        """Insert a favorite; returns None when the user already has *content_id*."""
        favorite_id = str(uuid.uuid4())
        with self._lock:
            existing = self._conn.execute(
                "SELECT 1 FROM user_favorites WHERE user_id = ? AND content_id = ?",
                (user_id, content_id),
            ).fetchone()
            if existing is not None:
                return None
            seq = self._conn.execute(
                "SELECT COALESCE(MAX(seq), 0) + 1 FROM user_favorites WHERE user_id = ?",
                (user_id,),
            ).fetchone()[0]
            self._conn.execute(
                "INSERT INTO user_favorites "
                "(id, user_id, content_id, content_type, content_data, created_at, seq) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    favorite_id,
                    user_id,
                    content_id,
                    content_type,
                    json.dumps(content_data),
                    time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                    seq,
                ),
            )
            self._conn.commit()
        return self.get_favorite(user_id, favorite_id)

    def list_favorites(self, user_id: str) -> list[dict]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT id, content_id, content_type, content_data, created_at "
                "FROM user_favorites WHERE user_id = ? ORDER BY seq DESC",
                (user_id,),
            )
            rows = cursor.fetchall()
        return [self._favorite_row(row) for row in rows]

    def get_favorite(self, user_id: str, favorite_id: str) -> dict | None:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT id, content_id, content_type, content_data, created_at "
                "FROM user_favorites WHERE user_id = ? AND id = ?",
                (user_id, favorite_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return self._favorite_row(row)

    def remove_favorite(self, user_id: str, favorite_id: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM user_favorites WHERE id = ? AND user_id = ?",
                (favorite_id, user_id),
            )
            self._conn.commit()
            return cursor.rowcount > 0

    def get_content_order(self, user_id: str) -> list[str]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT content_order FROM user_content_order WHERE user_id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
        if row is None:
            return []
        try:
            order = json.loads(row["content_order"])
        except ValueError:
            logger.warning("Stored content order for user %s is unreadable", user_id)
            return []
        return order if isinstance(order, list) else []

    def save_content_order(self, user_id: str, content_order: list[str]) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO user_content_order (user_id, content_order, updated_at) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(user_id) DO UPDATE SET "
                "content_order = excluded.content_order, updated_at = excluded.updated_at",
                (
                    user_id,
                    json.dumps(list(content_order)),
                    time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                ),
            )
            self._conn.commit()

    @staticmethod
    def _favorite_row(row: sqlite3.Row) -> dict:
        try:
            content_data = json.loads(row["content_data"])
        except ValueError:
            content_data = {}
        return {
            "id": row["id"],
            "content_id": row["content_id"],
            "content_type": row["content_type"],
            "content_data": content_data,
            "created_at": row["created_at"],
        }

    def close(self) -> None:
        with self._lock:
            try:
                self._conn.commit()
                self._conn.close()
                logger.info("Database connection closed")
            except Exception as exc:
                logger.error("Error closing database: %s", exc)
