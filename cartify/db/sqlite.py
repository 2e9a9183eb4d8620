from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from cartify.config import settings


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or settings.storage_path
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        with open(os.path.join(os.path.dirname(__file__), "schema.sql"), "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()


class Storage:
    """
    Key/value хранилище клиента (аналог localStorage в браузере).

    Значения лежат как JSON-текст. Каждый scope изолирован: отдельный
    пользователь бота или локальный web UI.
    """

    def __init__(self, scope: str, db_path: Optional[str] = None) -> None:
        self.scope = str(scope)
        self.db_path = db_path or settings.storage_path
        init_db(self.db_path)

    def get_raw(self, key: str) -> Optional[str]:
        conn = _connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM storage WHERE scope=? AND key=?",
                (self.scope, key),
            ).fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def set_raw(self, key: str, value: str) -> None:
        updated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        conn = _connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO storage(scope, key, value, updated_at) VALUES(?,?,?,?) "
                "ON CONFLICT(scope, key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (self.scope, key, value, updated_at),
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str, default: Any = None) -> Any:
        """Raises ValueError if the stored value is not valid JSON."""
        raw = self.get_raw(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, default=str))

    def remove(self, *keys: str) -> None:
        if not keys:
            return
        conn = _connect(self.db_path)
        try:
            conn.executemany(
                "DELETE FROM storage WHERE scope=? AND key=?",
                [(self.scope, k) for k in keys],
            )
            conn.commit()
        finally:
            conn.close()

    def keys(self) -> List[str]:
        conn = _connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT key FROM storage WHERE scope=? ORDER BY key",
                (self.scope,),
            ).fetchall()
            return [r["key"] for r in rows]
        finally:
            conn.close()

    def clear(self) -> None:
        conn = _connect(self.db_path)
        try:
            conn.execute("DELETE FROM storage WHERE scope=?", (self.scope,))
            conn.commit()
        finally:
            conn.close()


def list_scopes(db_path: Optional[str] = None) -> List[Dict[str, Any]]:
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            "SELECT scope, COUNT(*) AS keys, MAX(updated_at) AS updated_at "
            "FROM storage GROUP BY scope ORDER BY scope"
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()
