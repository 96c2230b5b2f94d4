# receiptscan/db/patterns_pg.py
from __future__ import annotations
from typing import Optional
import psycopg

DDL = """
CREATE SCHEMA IF NOT EXISTS receiptscan;
CREATE TABLE IF NOT EXISTS receiptscan.kv_store (
    key        text PRIMARY KEY,
    value      jsonb NOT NULL,
    updated_at timestamptz NOT NULL DEFAULT now()
);
"""

UPSERT = """
INSERT INTO receiptscan.kv_store (key, value, updated_at)
VALUES (%s, %s::jsonb, now())
ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
"""


class PostgresPatternBackend:
    """
    Key-value backend on a single jsonb table.
    One short connection per call; the table is created on first use.
    """

    def __init__(self, dsn: str, ensure_schema: bool = True):
        self.dsn = dsn
        self._schema_ready = not ensure_schema

    def _ensure_schema(self, conn: psycopg.Connection) -> None:
        if not self._schema_ready:
            conn.execute(DDL)
            conn.commit()
            self._schema_ready = True

    def get(self, key: str) -> Optional[str]:
        with psycopg.connect(self.dsn) as conn:
            self._ensure_schema(conn)
            row = conn.execute(
                "SELECT value::text FROM receiptscan.kv_store WHERE key = %s", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with psycopg.connect(self.dsn) as conn:
            self._ensure_schema(conn)
            conn.execute(UPSERT, (key, value))
            conn.commit()
