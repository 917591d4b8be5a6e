"""Exercise a live connection end to end with a throwaway table."""

from __future__ import annotations

from typing import Any, List, Tuple

import psycopg

from heroku_pg.infrastructure import log_utils

SMOKE_TABLE = "heroku_pg_smoke_test"


def smoke_test(client: psycopg.Connection, *, name: str = "Ferris") -> List[Tuple[Any, ...]]:
    """Create a table, insert a row, read it back and drop the table.

    Everything runs in one transaction which is committed at the end, or
    rolled back if any statement fails. Returns the rows that were read.
    """

    try:
        with client.cursor() as cur:
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {SMOKE_TABLE} (
                    id      SERIAL PRIMARY KEY,
                    name    TEXT NOT NULL,
                    data    BYTEA
                )
                """
            )
            cur.execute(
                f"INSERT INTO {SMOKE_TABLE} (name, data) VALUES (%s, %s)",
                (name, None),
            )
            cur.execute(f"SELECT id, name, data FROM {SMOKE_TABLE} ORDER BY id")
            rows = cur.fetchall()
            cur.execute(f"DROP TABLE {SMOKE_TABLE}")
        client.commit()
    except psycopg.Error:
        client.rollback()
        log_utils.error("Smoke test failed; transaction rolled back.", exc_info=True)
        raise

    for row in rows:
        log_utils.info(f"Smoke test row: {row!r}")
    return rows
