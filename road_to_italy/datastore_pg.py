import os
import re
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2 import sql
from psycopg2.extras import RealDictCursor
from contextlib import contextmanager


_POOL: Optional[pg_pool.AbstractConnectionPool] = None

_DEFAULT_TABLE = "scores"
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except Exception:
        return default


def table_name() -> str:
    """Return the configured scores table name (``SCORES_TABLE``)."""
    name = os.environ.get("SCORES_TABLE") or _DEFAULT_TABLE
    if not _IDENTIFIER_RE.fullmatch(name):
        raise ValueError(f"SCORES_TABLE must be a plain identifier, got {name!r}")
    return name


_KEEPALIVE_TUNABLES = (
    ("DB_KEEPALIVES_IDLE", "keepalives_idle"),
    ("DB_KEEPALIVES_INTERVAL", "keepalives_interval"),
    ("DB_KEEPALIVES_COUNT", "keepalives_count"),
)


def _keepalives_enabled() -> int:
    flag = os.environ.get("DB_KEEPALIVES")
    if flag is None:
        return 1
    return 0 if flag.lower() in ("0", "false") else 1


def _connect_kwargs() -> Dict[str, Any]:
    """psycopg2 connect kwargs: 10s connect timeout and TCP keepalives on.

    ``DB_CONNECT_TIMEOUT`` and ``DB_KEEPALIVES`` override the defaults; the
    IDLE/INTERVAL/COUNT tunables are only passed when set.
    """
    kwargs: Dict[str, Any] = {
        "connect_timeout": _env_int("DB_CONNECT_TIMEOUT", 10),
        "keepalives": _keepalives_enabled(),
    }
    for env_name, key in _KEEPALIVE_TUNABLES:
        val = _env_int(env_name)
        if val is not None:
            kwargs[key] = val
    return kwargs


def init_pool(minconn: int = 1, maxconn: int = 10) -> None:
    """Initialize a global connection pool using DATABASE_URL.

    Safe to call multiple times; subsequent calls are ignored once a pool exists.
    """
    global _POOL
    if _POOL is not None:
        return
    url = os.environ.get("DATABASE_URL")
    if not url:
        return
    _POOL = pg_pool.ThreadedConnectionPool(minconn, maxconn, dsn=url, **_connect_kwargs())


def _ping(conn) -> bool:
    """Run ``SELECT 1``; any failure marks the connection unhealthy."""
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
        if not getattr(conn, "autocommit", False):
            conn.rollback()
    except Exception:
        return False
    return True


def _release(conn) -> None:
    # status 0 = idle, 1 = active, 2 = intrans, 3 = inerror
    if getattr(conn, "closed", 0) == 0 and not getattr(conn, "autocommit", False):
        if getattr(conn, "status", 0) in (1, 2, 3):
            try:
                conn.rollback()
            except psycopg2.Error:
                pass


@contextmanager
def _get_conn():
    """Yield a database connection from the pool if available, else direct.

    Pooled connections are pinged before use; a stale one is discarded and
    the checkout retried once before the error surfaces.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set; configure a PostgreSQL connection string")
    if _POOL is None:
        conn = psycopg2.connect(url, **_connect_kwargs())
        try:
            try:
                yield conn
            except Exception:
                try:
                    conn.rollback()
                except psycopg2.Error:
                    pass
                raise
        finally:
            try:
                conn.close()
            except psycopg2.Error:
                pass
        return

    conn = None
    for _attempt in range(2):
        candidate = _POOL.getconn()
        try:
            healthy = _ping(candidate)
        except BaseException:
            _POOL.putconn(candidate, close=True)
            raise
        if healthy:
            conn = candidate
            break
        try:
            _POOL.putconn(candidate, close=True)
        except Exception:
            pass
    if conn is None:
        raise psycopg2.OperationalError("Failed to acquire healthy DB connection after retry")

    try:
        try:
            yield conn
        except Exception:
            try:
                conn.rollback()
            except psycopg2.Error:
                pass
            raise
    finally:
        try:
            _release(conn)
        finally:
            _POOL.putconn(conn)


def fetch_participants() -> List[Dict[str, Any]]:
    """Return every row of the scores table ordered by ``id`` ascending."""
    query = sql.SQL("SELECT id, name, distance FROM {} ORDER BY id").format(
        sql.Identifier(table_name())
    )
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(query)
        rows: List[Dict[str, Any]] = []
        for r in cur.fetchall():
            rows.append(
                {
                    "id": int(r.get("id")),
                    "name": r.get("name") or "",
                    # NUMERIC arrives as Decimal
                    "distance": float(r.get("distance") or 0),
                }
            )
        return rows


def update_distance(participant_id: int, value: float) -> int:
    """Write ``value`` to the distance column of one row; return rowcount."""
    query = sql.SQL("UPDATE {} SET distance = %s WHERE id = %s").format(
        sql.Identifier(table_name())
    )
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute(query, (value, int(participant_id)))
        count = cur.rowcount
        conn.commit()
        return count


def create_table() -> None:
    query = sql.SQL(
        """
        CREATE TABLE IF NOT EXISTS {} (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            distance NUMERIC(10, 2) NOT NULL DEFAULT 0 CHECK (distance >= 0)
        )
        """
    ).format(sql.Identifier(table_name()))
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute(query)
        conn.commit()


def seed_participants(names: Iterable[str]) -> int:
    """Insert ``names`` with zero distance when the table is empty.

    Returns the number of rows inserted (0 when rows already exist).
    """
    table = sql.Identifier(table_name())
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute(sql.SQL("SELECT COUNT(*) FROM {}").format(table))
        if cur.fetchone()[0]:
            return 0
        inserted = 0
        for name in names:
            cleaned = (name or "").strip()
            if not cleaned:
                continue
            cur.execute(
                sql.SQL("INSERT INTO {} (name, distance) VALUES (%s, 0)").format(table),
                (cleaned,),
            )
            inserted += 1
        conn.commit()
        return inserted
