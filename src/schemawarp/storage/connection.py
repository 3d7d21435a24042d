"""PostgreSQL connection management"""
import logging
import os
from contextlib import contextmanager
from typing import Generator

import psycopg2
from psycopg2.extensions import connection as PgConnection
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

logger = logging.getLogger(__name__)


def get_connection_string() -> str:
    """
    Build the connection string from the environment.

    DATABASE_URL wins when set; otherwise DB_NAME, DB_USER, DB_PASSWORD,
    DB_HOST and DB_PORT are combined, leaving out empty values so unix
    socket auth works without a host.
    """
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    parts = [f"dbname={os.getenv('DB_NAME', 'postgres')}"]
    for key, env in (('user', 'DB_USER'), ('password', 'DB_PASSWORD'), ('host', 'DB_HOST'), ('port', 'DB_PORT')):
        value = os.getenv(env, '')
        if value:
            parts.append(f"{key}={value}")
    return " ".join(parts)


@contextmanager
def get_connection() -> Generator[PgConnection, None, None]:
    """
    Get a PostgreSQL connection as a context manager.

    Commits on success, rolls back on any error.

    Usage:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
    """
    conn = psycopg2.connect(get_connection_string())
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def execute_sql(script: str):
    """Run a generated script in a single transaction."""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(script)
    logger.info(f"Executed {len(script) / 1024:.1f} KB of SQL")


def test_connection() -> bool:
    """Test database connectivity."""
    try:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                return cur.fetchone()[0] == 1
    except psycopg2.Error as e:
        logger.error(f"Connection failed: {e}")
        return False
