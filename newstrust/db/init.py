"""Database initialization and schema management."""

from typing import Any, Dict

from psycopg import Error as PsycopgError
from rich.console import Console

from ..errors import DatabaseError
from .connection import get_connection

console = Console()


SCHEMA_SQL = """
-- Articles table (rows are created by ingestion, analysis columns by the pipeline)
CREATE TABLE IF NOT EXISTS articles (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    source TEXT NOT NULL,
    description TEXT,
    language TEXT NOT NULL DEFAULT 'es',
    category TEXT,
    published_at TIMESTAMPTZ,
    content TEXT,
    summary TEXT,
    bias_score REAL,
    analysis JSONB,
    analyzed_at TIMESTAMPTZ,
    fetched_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_articles_analyzed_at ON articles(analyzed_at);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_articles_updated_at ON articles;
CREATE TRIGGER update_articles_updated_at BEFORE UPDATE ON articles
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


async def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        async with get_connection(config) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                result = await cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        return False


async def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        async with get_connection(config) as conn:
            async with conn.cursor() as cur:
                await cur.execute(SCHEMA_SQL)
            await conn.commit()
    except PsycopgError as e:
        raise DatabaseError(f"Failed to initialize database schema: {e}", e)
