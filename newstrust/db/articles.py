"""Article storage."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from psycopg import Error as PsycopgError

from ..errors import DatabaseError
from ..models import Article
from .connection import get_connection

_COLUMNS = (
    "id",
    "title",
    "url",
    "source",
    "description",
    "language",
    "category",
    "published_at",
    "content",
    "summary",
    "bias_score",
    "analysis",
    "analyzed_at",
    "fetched_at",
)

_PLACEHOLDERS = {
    "analysis": "%s::jsonb",
    "fetched_at": "COALESCE(%s, CURRENT_TIMESTAMP)",
}


class ArticleRepository(ABC):
    """Persistence contract used by the pipeline."""

    @abstractmethod
    async def find_by_id(self, article_id: str) -> Optional[Article]:
        """Return the article, or None when it does not exist."""
        pass

    @abstractmethod
    async def save(self, article: Article) -> None:
        """Insert or replace the article row."""
        pass

    @abstractmethod
    async def find_unanalyzed(self, limit: int) -> List[Article]:
        """Articles without a stored analysis, newest first."""
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def count_analyzed(self) -> int:
        pass


class PostgresArticleRepository(ArticleRepository):
    """Article rows in Postgres, read through the shared connection pool."""

    def __init__(self, db_config: Dict[str, Any]) -> None:
        """Initialize repository with the resolved postgres settings."""
        self.db_config = db_config

    @staticmethod
    def _to_article(row: Dict[str, Any]) -> Article:
        """Map a dict_row onto the model; JSONB comes back decoded."""
        data = dict(row)
        if isinstance(data.get("analysis"), (dict, list)):
            data["analysis"] = json.dumps(data["analysis"], ensure_ascii=False)
        return Article.model_validate(data)

    async def _fetch(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        try:
            async with get_connection(self.db_config) as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()
        except PsycopgError as e:
            raise DatabaseError(f"Query failed: {e}", e)

    async def find_by_id(self, article_id: str) -> Optional[Article]:
        rows = await self._fetch("SELECT * FROM articles WHERE id = %s", (article_id,))
        return self._to_article(rows[0]) if rows else None

    async def save(self, article: Article) -> None:
        values = article.model_dump(include=set(_COLUMNS))
        columns = ", ".join(_COLUMNS)
        placeholders = ", ".join(_PLACEHOLDERS.get(c, "%s") for c in _COLUMNS)
        # fetched_at is owned by ingestion; keep the stored value on update
        updates = ", ".join(
            f"{c} = EXCLUDED.{c}" for c in _COLUMNS if c not in ("id", "fetched_at")
        )
        params = tuple(values[c] for c in _COLUMNS)
        try:
            async with get_connection(self.db_config) as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        f"""
                        INSERT INTO articles ({columns})
                        VALUES ({placeholders})
                        ON CONFLICT (id) DO UPDATE SET {updates}
                        """,
                        params,
                    )
                await conn.commit()
        except PsycopgError as e:
            raise DatabaseError(f"Failed to save article {article.id}: {e}", e)

    async def find_unanalyzed(self, limit: int) -> List[Article]:
        rows = await self._fetch(
            """
            SELECT * FROM articles
            WHERE analyzed_at IS NULL
            ORDER BY published_at DESC NULLS LAST
            LIMIT %s
            """,
            (limit,),
        )
        return [self._to_article(row) for row in rows]

    async def count(self) -> int:
        rows = await self._fetch("SELECT COUNT(*) AS n FROM articles", ())
        return rows[0]["n"]

    async def count_analyzed(self) -> int:
        rows = await self._fetch(
            "SELECT COUNT(*) AS n FROM articles WHERE analyzed_at IS NOT NULL", ()
        )
        return rows[0]["n"]


class InMemoryArticleRepository(ArticleRepository):
    """Dictionary-backed repository for tests and dry runs."""

    def __init__(self, articles: Optional[List[Article]] = None) -> None:
        self.articles: Dict[str, Article] = {a.id: a for a in articles or []}
        self.save_calls: List[Article] = []

    async def find_by_id(self, article_id: str) -> Optional[Article]:
        return self.articles.get(article_id)

    async def save(self, article: Article) -> None:
        self.save_calls.append(article)
        self.articles[article.id] = article

    async def find_unanalyzed(self, limit: int) -> List[Article]:
        pending = [a for a in self.articles.values() if not a.is_analyzed]
        return pending[:limit]

    async def count(self) -> int:
        return len(self.articles)

    async def count_analyzed(self) -> int:
        return sum(1 for a in self.articles.values() if a.is_analyzed)
