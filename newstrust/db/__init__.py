"""Database management."""

from .articles import ArticleRepository, InMemoryArticleRepository, PostgresArticleRepository
from .connection import close_connection_pool, get_connection, get_connection_pool
from .init import init_database, validate_connection

__all__ = [
    "ArticleRepository",
    "InMemoryArticleRepository",
    "PostgresArticleRepository",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
