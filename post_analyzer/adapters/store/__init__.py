"""Persistent store adapters for analyzed posts."""

from post_analyzer.adapters.store.base import AbstractPostRepository
from post_analyzer.adapters.store.postgres import (
    PostRow,
    SqlAlchemyPostRepository,
    build_engine,
    ensure_schema,
)

__all__ = [
    "AbstractPostRepository",
    "PostRow",
    "SqlAlchemyPostRepository",
    "build_engine",
    "ensure_schema",
]
