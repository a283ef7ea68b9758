"""Post repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from post_analyzer.schemas.posts import PostAnalysis


class AbstractPostRepository(ABC):
    """Persistent store for analysis results.

    Rows are immutable: there is an insert path but no update path.
    """

    @abstractmethod
    async def get_by_id(self, post_id: str) -> PostAnalysis | None:
        """Return the stored post or None when absent.

        Raises:
            StoreAppError: If the store cannot be queried.
        """
        ...

    @abstractmethod
    async def insert(self, post: PostAnalysis) -> None:
        """Insert a new row.

        Raises:
            DuplicatePostError: If a row with the same id exists.
            StoreAppError: On any other store failure.
        """
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Verify the store is reachable.

        Raises:
            StoreAppError: If the store cannot be reached.
        """
        ...
