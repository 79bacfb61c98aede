"""
Book repository.

Search results are transient and never cached. Only a successful
registration writes to the local store.
"""
from typing import List, Optional

from bookclub.cache.ttl_policies import EntityType
from bookclub.models import Book
from bookclub.remote.schemas import CreateBookRequest
from bookclub.result import Result
from .base import CachedRepository


class BookRepository(CachedRepository[Book]):
    entity_type = EntityType.BOOK

    async def search_books(self, query: str, limit: Optional[int] = None) -> Result[List[Book]]:
        result = await self.remote.search(query, limit=limit)
        if result.is_failure:
            self.stats.remote_failures += 1
            self.logger.error(f"Book search failed for '{query}': {result.error.message}")
        return result

    async def register_book(self, book: Book) -> Result[Book]:
        """Create the book on the backend, or get the existing record back."""
        return await self._write("register", self.remote.register(CreateBookRequest.from_domain(book)))
