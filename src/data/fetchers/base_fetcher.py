"""Abstract base class for option query clients."""

from abc import ABC, abstractmethod

from src.data.models.query_page import QueryPage
from src.query.operations import QueryRequest


class BaseOptionsClient(ABC):
    """Abstract base class for fetching pages of screened options."""

    @abstractmethod
    async def fetch_page(self, request: QueryRequest) -> QueryPage:
        """Fetch one page of results for a compiled request.

        Args:
            request: Compiled operations plus paging envelope.

        Returns:
            QueryPage with normalized rows and the total match count.

        Raises:
            NetworkFailureError: If the round-trip fails.
        """
        pass
