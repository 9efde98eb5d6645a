"""Query orchestration: paging, sorting and debounced re-issue of compiled queries."""

import asyncio
import logging
from collections.abc import Collection
from datetime import date
from enum import Enum
from typing import Any

from config.settings_pydantic import settings
from src.access.feature_gate import enabled_dimensions
from src.access.models import AccessStatus
from src.data.fetchers.base_fetcher import BaseOptionsClient
from src.data.models.option import Option
from src.data.models.option_type import SortDirection, StrikeFilterMode
from src.data.normalizer import exclude_symbols
from src.exceptions import NetworkFailureError
from src.filters.state import FilterState, FilterStateStore
from src.query.compiler import compile_query
from src.query.operations import QueryRequest, SortSpec
from src.utils.debounce import Debouncer

logger = logging.getLogger("wheelscreener")


class QueryStatus(str, Enum):
    """Lifecycle of the current result set."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class QueryPaginator:
    """Owns page, sort and total count and re-issues queries when they change.

    Every issued request takes an increasing id; a response that is not for
    the latest id is discarded, so results always match the newest inputs.
    """

    def __init__(
        self,
        client: BaseOptionsClient,
        filters: FilterState,
        *,
        page_size: int | None = None,
        strike_mode: StrikeFilterMode | str | None = None,
        access_status: AccessStatus | None = None,
        user_id: str | None = None,
        debouncer: Debouncer | None = None,
        state_store: FilterStateStore | None = None,
        today: date | None = None,
    ) -> None:
        """Initialize paginator.

        Args:
            client: Query client used to fetch pages.
            filters: Initial filter state; must carry an option type.
            page_size: Rows per page. Defaults to settings.default_page_size.
            strike_mode: Legacy moneyness preset.
            access_status: When given, gated dimensions are left out of queries.
            user_id: Forwarded to the service with every request.
            debouncer: Debouncer for filter edits. Defaults to the configured quiet period.
            state_store: When given, filter edits are flushed to it.
            today: Fixed reference date for expiration filters.
        """
        self.client = client
        self.filters = filters
        self.page_size = page_size or settings.default_page_size
        self.strike_mode = strike_mode
        self.access_status = access_status
        self.user_id = user_id
        self.debouncer = debouncer or Debouncer()
        self.state_store = state_store
        self.today = today

        self.page_no = 1
        self.sort: SortSpec | None = None
        self.rows: list[Option] = []
        self.total_count = 0
        self.status = QueryStatus.IDLE
        self.error: str | None = None

        self._request_id = 0
        self._last_request: QueryRequest | None = None

    @property
    def enabled_dimensions(self) -> Collection[str] | None:
        if self.access_status is None:
            return None
        return enabled_dimensions(self.access_status)

    @property
    def can_next(self) -> bool:
        return self.page_no * self.page_size < self.total_count

    @property
    def can_previous(self) -> bool:
        return self.page_no > 1

    @property
    def last_request(self) -> QueryRequest | None:
        return self._last_request

    def compile_request(self) -> QueryRequest:
        """Compile the current filters, sort and page into a request."""
        return compile_query(
            self.filters,
            self.sort,
            self.strike_mode,
            page_no=self.page_no,
            page_size=self.page_size,
            user_id=self.user_id,
            today=self.today,
            enabled_dimensions=self.enabled_dimensions,
        )

    async def refresh(self) -> bool:
        """Compile and issue the current query. Returns True when results were applied."""
        return await self._issue(self.compile_request())

    async def _issue(self, request: QueryRequest) -> bool:
        self._request_id += 1
        request_id = self._request_id
        self._last_request = request
        self.status = QueryStatus.LOADING
        self.error = None

        try:
            page = await self.client.fetch_page(request)
        except NetworkFailureError as e:
            if request_id != self._request_id:
                logger.debug(f"Discarding failure of superseded request {request_id}")
                return False
            logger.error(f"Query failed on page {request.page_no}: {e}")
            self.status = QueryStatus.FAILED
            self.error = str(e)
            return False
        except Exception as e:
            if request_id == self._request_id:
                logger.exception(f"Unexpected error while fetching page {request.page_no}")
                self.status = QueryStatus.FAILED
                self.error = str(e) or type(e).__name__
            raise

        if request_id != self._request_id:
            logger.debug(f"Discarding response of superseded request {request_id}")
            return False

        self.rows = exclude_symbols(page.rows, self.filters.excluded_symbols)
        self.total_count = page.total_count
        self.status = QueryStatus.READY
        return True

    def _set_filters(self, filters: FilterState) -> None:
        # Responses to requests issued before this edit are stale
        self._request_id += 1
        self.status = QueryStatus.LOADING
        self.error = None
        if filters.option_type is None:
            filters = filters.model_copy(update={"option_type": self.filters.option_type})
        self.filters = filters
        self.page_no = 1
        if self.state_store is not None:
            self.state_store.save(filters)

    def filters_changed(self, filters: FilterState) -> "asyncio.Task[Any]":
        """Record a filter edit and re-query once edits go quiet.

        The page resets to 1 immediately.

        Returns:
            The debounced task; awaiting it is optional.
        """
        self._set_filters(filters)
        return self.debouncer.schedule(self.refresh)

    async def apply_filters(self, filters: FilterState) -> bool:
        """Record a filter edit and re-query at once, dropping any pending edit."""
        self.debouncer.cancel()
        self._set_filters(filters)
        return await self.refresh()

    async def set_page_size(self, page_size: int) -> bool:
        if page_size < 1:
            raise ValueError(f"Page size must be positive: {page_size}")
        self.page_size = page_size
        self.page_no = 1
        return await self.refresh()

    async def toggle_sort(self, field: str) -> bool:
        """Sort by ``field``; the same column flips direction, a new one starts ascending.

        The current page is kept.
        """
        if self.sort is not None and self.sort.field == field:
            self.sort = SortSpec(field=field, direction=self.sort.direction.flipped())
        else:
            self.sort = SortSpec(field=field, direction=SortDirection.ASC)
        logger.debug(f"Sorting by {self.sort.field} {self.sort.direction.value}")
        return await self.refresh()

    async def next_page(self) -> bool:
        if not self.can_next:
            return False
        self.page_no += 1
        return await self.refresh()

    async def previous_page(self) -> bool:
        if not self.can_previous:
            return False
        self.page_no -= 1
        return await self.refresh()

    async def retry(self) -> bool:
        """Re-issue the last request unchanged."""
        if self._last_request is None:
            return await self.refresh()
        return await self._issue(self._last_request)

    def set_access_status(self, status: AccessStatus | None) -> None:
        """Change gating for subsequent queries."""
        self.access_status = status
