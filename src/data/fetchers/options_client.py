"""Async client for the options screening endpoint."""

import asyncio
import logging

import aiohttp

from config.settings_pydantic import settings
from src.data.fetchers.base_fetcher import BaseOptionsClient
from src.data.fetchers.http import JsonBody, build_url, request_json
from src.data.models.query_page import QueryPage
from src.data.normalizer import normalize_rows
from src.exceptions import NetworkFailureError
from src.query.operations import QueryRequest

logger = logging.getLogger("wheelscreener")


class AsyncOptionsQueryClient(BaseOptionsClient):
    """Posts compiled queries to the screening service with retries."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            session: Optional aiohttp session for connection pooling.
            base_url: Service base URL. Defaults to settings.api_base_url.
            retry_attempts: Number of attempts per page. Defaults to settings.
            retry_delay: Initial delay between retries (seconds). Defaults to settings.
        """
        self.session = session
        self.url = build_url(settings.query_path, base_url)
        self.retry_attempts = max(1, retry_attempts if retry_attempts is not None else settings.retry_attempts)
        self.retry_delay = retry_delay if retry_delay is not None else settings.retry_delay

    async def fetch_page(self, request: QueryRequest) -> QueryPage:
        """Fetch and normalize one page of results.

        Args:
            request: Compiled operations plus paging envelope.

        Returns:
            QueryPage with normalized rows and the service's total count.

        Raises:
            NetworkFailureError: If every attempt fails or the body is malformed.
        """
        payload = request.to_payload()
        body: JsonBody = None

        for attempt in range(self.retry_attempts):
            try:
                body = await request_json("POST", self.url, session=self.session, payload=payload)
                break
            except NetworkFailureError as e:
                if attempt < self.retry_attempts - 1:
                    wait_time = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"Query page {request.page_no} failed (attempt {attempt + 1}), "
                        f"retrying in {wait_time}s: {e}",
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Query page {request.page_no} failed after {self.retry_attempts} attempts: {e}")
                    raise

        page = self._parse_page(body)
        logger.info(f"Fetched page {request.page_no}: {len(page.rows)} rows of {page.total_count}")
        return page

    @staticmethod
    def _parse_page(body: JsonBody) -> QueryPage:
        """Validate the response envelope and normalize its rows.

        Raises:
            NetworkFailureError: If the envelope is not ``{options: [...], count}``.
        """
        if not isinstance(body, dict):
            raise NetworkFailureError(f"Unexpected response body type: {type(body).__name__}")

        raw_rows = body.get("options")
        if raw_rows is None:
            raw_rows = []
        if not isinstance(raw_rows, list) or not all(isinstance(row, dict) for row in raw_rows):
            raise NetworkFailureError("Response 'options' is not a list of rows")

        count = body.get("count", len(raw_rows))
        try:
            total_count = int(count or 0)
        except (TypeError, ValueError) as e:
            raise NetworkFailureError(f"Response 'count' is not a number: {count!r}") from e

        return QueryPage(rows=normalize_rows(raw_rows), total_count=max(total_count, 0))
