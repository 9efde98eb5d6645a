"""Async client for the saved-filter (screener) service."""

import logging
from typing import Any

import aiohttp

from config.settings_pydantic import settings
from src.data.fetchers.http import JsonBody, build_url, request_json
from src.data.types import SavedFilterRecord
from src.exceptions import NetworkFailureError
from src.query.operations import FilterOperation
from src.utils.decorators import retry

logger = logging.getLogger("wheelscreener")


class ScreenerServiceClient:
    """Thin wrapper over the saveFilter / updateFilter / fetchFilter /
    deleteFilter / saveQuery endpoints.

    Read and delete calls are retried; writes are not, since the service does
    not deduplicate them.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
    ) -> None:
        self.session = session
        self.base_url = base_url

    def _url(self, path: str) -> str:
        return build_url(path, self.base_url)

    async def save_filter(
        self,
        user_id: str,
        email: str,
        filter_name: str,
        filters_json: str,
        frequency: str = "daily",
        is_alerting: bool = False,
    ) -> JsonBody:
        """Create a saved filter.

        Args:
            user_id: Owner id.
            email: Address alerts are sent to.
            filter_name: Display name.
            filters_json: Filter state serialized as a JSON string.
            frequency: Alert frequency.
            is_alerting: Whether email alerts are enabled.

        Returns:
            Service response body.
        """
        payload = {
            "user_id": user_id,
            "email_id": email,
            "frequency": frequency,
            "filter_name": filter_name,
            "filters": filters_json,
            "is_alerting": is_alerting,
        }
        logger.info(f"Saving filter '{filter_name}' for user {user_id}")
        return await request_json(
            "POST",
            self._url(settings.save_filter_path),
            session=self.session,
            payload=payload,
        )

    async def update_filter(self, filter_id: str, **changes: Any) -> JsonBody:
        """Update fields of a saved filter (filter_name, is_alerting, frequency,
        filters, email_id)."""
        payload = {"filter_id": filter_id, **{k: v for k, v in changes.items() if v is not None}}
        logger.info(f"Updating filter {filter_id}: {sorted(payload)}")
        return await request_json(
            "POST",
            self._url(settings.update_filter_path),
            session=self.session,
            payload=payload,
        )

    @retry()
    async def fetch_filters(
        self,
        user_id: str | None = None,
        filter_id: str | None = None,
    ) -> list[SavedFilterRecord]:
        """Fetch saved filters by owner or id, skipping deleted records.

        Raises:
            ValueError: If neither user_id nor filter_id is given.
            NetworkFailureError: If the round-trip fails or the body is not a list.
        """
        params: dict[str, str] = {}
        if filter_id:
            params["filter_id"] = filter_id
        if user_id:
            params["user_id"] = user_id
        if not params:
            raise ValueError("fetch_filters needs a user_id or a filter_id")

        body = await request_json(
            "GET",
            self._url(settings.fetch_filter_path),
            session=self.session,
            params=params,
        )
        if not isinstance(body, list):
            raise NetworkFailureError("fetchFilter returned a non-list body")
        records = [record for record in body if isinstance(record, dict) and not record.get("is_deleted")]
        logger.debug(f"Fetched {len(records)} saved filters")
        return records

    @retry()
    async def delete_filter(self, filter_id: str) -> JsonBody:
        """Delete a saved filter by id."""
        logger.info(f"Deleting filter {filter_id}")
        return await request_json(
            "GET",
            self._url(settings.delete_filter_path),
            session=self.session,
            params={"filter_id": filter_id},
        )

    async def save_query(
        self,
        email: str,
        frequency: str,
        operations: list[FilterOperation],
    ) -> JsonBody:
        """Register an alert query: compiled operations mailed at a frequency."""
        payload = {
            "email": email,
            "frequency": frequency,
            "filter_data": [operation.to_wire() for operation in operations],
        }
        logger.info(f"Registering {frequency} alert query for {email}")
        return await request_json(
            "POST",
            self._url(settings.save_query_path),
            session=self.session,
            payload=payload,
        )
