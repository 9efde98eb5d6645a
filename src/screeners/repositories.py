"""Storage backends for user screener presets."""

import json
import logging
from typing import Protocol

from pydantic import ValidationError

from src.data.cache import KeyedStore
from src.data.fetchers.screener_service import ScreenerServiceClient
from src.data.types import SavedFilterRecord
from src.screeners.models import EmailFrequency, EmailNotifications, SavedScreener

logger = logging.getLogger("wheelscreener")

SAVED_SCREENERS_KEY = "savedScreeners"


class ScreenerRepository(Protocol):
    """Persistence surface for user (non-default) presets."""

    async def load_all(self) -> list[SavedScreener]: ...

    async def create(self, screener: SavedScreener) -> SavedScreener: ...

    async def replace(self, screener: SavedScreener) -> SavedScreener: ...

    async def remove(self, screener_id: str) -> None: ...


class LocalScreenerRepository:
    """User presets kept as one JSON list in a keyed store."""

    def __init__(self, store: KeyedStore, key: str = SAVED_SCREENERS_KEY) -> None:
        self.store = store
        self.key = key

    def _read(self) -> list[SavedScreener]:
        raw = self.store.get(self.key)
        if raw is None:
            return []
        try:
            entries = json.loads(raw)
            if not isinstance(entries, list):
                raise ValueError(f"expected a list, got {type(entries).__name__}")
            return [SavedScreener.model_validate(entry) for entry in entries]
        except (ValueError, ValidationError) as e:
            # One bad entry invalidates the whole collection
            logger.warning(f"Discarding unreadable saved screeners: {e}")
            self._write([])
            return []

    def _write(self, screeners: list[SavedScreener]) -> None:
        payload = [screener.to_storage() for screener in screeners if not screener.is_default]
        self.store.set(self.key, json.dumps(payload))

    async def load_all(self) -> list[SavedScreener]:
        return self._read()

    async def create(self, screener: SavedScreener) -> SavedScreener:
        screeners = self._read()
        screeners.append(screener)
        self._write(screeners)
        return screener

    async def replace(self, screener: SavedScreener) -> SavedScreener:
        screeners = [screener if s.id == screener.id else s for s in self._read()]
        self._write(screeners)
        return screener

    async def remove(self, screener_id: str) -> None:
        self._write([s for s in self._read() if s.id != screener_id])


def screener_from_record(record: SavedFilterRecord, email: str = "") -> SavedScreener:
    """Convert a saved-filter service record into a SavedScreener.

    Raises:
        ValueError: If the record's ``filter`` is not a JSON object.
        ValidationError: If required fields are missing or invalid.
    """
    filters = json.loads(str(record.get("filter") or "{}"))
    if not isinstance(filters, dict):
        raise ValueError("filter payload is not a JSON object")

    notifications = None
    if record.get("is_alerting"):
        notifications = EmailNotifications(
            enabled=True,
            email=email,
            frequency=EmailFrequency(record.get("frequency") or EmailFrequency.DAILY.value),
        )

    return SavedScreener.model_validate(
        {
            "id": str(record.get("id")),
            "name": record.get("filter_name") or "",
            "filters": filters,
            "emailNotifications": notifications,
            "createdAt": record.get("created_date"),
            "updatedAt": record.get("last_updated_date"),
        }
    )


class RemoteScreenerRepository:
    """User presets kept by the saved-filter service."""

    def __init__(self, client: ScreenerServiceClient, user_id: str, email: str = "") -> None:
        self.client = client
        self.user_id = user_id
        self.email = email

    async def load_all(self) -> list[SavedScreener]:
        records = await self.client.fetch_filters(user_id=self.user_id)
        screeners: list[SavedScreener] = []
        for record in records:
            try:
                screeners.append(screener_from_record(record, self.email))
            except (ValueError, ValidationError) as e:
                logger.warning(f"Skipping unreadable saved filter {record.get('id')}: {e}")
        return screeners

    async def create(self, screener: SavedScreener) -> SavedScreener:
        notifications = screener.email_notifications
        await self.client.save_filter(
            user_id=self.user_id,
            email=notifications.email if notifications and notifications.email else self.email,
            filter_name=screener.name,
            filters_json=json.dumps(screener.filters.to_storage()),
            frequency=(notifications.frequency if notifications else EmailFrequency.DAILY).value,
            is_alerting=screener.is_alerting,
        )
        # The service assigns the id; read it back
        for saved in reversed(await self.load_all()):
            if saved.name == screener.name and saved.option_type == screener.option_type:
                return saved
        return screener

    async def replace(self, screener: SavedScreener) -> SavedScreener:
        notifications = screener.email_notifications
        await self.client.update_filter(
            screener.id,
            filter_name=screener.name,
            filters=json.dumps(screener.filters.to_storage()),
            is_alerting=screener.is_alerting,
            frequency=notifications.frequency.value if notifications else None,
            email_id=notifications.email if notifications else None,
        )
        return screener

    async def remove(self, screener_id: str) -> None:
        await self.client.delete_filter(screener_id)
