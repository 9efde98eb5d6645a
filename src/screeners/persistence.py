"""Saving, listing, editing and deleting named screener presets."""

import json
import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime

from pydantic import ValidationError

from src.data.cache import KeyedStore, MemoryKeyedStore
from src.data.fetchers.screener_service import ScreenerServiceClient
from src.data.models.option_type import OptionType
from src.exceptions import (
    DuplicateScreenerError,
    InvalidQueryError,
    ReadOnlyScreenerError,
    ScreenerNotFoundError,
    ScreenerPersistenceError,
)
from src.filters.state import FilterState
from src.query.compiler import compile_filters
from src.screeners.defaults import build_default_screeners, is_default_screener
from src.screeners.models import EmailFrequency, EmailNotifications, SavedScreener, ScreenerPatch
from src.screeners.repositories import ScreenerRepository
from src.utils.date_utils import utcnow

logger = logging.getLogger("wheelscreener")

DEFAULT_OVERRIDES_KEY = "defaultScreenerNotifications"


class ScreenerPersistence:
    """Named presets per option type, on top of a repository.

    Built-in defaults are always listed first and are read-only except for
    their notification settings, which are kept as overrides in a keyed store.
    Names are unique per option type among user presets.
    """

    def __init__(
        self,
        repository: ScreenerRepository,
        alert_client: ScreenerServiceClient | None = None,
        override_store: KeyedStore | None = None,
        clock: Callable[[], datetime] = utcnow,
        today: date | None = None,
    ) -> None:
        """Initialize persistence.

        Args:
            repository: Backend holding user presets.
            alert_client: When given, enabling notifications registers an alert query.
            override_store: Keyed store for default-preset notification overrides.
            clock: Returns the current aware datetime for timestamps.
            today: Fixed reference date for compiling alert queries.
        """
        self.repository = repository
        self.alert_client = alert_client
        self.override_store = override_store or MemoryKeyedStore()
        self.clock = clock
        self.today = today

    def _load_overrides(self) -> dict[str, EmailNotifications]:
        raw = self.override_store.get(DEFAULT_OVERRIDES_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            return {key: EmailNotifications.model_validate(value) for key, value in data.items()}
        except (ValueError, AttributeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable default screener overrides: {e}")
            return {}

    def _save_overrides(self, overrides: dict[str, EmailNotifications]) -> None:
        data = {key: value.model_dump(mode="json") for key, value in overrides.items()}
        self.override_store.set(DEFAULT_OVERRIDES_KEY, json.dumps(data))

    def _defaults(self) -> list[SavedScreener]:
        overrides = self._load_overrides()
        screeners = build_default_screeners()
        for screener in screeners:
            if screener.id in overrides:
                screener.email_notifications = overrides[screener.id]
        return screeners

    async def list_screeners(
        self,
        option_type: OptionType | str | None = None,
        include_defaults: bool = True,
    ) -> list[SavedScreener]:
        """List presets, defaults first.

        Args:
            option_type: Only presets of this type when given.
            include_defaults: Whether built-in presets are included.

        Returns:
            List of SavedScreener.
        """
        screeners = self._defaults() if include_defaults else []
        screeners.extend(await self.repository.load_all())
        if option_type is not None:
            wanted = OptionType(option_type)
            screeners = [s for s in screeners if s.option_type == wanted]
        return screeners

    async def get(self, screener_id: str) -> SavedScreener:
        """Look up a preset by id.

        Raises:
            ScreenerNotFoundError: If no preset has the id.
        """
        for screener in await self.list_screeners():
            if screener.id == screener_id:
                return screener
        raise ScreenerNotFoundError(f"No screener with id '{screener_id}'")

    async def save(
        self,
        name: str,
        filters: FilterState,
        email_notifications: EmailNotifications | None = None,
        *,
        overwrite: bool = False,
    ) -> SavedScreener:
        """Save the filters under a name.

        A user preset with the same name and option type is replaced only when
        ``overwrite`` is set; its id and creation time are kept.

        Args:
            name: Display name; surrounding whitespace is dropped.
            filters: Filter state snapshot; must carry an option type.
            email_notifications: Optional alert settings.
            overwrite: Confirms replacing a same-named preset.

        Returns:
            The stored SavedScreener.

        Raises:
            ScreenerPersistenceError: If the name is blank.
            InvalidQueryError: If the filters carry no option type.
            DuplicateScreenerError: If the name is taken and overwrite is False.
        """
        name = name.strip()
        if not name:
            raise ScreenerPersistenceError("Screener name cannot be blank")
        if filters.option_type is None:
            raise InvalidQueryError("A screener needs an option type")

        snapshot = filters.model_copy(deep=True)
        now = self.clock()
        user_screeners = await self.repository.load_all()
        existing = next(
            (s for s in user_screeners if s.name == name and s.option_type == filters.option_type),
            None,
        )

        if existing is not None:
            if not overwrite:
                raise DuplicateScreenerError(existing)
            screener = existing.model_copy(
                update={
                    "filters": snapshot,
                    "email_notifications": email_notifications,
                    "updated_at": now,
                }
            )
            saved = await self.repository.replace(screener)
            logger.info(f"Overwrote screener '{name}' ({saved.option_type.value})")
        else:
            screener = SavedScreener(
                id=uuid.uuid4().hex,
                name=name,
                filters=snapshot,
                email_notifications=email_notifications,
                created_at=now,
                updated_at=now,
            )
            saved = await self.repository.create(screener)
            logger.info(f"Saved screener '{name}' ({saved.option_type.value})")

        await self._register_alert(saved)
        return saved

    async def update(self, screener_id: str, patch: ScreenerPatch) -> SavedScreener:
        """Apply a partial update.

        Defaults accept notification changes only.

        Raises:
            ScreenerNotFoundError: If the id is unknown.
            ReadOnlyScreenerError: If a default preset's name or filters would change.
            DuplicateScreenerError: If a rename collides with another preset.
        """
        screener = await self.get(screener_id)
        notifications = None if patch.disable_notifications else (
            patch.email_notifications or screener.email_notifications
        )

        if screener.is_default:
            if not patch.touches_only_notifications():
                raise ReadOnlyScreenerError(f"Default screener '{screener.name}' is read-only")
            overrides = self._load_overrides()
            if notifications is None:
                overrides.pop(screener_id, None)
            else:
                overrides[screener_id] = notifications
            self._save_overrides(overrides)
            previous = screener.email_notifications
            screener.email_notifications = notifications
            logger.info(f"Updated notifications of default screener '{screener.name}'")
            if notifications != previous:
                await self._register_alert(screener)
            return screener

        update: dict[str, object] = {"email_notifications": notifications, "updated_at": self.clock()}
        if patch.filters is not None:
            filters = patch.filters.model_copy(deep=True)
            if filters.option_type is None:
                filters.option_type = screener.option_type
            update["filters"] = filters
        if patch.name is not None:
            name = patch.name.strip()
            if not name:
                raise ScreenerPersistenceError("Screener name cannot be blank")
            update["name"] = name

        updated = screener.model_copy(update=update)
        for other in await self.repository.load_all():
            if other.id != updated.id and other.name == updated.name and other.option_type == updated.option_type:
                raise DuplicateScreenerError(other)

        saved = await self.repository.replace(updated)
        logger.info(f"Updated screener '{saved.name}'")
        if saved.email_notifications != screener.email_notifications or saved.filters != screener.filters:
            await self._register_alert(saved)
        return saved

    async def delete(self, screener_id: str) -> None:
        """Delete a user preset.

        Raises:
            ReadOnlyScreenerError: If the id belongs to a default preset.
            ScreenerNotFoundError: If the id is unknown.
        """
        if is_default_screener(screener_id):
            raise ReadOnlyScreenerError("Default screeners cannot be deleted")
        screener = await self.get(screener_id)
        await self.repository.remove(screener_id)
        logger.info(f"Deleted screener '{screener.name}'")

    async def toggle_notifications(self, screener_id: str, email: str) -> SavedScreener:
        """Switch alerts off, or on at a daily frequency for ``email``."""
        screener = await self.get(screener_id)
        if screener.is_alerting:
            return await self.update(screener_id, ScreenerPatch(disable_notifications=True))
        notifications = EmailNotifications(enabled=True, email=email, frequency=EmailFrequency.DAILY)
        return await self.update(screener_id, ScreenerPatch(email_notifications=notifications))

    async def set_frequency(self, screener_id: str, frequency: EmailFrequency | str) -> SavedScreener:
        """Change the alert frequency of a screener that already has notifications."""
        screener = await self.get(screener_id)
        if screener.email_notifications is None:
            return screener
        notifications = screener.email_notifications.model_copy(update={"frequency": EmailFrequency(frequency)})
        return await self.update(screener_id, ScreenerPatch(email_notifications=notifications))

    async def _register_alert(self, screener: SavedScreener) -> None:
        notifications = screener.email_notifications
        if self.alert_client is None or notifications is None or not notifications.enabled:
            return
        operations = compile_filters(screener.filters, today=self.today)
        await self.alert_client.save_query(
            notifications.email,
            notifications.frequency.value,
            operations,
        )
