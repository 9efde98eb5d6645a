"""Resolution of authentication plus subscription records into an access status."""

import logging
import math
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Protocol

from config.settings_pydantic import settings
from src.access.models import (
    AccessResolution,
    AccessStatus,
    AuthUser,
    SubscriptionRecord,
    SubscriptionStatus,
)
from src.utils.date_utils import days_between, utcnow

logger = logging.getLogger("wheelscreener")


class SubscriptionProvider(Protocol):
    """Read-only source of a user's subscription records."""

    async def get_subscriptions(self, user_id: str) -> list[SubscriptionRecord]:
        """Return every subscription record of the user; may raise."""
        ...


def latest_subscription(records: Sequence[SubscriptionRecord]) -> SubscriptionRecord | None:
    """Most recently created record, or None when there are none."""
    if not records:
        return None
    return max(records, key=lambda record: record.created_at)


def in_grace_period(
    record: SubscriptionRecord,
    now: datetime,
    grace_period_days: int | None = None,
) -> bool:
    """Whether a past-due record is still within the grace window after its period end."""
    if record.current_period_end is None:
        return False
    grace = settings.grace_period_days if grace_period_days is None else grace_period_days
    return now < record.current_period_end + timedelta(days=grace)


def _had_trial(latest: SubscriptionRecord, records: Sequence[SubscriptionRecord]) -> bool:
    if latest.trial_end is not None:
        return True
    return any(record.status is SubscriptionStatus.TRIALING for record in records if record is not latest)


def _signup_trial_status(
    user: AuthUser,
    now: datetime,
    signup_trial_days: int | None,
) -> AccessStatus:
    if signup_trial_days is None or user.created_at is None:
        return AccessStatus.NEEDS_SUBSCRIPTION
    if days_between(user.created_at, now) > signup_trial_days:
        return AccessStatus.TRIAL_ENDED
    return AccessStatus.TRIALING


def resolve_access_status(
    user: AuthUser | None,
    subscriptions: Sequence[SubscriptionRecord],
    *,
    now: datetime | None = None,
    grace_period_days: int | None = None,
    signup_trial_days: int | None = None,
) -> AccessStatus:
    """Derive the access status; the first matching rule wins.

    Only the newest record (by ``created_at``) decides. A past-due record
    keeps full access for the grace period after its current period end.
    Without any record, the optional signup-trial window measured from the
    account creation date applies.

    Args:
        user: Signed-in user, or None.
        subscriptions: All subscription records of the user.
        now: Reference time. Defaults to the current UTC time.
        grace_period_days: Past-due grace window. Defaults to settings.
        signup_trial_days: Trial length for users without records. Defaults to
            settings.signup_trial_days; None disables the signup trial.

    Returns:
        Resolved AccessStatus.
    """
    if user is None:
        return AccessStatus.UNAUTHENTICATED

    now = now or utcnow()
    latest = latest_subscription(subscriptions)
    if latest is None:
        trial_days = settings.signup_trial_days if signup_trial_days is None else signup_trial_days
        return _signup_trial_status(user, now, trial_days)

    if latest.status is SubscriptionStatus.ACTIVE:
        return AccessStatus.ACTIVE
    if latest.status is SubscriptionStatus.TRIALING:
        return AccessStatus.TRIALING
    if latest.status is SubscriptionStatus.PAST_DUE and in_grace_period(latest, now, grace_period_days):
        return AccessStatus.ACTIVE
    if latest.status is SubscriptionStatus.INCOMPLETE_EXPIRED:
        return AccessStatus.INCOMPLETE_EXPIRED
    if latest.status is SubscriptionStatus.PAUSED:
        return AccessStatus.PAUSED
    if _had_trial(latest, subscriptions):
        return AccessStatus.TRIAL_ENDED
    return AccessStatus.NEEDS_SUBSCRIPTION


def remaining_trial_days(
    user: AuthUser | None,
    subscriptions: Sequence[SubscriptionRecord],
    *,
    now: datetime | None = None,
    signup_trial_days: int | None = None,
) -> int:
    """Whole days left in the user's trial, 0 when not trialing."""
    if user is None:
        return 0
    now = now or utcnow()
    latest = latest_subscription(subscriptions)

    if latest is not None:
        if latest.status is SubscriptionStatus.TRIALING and latest.trial_end is not None:
            return max(0, math.ceil((latest.trial_end - now).total_seconds() / 86400))
        return 0

    trial_days = settings.signup_trial_days if signup_trial_days is None else signup_trial_days
    if trial_days is None or user.created_at is None:
        return 0
    return max(0, trial_days - days_between(user.created_at, now))


class AccessStatusResolver:
    """Resolves and memoizes the access status of the current user."""

    def __init__(
        self,
        provider: SubscriptionProvider,
        grace_period_days: int | None = None,
        signup_trial_days: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize resolver.

        Args:
            provider: Subscription record source.
            grace_period_days: Past-due grace window. Defaults to settings.
            signup_trial_days: Signup trial length. Defaults to settings.
            clock: Returns the current aware datetime.
        """
        self.provider = provider
        self.grace_period_days = grace_period_days
        self.signup_trial_days = signup_trial_days
        self.clock = clock
        self._current: AccessResolution | None = None
        self._user: AuthUser | None = None
        self._records: list[SubscriptionRecord] = []

    @property
    def current(self) -> AccessResolution | None:
        """Last resolution, or None before the first resolve."""
        return self._current

    @property
    def status(self) -> AccessStatus:
        """Last resolved status; unauthenticated before the first resolve."""
        return self._current.status if self._current else AccessStatus.UNAUTHENTICATED

    async def resolve(self, user: AuthUser | None, refresh: bool = False) -> AccessResolution:
        """Resolve the access status of ``user``.

        A failing subscription read resolves to needs_subscription with the
        error flag set.

        Args:
            user: Signed-in user, or None.
            refresh: Re-read subscriptions even if this user was resolved before.

        Returns:
            AccessResolution.
        """
        if (
            not refresh
            and self._current is not None
            and self._user is not None
            and user is not None
            and self._user.uid == user.uid
        ):
            return self._current

        now = self.clock()
        if user is None:
            return self._remember(None, [], AccessResolution(status=AccessStatus.UNAUTHENTICATED, resolved_at=now))

        try:
            records = await self.provider.get_subscriptions(user.uid)
        except Exception as e:
            logger.error(f"Subscription lookup failed for {user.uid}, denying access: {e}")
            resolution = AccessResolution(status=AccessStatus.NEEDS_SUBSCRIPTION, error=True, resolved_at=now)
            return self._remember(None, [], resolution)

        status = resolve_access_status(
            user,
            records,
            now=now,
            grace_period_days=self.grace_period_days,
            signup_trial_days=self.signup_trial_days,
        )
        logger.info(f"Resolved access for {user.uid}: {status.value}")
        resolution = AccessResolution(
            status=status,
            subscription=latest_subscription(records),
            resolved_at=now,
        )
        return self._remember(user, records, resolution)

    def _remember(
        self,
        user: AuthUser | None,
        records: list[SubscriptionRecord],
        resolution: AccessResolution,
    ) -> AccessResolution:
        self._user = user
        self._records = list(records)
        self._current = resolution
        return resolution

    def remaining_trial_days(self) -> int:
        """Trial days left for the last resolved user."""
        return remaining_trial_days(
            self._user,
            self._records,
            now=self.clock(),
            signup_trial_days=self.signup_trial_days,
        )

    def invalidate(self) -> None:
        """Forget the memoized resolution."""
        self._current = None
        self._user = None
        self._records = []
