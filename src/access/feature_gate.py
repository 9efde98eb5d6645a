"""Pure predicates deciding what an access status unlocks."""

from config.settings_pydantic import settings
from src.access.models import AccessStatus
from src.filters.registry import (
    ANNUALIZED_RETURN,
    DELTA,
    DIMENSIONS,
    IMPLIED_VOLATILITY,
    MARKET_CAP,
    MOVING_AVERAGE_CROSSOVER,
    PE_RATIO,
    PROBABILITY,
    SECTOR,
    SYMBOLS,
    YIELD,
)

FULL_ACCESS_STATUSES = frozenset({AccessStatus.ACTIVE, AccessStatus.TRIALING})

# Dimensions that need full access; everything else is always usable
GATED_DIMENSIONS = frozenset(
    {YIELD, ANNUALIZED_RETURN, DELTA, IMPLIED_VOLATILITY, PROBABILITY, PE_RATIO, MARKET_CAP}
)

ALL_DIMENSIONS = frozenset(DIMENSIONS) | {SYMBOLS, SECTOR, MOVING_AVERAGE_CROSSOVER}

STATUS_MESSAGES: dict[AccessStatus, str] = {
    AccessStatus.ACTIVE: "You have full access to all features.",
    AccessStatus.TRIALING: "You are currently in your trial period.",
    AccessStatus.PAUSED: "Your subscription is paused.",
    AccessStatus.INCOMPLETE_EXPIRED: "Your trial has ended. Please subscribe to continue accessing features.",
    AccessStatus.TRIAL_ENDED: "Your trial has ended. Please subscribe to continue accessing features.",
    AccessStatus.NEEDS_SUBSCRIPTION: "Please subscribe to access features.",
    AccessStatus.UNAUTHENTICATED: "Please sign in to access features.",
}

REDIRECT_TARGETS: dict[AccessStatus, str] = {
    AccessStatus.UNAUTHENTICATED: "/auth/signin",
    AccessStatus.NEEDS_SUBSCRIPTION: "/pricing",
    AccessStatus.INCOMPLETE_EXPIRED: "/pricing",
    AccessStatus.TRIAL_ENDED: "/pricing",
    AccessStatus.PAUSED: "/billing",
}


def can_access_feature(status: AccessStatus) -> bool:
    """Full access only for active and trialing users."""
    return status in FULL_ACCESS_STATUSES


def enabled_dimensions(status: AccessStatus) -> frozenset[str]:
    """Dimension keys the status may compile into a query."""
    if can_access_feature(status):
        return ALL_DIMENSIONS
    return ALL_DIMENSIONS - GATED_DIMENSIONS


def is_dimension_enabled(key: str, status: AccessStatus) -> bool:
    return key in enabled_dimensions(status)


def should_obscure_results(status: AccessStatus) -> bool:
    """Results beyond the preview are hidden without full access."""
    return not can_access_feature(status)


def visible_row_count(status: AccessStatus, row_count: int, preview_rows: int | None = None) -> int:
    """Number of rows shown in the clear.

    Args:
        status: Resolved access status.
        row_count: Rows on the current page.
        preview_rows: Rows shown to users without full access. Defaults to
            settings.preview_rows.

    Returns:
        Row count to render unobscured.
    """
    if can_access_feature(status):
        return row_count
    preview = settings.preview_rows if preview_rows is None else preview_rows
    return min(row_count, max(preview, 0))


def status_message(status: AccessStatus) -> str:
    return STATUS_MESSAGES.get(status, "Unknown status.")


def should_show_payment_warning(status: AccessStatus) -> bool:
    """A paused subscription has a payment problem the user can fix."""
    return status is AccessStatus.PAUSED


def shows_discount(status: AccessStatus) -> bool:
    """Trial users and lapsed trials are offered the discount."""
    return status in (AccessStatus.TRIALING, AccessStatus.TRIAL_ENDED)


def redirect_target(status: AccessStatus) -> str | None:
    """Route a user without access should be sent to, None when no redirect."""
    return REDIRECT_TARGETS.get(status)
