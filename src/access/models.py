"""Models for authentication state, subscription records and access status."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils.date_utils import parse_datetime


class AccessStatus(str, Enum):
    """Resolved access tier of the current user."""

    UNAUTHENTICATED = "unauthenticated"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAUSED = "paused"
    NEEDS_SUBSCRIPTION = "needs_subscription"
    TRIAL_ENDED = "trial_ended"
    INCOMPLETE_EXPIRED = "incomplete_expired"


class SubscriptionStatus(str, Enum):
    """Status values reported by the billing provider."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"


class AuthUser(BaseModel):
    """Read-only snapshot of the signed-in user."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    created_at: datetime | None = None
    id_token: str | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: object) -> datetime | None:
        """Accept ISO strings; naive values are taken as UTC."""
        return parse_datetime(v) if isinstance(v, (str, datetime)) else None


class SubscriptionRecord(BaseModel):
    """One subscription document from the billing provider."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    status: SubscriptionStatus
    created_at: datetime
    current_period_end: datetime | None = None
    trial_end: datetime | None = None

    @field_validator("created_at", "current_period_end", "trial_end", mode="before")
    @classmethod
    def parse_timestamps(cls, v: object) -> object:
        """Normalize timestamps to aware UTC datetimes."""
        if isinstance(v, (str, datetime)):
            return parse_datetime(v) or v
        return v


class AccessResolution(BaseModel):
    """Result of one access resolution."""

    status: AccessStatus
    error: bool = Field(False, description="True when the subscription read failed")
    subscription: SubscriptionRecord | None = None
    resolved_at: datetime | None = None
