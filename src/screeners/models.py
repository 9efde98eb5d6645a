"""Pydantic models for saved screener presets."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.data.models.option_type import OptionType
from src.filters.state import FilterState
from src.utils.date_utils import parse_datetime, utcnow


class EmailFrequency(str, Enum):
    """How often an alerting screener is mailed."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EmailNotifications(BaseModel):
    """Alert settings attached to a screener."""

    enabled: bool = False
    email: str = ""
    frequency: EmailFrequency = EmailFrequency.DAILY


class SavedScreener(BaseModel):
    """A named snapshot of a filter state for one option type."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    filters: FilterState
    email_notifications: EmailNotifications | None = Field(None, alias="emailNotifications")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    is_default: bool = Field(False, alias="isDefault")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names are trimmed and must not be blank."""
        name = v.strip()
        if not name:
            raise ValueError("Screener name cannot be blank")
        return name

    @field_validator("filters", mode="before")
    @classmethod
    def default_option_type(cls, v: Any) -> Any:
        """Presets saved without an option type are call screeners."""
        if isinstance(v, dict) and not v.get("optionType") and not v.get("option_type"):
            return {**v, "optionType": OptionType.CALL.value}
        return v

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> Any:
        if v is None or v == "":
            return utcnow()
        if isinstance(v, (str, datetime)):
            return parse_datetime(v) or v
        return v

    @property
    def option_type(self) -> OptionType:
        return self.filters.option_type or OptionType.CALL

    @property
    def is_alerting(self) -> bool:
        return bool(self.email_notifications and self.email_notifications.enabled)

    def to_storage(self) -> dict[str, Any]:
        """Serialize with camelCase keys for the keyed store."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ScreenerPatch(BaseModel):
    """Partial update of a saved screener; None fields are left unchanged."""

    name: str | None = None
    filters: FilterState | None = None
    email_notifications: EmailNotifications | None = None
    disable_notifications: bool = False

    def touches_only_notifications(self) -> bool:
        return self.name is None and self.filters is None
