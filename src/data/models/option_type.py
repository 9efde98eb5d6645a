"""Option type and query enumerations."""

from enum import Enum


class OptionType(str, Enum):
    """The two independently screened option universes."""

    CALL = "call"
    PUT = "put"


class SortDirection(str, Enum):
    """Sort direction understood by the screening service."""

    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        """Return the opposite direction."""
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class StrikeFilterMode(str, Enum):
    """Legacy moneyness presets from the mode-based screener UI."""

    ALL = "ALL"
    ONE_OUT = "ONE_OUT"
    THREE_PERCENT = "THREE_PERCENT"
