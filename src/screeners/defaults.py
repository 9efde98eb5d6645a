"""Built-in read-only screener presets, four per option type."""

from datetime import datetime, timezone

from src.data.models.option_type import OptionType
from src.screeners.models import SavedScreener

# Fixed so the presets serialize identically across runs
DEFAULTS_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)

_PRESETS: list[tuple[str, str, dict[str, object]]] = [
    (
        "high-iv",
        "High IV",
        {
            "impliedVolatility": [50, 200],
            "volumeRange": [100, 1000000],
            "minPrice": 5,
            "maxPrice": 1000,
        },
    ),
    (
        "high-yield",
        "High Yield",
        {
            "yieldRange": [2, 100],
            "volumeRange": [100, 1000000],
            "minPrice": 5,
            "maxPrice": 1000,
        },
    ),
    (
        "earnings-next-week",
        "Earnings Next Week",
        {
            "minDte": 1,
            "maxDte": 7,
            "impliedVolatility": [30, 200],
            "volumeRange": [100, 1000000],
        },
    ),
    (
        "high-volume",
        "High Volume",
        {
            "volumeRange": [100, 1000000],
            "minPrice": 5,
            "maxPrice": 1000,
        },
    ),
]


def build_default_screeners() -> list[SavedScreener]:
    """Create fresh copies of the built-in presets."""
    screeners: list[SavedScreener] = []
    for option_type in OptionType:
        for slug, name, filters in _PRESETS:
            screeners.append(
                SavedScreener(
                    id=f"{slug}-{option_type.value}",
                    name=name,
                    filters={**filters, "optionType": option_type.value},
                    created_at=DEFAULTS_CREATED_AT,
                    updated_at=DEFAULTS_CREATED_AT,
                    is_default=True,
                )
            )
    return screeners


DEFAULT_SCREENER_IDS = frozenset(screener.id for screener in build_default_screeners())


def is_default_screener(screener_id: str) -> bool:
    return screener_id in DEFAULT_SCREENER_IDS
