"""Typed filter state per option type and its keyed-store persistence."""

import json
import logging
from datetime import date
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from src.data.cache import KeyedStore
from src.data.models.option_type import OptionType
from src.filters.registry import (
    ANNUALIZED_RETURN,
    ANY_CROSSOVER,
    ANY_SECTOR,
    DELTA,
    DIMENSIONS,
    DTE,
    IMPLIED_VOLATILITY,
    MARKET_CAP,
    MONEYNESS,
    MOVING_AVERAGE_CROSSOVER,
    PE_RATIO,
    PRICE,
    PROBABILITY,
    SECTOR,
    SYMBOLS,
    VOLUME,
    YIELD,
)

logger = logging.getLogger("wheelscreener")

Range = tuple[float, float]


def _default_range(key: str):
    return lambda: DIMENSIONS[key].default_range


def _normalize_symbols(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    symbols: list[str] = []
    for item in value:
        symbol = str(item).strip().upper()
        if symbol and symbol not in symbols:
            symbols.append(symbol)
    return symbols


class FilterState(BaseModel):
    """Current filter values for one option type.

    Field names are the Python accessors; aliases are the camelCase keys used in
    the keyed store and in saved screener payloads.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    option_type: OptionType | None = Field(None, alias="optionType")
    symbols: list[str] = Field(default_factory=list, alias="selectedStocks")
    excluded_symbols: list[str] = Field(default_factory=list, alias="excludedStocks")
    yield_range: Range = Field(default_factory=_default_range(YIELD), alias="yieldRange")
    price_range: Range = Field(default_factory=_default_range(PRICE), alias="priceRange")
    volume_range: Range = Field(default_factory=_default_range(VOLUME), alias="volumeRange")
    delta_range: Range = Field(default_factory=_default_range(DELTA), alias="deltaFilter")
    dte_range: Range = Field(default_factory=_default_range(DTE), alias="dteRange")
    min_expiration: date | None = Field(None, alias="minExpiration")
    max_expiration: date | None = Field(None, alias="maxExpiration")
    pe_ratio: Range = Field(default_factory=_default_range(PE_RATIO), alias="peRatio")
    market_cap: Range = Field(default_factory=_default_range(MARKET_CAP), alias="marketCap")
    moneyness_range: Range = Field(
        default_factory=_default_range(MONEYNESS),
        alias="moneynessRange",
    )
    implied_volatility: Range = Field(
        default_factory=_default_range(IMPLIED_VOLATILITY),
        alias="impliedVolatility",
    )
    annualized_return: Range = Field(
        default_factory=_default_range(ANNUALIZED_RETURN),
        alias="annualizedReturn",
    )
    probability: Range = Field(
        default_factory=_default_range(PROBABILITY),
        alias="probabilityOfProfit",
    )
    sector: str = Field(ANY_SECTOR, alias="sector")
    moving_average_crossover: str = Field(ANY_CROSSOVER, alias="movingAverageCrossover")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        """Translate keys written by older screener payloads."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "priceRange" not in data and ("minPrice" in data or "maxPrice" in data):
            price = DIMENSIONS[PRICE]
            data["priceRange"] = (
                data.pop("minPrice", None) or price.default_min,
                data.pop("maxPrice", None) or price.default_max,
            )
        if "dteRange" not in data and ("minDte" in data or "maxDte" in data):
            dte = DIMENSIONS[DTE]
            data["dteRange"] = (
                data.pop("minDte", None) or dte.default_min,
                data.pop("maxDte", None) or dte.default_max,
            )
        search_term = data.pop("searchTerm", None)
        if search_term and not data.get("selectedStocks") and not data.get("symbols"):
            data["selectedStocks"] = search_term
        return data

    @field_validator("symbols", "excluded_symbols", mode="before")
    @classmethod
    def validate_symbols(cls, v: Any) -> list[str]:
        """Uppercase, strip and de-duplicate symbols, keeping their order."""
        return _normalize_symbols(v)

    @field_validator("sector", "moving_average_crossover", mode="before")
    @classmethod
    def validate_categorical(cls, v: Any, info: ValidationInfo) -> Any:
        """Older payloads stored categorical selections as single-item lists."""
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
        if not v:
            return ANY_SECTOR if info.field_name == "sector" else ANY_CROSSOVER
        return v

    @classmethod
    def defaults(cls, option_type: OptionType | str) -> "FilterState":
        """Create a state holding registry defaults."""
        return cls(option_type=OptionType(option_type))

    def to_storage(self) -> dict[str, Any]:
        """Serialize with camelCase keys and JSON-compatible values."""
        return self.model_dump(by_alias=True, mode="json")

    def changed_dimensions(self) -> list[str]:
        """Keys of the dimensions that differ from their registry defaults."""
        changed: list[str] = []
        if self.symbols:
            changed.append(SYMBOLS)
        ranges = {
            YIELD: self.yield_range,
            PRICE: self.price_range,
            VOLUME: self.volume_range,
            DELTA: self.delta_range,
            DTE: self.dte_range,
            PE_RATIO: self.pe_ratio,
            MARKET_CAP: self.market_cap,
            MONEYNESS: self.moneyness_range,
            IMPLIED_VOLATILITY: self.implied_volatility,
            ANNUALIZED_RETURN: self.annualized_return,
            PROBABILITY: self.probability,
        }
        for key, value in ranges.items():
            if tuple(value) != DIMENSIONS[key].default_range:
                changed.append(key)
        if self.min_expiration or self.max_expiration:
            if DTE not in changed:
                changed.append(DTE)
        if self.sector != ANY_SECTOR:
            changed.append(SECTOR)
        if self.moving_average_crossover != ANY_CROSSOVER:
            changed.append(MOVING_AVERAGE_CROSSOVER)
        return changed

    def range_for(self, key: str) -> Range:
        """Return the current range of a numeric dimension by registry key."""
        attribute = RANGE_ATTRIBUTES.get(key)
        if attribute is None:
            raise KeyError(f"No range attribute for dimension: {key}")
        value: Range = getattr(self, attribute)
        return value


RANGE_ATTRIBUTES: dict[str, str] = {
    YIELD: "yield_range",
    PRICE: "price_range",
    VOLUME: "volume_range",
    DELTA: "delta_range",
    DTE: "dte_range",
    PE_RATIO: "pe_ratio",
    MARKET_CAP: "market_cap",
    MONEYNESS: "moneyness_range",
    IMPLIED_VOLATILITY: "implied_volatility",
    ANNUALIZED_RETURN: "annualized_return",
    PROBABILITY: "probability",
}


class FilterStateStore:
    """Loads and flushes FilterState through a keyed store.

    Each field lives under ``"<optionType>_<alias>"`` holding a JSON value, the
    same layout the web client keeps in browser storage.
    """

    def __init__(self, store: KeyedStore) -> None:
        self.store = store

    @staticmethod
    def key_for(option_type: OptionType | str, alias: str) -> str:
        return f"{OptionType(option_type).value}_{alias}"

    def load(self, option_type: OptionType | str) -> FilterState:
        """Restore the remembered state, falling back to defaults per field.

        Args:
            option_type: Option type whose values are read.

        Returns:
            FilterState with stored values applied over registry defaults.
        """
        state = FilterState.defaults(option_type)
        for name, field in FilterState.model_fields.items():
            if name == "option_type":
                continue
            key = self.key_for(option_type, field.alias or name)
            raw = self.store.get(key)
            if raw is None:
                continue
            try:
                setattr(state, name, json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable stored value for {key}: {e}")
        return state

    def save(self, state: FilterState) -> None:
        """Flush every field of the state to the keyed store."""
        if state.option_type is None:
            raise ValueError("Cannot persist a filter state without an option type")
        stored = state.to_storage()
        for name, field in FilterState.model_fields.items():
            if name == "option_type":
                continue
            alias = field.alias or name
            self.store.set(self.key_for(state.option_type, alias), json.dumps(stored[alias]))
        logger.debug(f"Saved {state.option_type.value} filter state")

    def reset(self, option_type: OptionType | str) -> FilterState:
        """Write registry defaults for the option type and return them."""
        state = FilterState.defaults(option_type)
        self.save(state)
        logger.info(f"Reset {state.option_type.value} filters to defaults")
        return state
