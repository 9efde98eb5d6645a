"""Static catalog of screener filter dimensions.

Every numeric filter the screener understands is described once here: its
slider bounds, default selection, step, optional exponential slider scale and
tooltip, together with how it is sent to the screening service (wire field,
comparison operators and value scale). Nothing in this module is mutated after
import.
"""

from pydantic import BaseModel, ConfigDict, model_validator

YIELD = "yield"
PRICE = "price"
VOLUME = "volume"
DELTA = "delta"
DTE = "dte"
PE_RATIO = "pe_ratio"
MARKET_CAP = "market_cap"
MONEYNESS = "moneyness"
IMPLIED_VOLATILITY = "implied_volatility"
ANNUALIZED_RETURN = "annualized_return"
PROBABILITY = "probability"
SYMBOLS = "symbols"
SECTOR = "sector"
MOVING_AVERAGE_CROSSOVER = "moving_average_crossover"

ANY_SECTOR = "All Sectors"
ANY_CROSSOVER = "Any"


class FilterDimension(BaseModel):
    """Immutable descriptor of a single numeric filter dimension."""

    model_config = ConfigDict(frozen=True)

    key: str
    field: str
    min: float
    max: float
    default_min: float
    default_max: float
    step: float
    tooltip: str
    is_exponential: bool = False
    exponent: float | None = None
    scale: float = 1.0
    min_operation: str = "gte"
    max_operation: str = "lte"

    @model_validator(mode="after")
    def check_bounds(self) -> "FilterDimension":
        """Ensure min <= default_min <= default_max <= max."""
        if not self.min <= self.default_min <= self.default_max <= self.max:
            raise ValueError(
                f"Invalid bounds for {self.key}: "
                f"{self.min} <= {self.default_min} <= {self.default_max} <= {self.max}"
            )
        if self.is_exponential and not self.exponent:
            raise ValueError(f"Exponential dimension {self.key} needs an exponent")
        return self

    @property
    def default_range(self) -> tuple[float, float]:
        return (self.default_min, self.default_max)

    def is_restrictive_min(self, value: float) -> bool:
        """True when a lower bound actually narrows the result set."""
        return value > self.min

    def is_restrictive_max(self, value: float) -> bool:
        """True when an upper bound actually narrows the result set."""
        return value < self.max

    def to_exponential(self, linear_value: float) -> float:
        """Map a linear slider position onto the exponential value scale."""
        if not self.is_exponential or self.exponent is None:
            return linear_value
        normalized = linear_value / self.max
        return round(normalized**self.exponent * self.max)

    def from_exponential(self, value: float) -> float:
        """Map an exponential-scale value back onto the linear slider."""
        if not self.is_exponential or self.exponent is None:
            return value
        normalized = value / self.max
        return round(normalized ** (1 / self.exponent) * self.max)


DIMENSIONS: dict[str, FilterDimension] = {
    YIELD: FilterDimension(
        key=YIELD,
        field="yieldPercent",
        min=0,
        max=10,
        default_min=0,
        default_max=10,
        step=0.5,
        tooltip="Minimum percentage yield to filter options",
        min_operation="gt",
        max_operation="lt",
    ),
    PRICE: FilterDimension(
        key=PRICE,
        field="strike",
        min=0,
        max=2000,
        default_min=0,
        default_max=2000,
        step=50,
        tooltip="Strike price range in dollars",
    ),
    VOLUME: FilterDimension(
        key=VOLUME,
        field="volume",
        min=0,
        max=1000,
        default_min=0,
        default_max=1000,
        step=50,
        tooltip="Minimum trading volume to ensure liquidity",
        min_operation="gt",
        max_operation="lt",
    ),
    DELTA: FilterDimension(
        key=DELTA,
        field="delta",
        min=-1,
        max=1,
        default_min=-1,
        default_max=1,
        step=0.05,
        tooltip=(
            "Delta value (-1 to 1). Delta measures the rate of change of option price "
            "with respect to the underlying asset's price."
        ),
    ),
    DTE: FilterDimension(
        key=DTE,
        field="expiration",
        min=0,
        max=365,
        default_min=0,
        default_max=365,
        step=1,
        tooltip="Number of days until option expiration",
        is_exponential=True,
        exponent=3,
    ),
    PE_RATIO: FilterDimension(
        key=PE_RATIO,
        field="peRatio",
        min=0,
        max=100,
        default_min=0,
        default_max=100,
        step=1,
        tooltip="Price-to-Earnings ratio to filter stocks",
    ),
    MARKET_CAP: FilterDimension(
        key=MARKET_CAP,
        field="marketCap",
        min=0,
        max=1000,
        default_min=0,
        default_max=1000,
        step=10,
        tooltip="Market capitalization in billions of dollars",
        is_exponential=True,
        exponent=3,
        scale=1_000_000_000,
    ),
    MONEYNESS: FilterDimension(
        key=MONEYNESS,
        field="strikeFilter",
        min=-15,
        max=15,
        default_min=-15,
        default_max=15,
        step=1,
        tooltip="Percentage difference between strike price and current stock price",
    ),
    IMPLIED_VOLATILITY: FilterDimension(
        key=IMPLIED_VOLATILITY,
        field="impliedVolatility",
        min=0,
        max=200,
        default_min=0,
        default_max=200,
        step=5,
        tooltip="Implied Volatility percentage range for option contracts",
    ),
    ANNUALIZED_RETURN: FilterDimension(
        key=ANNUALIZED_RETURN,
        field="annualizedReturn",
        min=0,
        max=200,
        default_min=0,
        default_max=200,
        step=5,
        tooltip="Annualized return of the premium if held to expiration",
    ),
    PROBABILITY: FilterDimension(
        key=PROBABILITY,
        field="probability",
        min=0,
        max=100,
        default_min=0,
        default_max=100,
        step=5,
        tooltip="Probability of profit at expiration",
    ),
}

# Order in which plain numeric ranges are compiled
RANGE_DIMENSIONS: tuple[str, ...] = (
    YIELD,
    PRICE,
    VOLUME,
    DELTA,
    IMPLIED_VOLATILITY,
    PE_RATIO,
    MARKET_CAP,
    ANNUALIZED_RETURN,
    PROBABILITY,
)

MOVING_AVERAGE_CROSSOVER_OPTIONS: tuple[str, ...] = (ANY_CROSSOVER, "200 > 50", "50 > 200")

SECTOR_OPTIONS: tuple[str, ...] = (
    ANY_SECTOR,
    "Basic Materials",
    "Communication Services",
    "Consumer Cyclical",
    "Consumer Defensive",
    "Energy",
    "Financial Services",
    "Healthcare",
    "Industrials",
    "Real Estate",
    "Technology",
    "Utilities",
)

ANY_MARKET_CAP = "All Market Caps"

# Category label -> market cap range in billions
MARKET_CAP_CATEGORIES: dict[str, tuple[float, float]] = {
    ANY_MARKET_CAP: (0, 1000),
    "Mega Cap (>$200B)": (200, 1000),
    "Large Cap ($10B-$200B)": (10, 200),
    "Mid Cap ($2B-$10B)": (2, 10),
    "Small Cap ($300M-$2B)": (0.3, 2),
    "Micro Cap (<$300M)": (0, 0.3),
}


def market_cap_range(category: str) -> tuple[float, float]:
    """Market cap range in billions for a category label.

    Raises:
        KeyError: If the label is not a known category.
    """
    if category not in MARKET_CAP_CATEGORIES:
        raise KeyError(f"Unknown market cap category: {category}")
    return MARKET_CAP_CATEGORIES[category]


DEFAULT_VISIBLE_COLUMNS: tuple[str, ...] = (
    "symbol",
    "stockPrice",
    "strike",
    "premium",
    "delta",
    "yieldPercent",
    "expiration",
    "earningsDate",
    "impliedVolatility",
)

ALL_COLUMNS: tuple[str, ...] = (
    "symbol",
    "stockPrice",
    "strike",
    "premium",
    "delta",
    "yieldPercent",
    "expiration",
    "annualizedReturn",
    "bidPrice",
    "askPrice",
    "volume",
    "openInterest",
    "peRatio",
    "marketCap",
    "sector",
    "earningsDate",
    "impliedVolatility",
)


def get_dimension(key: str) -> FilterDimension:
    """Look up a dimension by key.

    Raises:
        KeyError: If the key is not registered.
    """
    try:
        return DIMENSIONS[key]
    except KeyError:
        raise KeyError(f"Unknown filter dimension: {key}") from None
