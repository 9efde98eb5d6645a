"""Pydantic models for option contracts returned by the screening service."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.data.types import OptionDict


class Option(BaseModel):
    """A single normalized option contract row."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symbol: str = Field(..., description="Underlying ticker symbol")
    type: str | None = Field(None, description="Option type (call or put)")
    expiration: str | None = Field(None, description="Expiration date (yyyy-MM-dd)")
    stock_price: float = Field(0.0, description="Underlying stock price")
    strike: float = Field(0.0, description="Strike price")
    bid_price: float = Field(0.0, description="Bid price")
    ask_price: float = Field(0.0, description="Ask price")
    premium: float = Field(0.0, description="Bid/ask midpoint times contract multiplier")
    delta: float | None = Field(None, description="Option delta")
    volume: float = Field(0.0, description="Contracts traded")
    open_interest: float = Field(0.0, description="Open interest")
    yield_percent: float = Field(0.0, description="Premium yield in percent")
    implied_volatility: float = Field(0.0, description="Implied volatility in percent")
    earnings_date: str | None = Field(None, description="Next earnings date")
    pe_ratio: float = Field(0.0, description="Price to earnings ratio")
    market_cap: float = Field(0.0, description="Market capitalization")
    sector: str | None = Field(None, description="Company sector")
    probability: float = Field(0.0, description="Probability of profit")
    annualized_return: float = Field(0.0, description="Annualized return in percent")
    option_key: str | None = Field(None, description="Service-side contract key")
    last_updated_date: str | None = Field(None, description="When the service refreshed the row")

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Validate symbol is uppercase."""
        return v.upper().strip()

    @field_validator("earnings_date", "option_key", "last_updated_date", "sector", mode="before")
    @classmethod
    def stringify(cls, v: object) -> str | None:
        """Accept non-string identifiers and dates from the service."""
        if v is None:
            return None
        return str(v)

    def to_dict(self) -> OptionDict:
        """Convert to a camelCase dictionary matching the service field names."""
        return self.model_dump(by_alias=True)
