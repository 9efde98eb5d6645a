"""One page of screening results."""

from pydantic import BaseModel, Field

from src.data.models.option import Option


class QueryPage(BaseModel):
    """Normalized rows plus the service's authoritative total count."""

    rows: list[Option] = Field(default_factory=list)
    total_count: int = Field(0, ge=0, description="Matches across all pages")
