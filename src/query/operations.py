"""Wire-level query models understood by the screening service."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from config.settings_pydantic import settings
from src.data.models.option_type import SortDirection
from src.data.types import OperationValue, QueryPayload


class Operation(str, Enum):
    """Filter operators accepted by the screening service."""

    EQ = "eq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    SORT = "sort"
    STRIKE_FILTER = "strikeFilter"


class FilterOperation(BaseModel):
    """A single filter operation; an ordered list of these is a query."""

    model_config = ConfigDict(frozen=True)

    operation: Operation
    field: str
    value: OperationValue

    def to_wire(self) -> dict[str, OperationValue]:
        return {"operation": self.operation.value, "field": self.field, "value": self.value}


class SortSpec(BaseModel):
    """Column and direction for server-side ordering."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.ASC


class QueryRequest(BaseModel):
    """Compiled operations plus the paging envelope posted to the service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    filters: tuple[FilterOperation, ...]
    paging: bool = True
    page_no: int = Field(1, ge=1, alias="pageNo")
    page_size: int = Field(default_factory=lambda: settings.default_page_size, ge=1, alias="pageSize")
    user_id: str | None = Field(None, alias="userId")

    def to_payload(self) -> QueryPayload:
        """Build the JSON body for the screening endpoint."""
        payload: QueryPayload = {
            "filters": [operation.to_wire() for operation in self.filters],
            "paging": self.paging,
            "pageNo": self.page_no,
            "pageSize": self.page_size,
        }
        if self.user_id:
            payload["userId"] = self.user_id
        return payload

    def with_page(self, page_no: int) -> "QueryRequest":
        """Copy of this request pointing at another page."""
        return self.model_copy(update={"page_no": page_no})
