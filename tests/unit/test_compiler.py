"""Unit tests for the filter compiler."""

from datetime import date

import pytest

from src.access.feature_gate import enabled_dimensions
from src.access.models import AccessStatus
from src.data.models.option_type import SortDirection, StrikeFilterMode
from src.exceptions import InvalidQueryError
from src.filters.state import FilterState
from src.query.compiler import (
    build_query_request,
    clamp_range,
    compile_filters,
    compile_query,
    expiration_bounds,
    quote,
    wire_number,
)
from src.query.operations import Operation, SortSpec


def wire(operations) -> list[dict]:
    return [operation.to_wire() for operation in operations]


def fields(operations) -> list[str]:
    return [operation.field for operation in operations]


class TestHelpers:
    """Tests for compiler helpers."""

    def test_quote(self) -> None:
        """Test literals are wrapped in double quotes."""
        assert quote("AAPL") == '"AAPL"'

    def test_wire_number(self) -> None:
        """Test integral floats go out as integers."""
        assert wire_number(2.0) == 2
        assert isinstance(wire_number(2.0), int)
        assert wire_number(0.05) == 0.05

    def test_clamp_range(self) -> None:
        """Test inverted ranges collapse onto the maximum."""
        assert clamp_range((500, 100)) == (100, 100)
        assert clamp_range((1, 2)) == (1, 2)


class TestCompileFilters:
    """Tests for compile_filters."""

    def test_defaults_compile_to_type_and_today(self, call_state: FilterState, today: date) -> None:
        """Test an untouched state only pins the type and today's expirations."""
        assert wire(compile_filters(call_state, today=today)) == [
            {"operation": "eq", "field": "type", "value": '"call"'},
            {"operation": "eq", "field": "expiration", "value": '"2024-01-15"'},
        ]

    def test_deterministic(self, call_state: FilterState, today: date) -> None:
        """Test the same inputs always give the same operations."""
        call_state.yield_range = (2, 8)
        call_state.symbols = ["AAPL", "MSFT"]
        sort = SortSpec(field="strike", direction=SortDirection.DESC)
        first = compile_filters(call_state, sort, StrikeFilterMode.ONE_OUT, today=today)
        second = compile_filters(call_state, sort, StrikeFilterMode.ONE_OUT, today=today)
        assert first == second

    def test_missing_option_type(self, today: date) -> None:
        """Test a state without option type is rejected."""
        with pytest.raises(InvalidQueryError):
            compile_filters(FilterState(), today=today)
        with pytest.raises(InvalidQueryError):
            compile_filters(None, today=today)

    def test_single_symbol(self, call_state: FilterState, today: date) -> None:
        """Test one symbol compiles to an exact match."""
        call_state.symbols = ["aapl"]
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "eq", "field": "symbol", "value": '"AAPL"'} in operations

    def test_multiple_symbols(self, call_state: FilterState, today: date) -> None:
        """Test several symbols compile to one 'in' with a quoted comma list."""
        call_state.symbols = ["AAPL", "MSFT", "NVDA"]
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "in", "field": "symbol", "value": '"AAPL,MSFT,NVDA"'} in operations
        assert fields(compile_filters(call_state, today=today)).count("symbol") == 1

    def test_yield_lower_bound_only(self, call_state: FilterState, today: date) -> None:
        """Test a bound left at the dimension edge is omitted."""
        call_state.yield_range = (2, 10)
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "gt", "field": "yieldPercent", "value": 2} in operations
        assert not any(op["field"] == "yieldPercent" and op["operation"] == "lt" for op in operations)

    def test_yield_upper_bound_only(self, call_state: FilterState, today: date) -> None:
        """Test the exclusive upper bound operator on yield."""
        call_state.yield_range = (0, 5.5)
        operations = wire(compile_filters(call_state, today=today))
        assert [op for op in operations if op["field"] == "yieldPercent"] == [
            {"operation": "lt", "field": "yieldPercent", "value": 5.5},
        ]

    def test_delta_both_bounds(self, put_state: FilterState, today: date) -> None:
        """Test delta uses inclusive bounds."""
        put_state.delta_range = (-0.5, 0.5)
        operations = wire(compile_filters(put_state, today=today))
        assert {"operation": "gte", "field": "delta", "value": -0.5} in operations
        assert {"operation": "lte", "field": "delta", "value": 0.5} in operations

    def test_market_cap_scaled(self, call_state: FilterState, today: date) -> None:
        """Test market cap is sent in dollars."""
        call_state.market_cap = (10, 1000)
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "gte", "field": "marketCap", "value": 10_000_000_000} in operations

    def test_inverted_range_clamped(self, call_state: FilterState, today: date) -> None:
        """Test min > max collapses onto max."""
        call_state.price_range = (500, 100)
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "gte", "field": "strike", "value": 100} in operations
        assert {"operation": "lte", "field": "strike", "value": 100} in operations

    def test_dte_range(self, call_state: FilterState, today: date) -> None:
        """Test days to expiration become a date window."""
        call_state.dte_range = (7, 45)
        operations = [op for op in wire(compile_filters(call_state, today=today)) if op["field"] == "expiration"]
        assert operations == [
            {"operation": "gte", "field": "expiration", "value": '"2024-01-22"'},
            {"operation": "lte", "field": "expiration", "value": '"2024-02-29"'},
        ]

    def test_dte_floor_without_ceiling(self, call_state: FilterState, today: date) -> None:
        """Test a floor alone uses the largest days to expiration as ceiling."""
        call_state.dte_range = (7, 365)
        assert expiration_bounds(call_state, today) == (date(2024, 1, 22), date(2025, 1, 14))

    def test_explicit_ceiling(self, call_state: FilterState, today: date) -> None:
        """Test an explicit ceiling with no floor starts at today."""
        call_state.max_expiration = date(2024, 3, 15)
        operations = [op for op in wire(compile_filters(call_state, today=today)) if op["field"] == "expiration"]
        assert operations == [
            {"operation": "gte", "field": "expiration", "value": '"2024-01-15"'},
            {"operation": "lte", "field": "expiration", "value": '"2024-03-15"'},
        ]

    def test_explicit_dates_win(self, call_state: FilterState, today: date) -> None:
        """Test explicit dates override the days-to-expiration range."""
        call_state.dte_range = (7, 45)
        call_state.min_expiration = date(2024, 2, 2)
        call_state.max_expiration = date(2024, 2, 16)
        assert expiration_bounds(call_state, today) == (date(2024, 2, 2), date(2024, 2, 16))

    def test_moneyness_independent_of_strike(self, call_state: FilterState, today: date) -> None:
        """Test moneyness adds one strikeFilter and leaves the strike range alone."""
        call_state.moneyness_range = (5, 15)
        call_state.price_range = (100, 200)
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "strikeFilter", "field": "call", "value": 0.05} in operations
        assert {"operation": "gte", "field": "strike", "value": 100} in operations
        assert {"operation": "lte", "field": "strike", "value": 200} in operations

    def test_default_moneyness_omitted(self, put_state: FilterState, today: date) -> None:
        """Test no strikeFilter without a moneyness choice."""
        operations = compile_filters(put_state, today=today)
        assert all(op.operation is not Operation.STRIKE_FILTER for op in operations)

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (StrikeFilterMode.ONE_OUT, 0),
            (StrikeFilterMode.THREE_PERCENT, 0.03),
            ("THREE_PERCENT", 0.03),
        ],
    )
    def test_strike_modes(self, put_state: FilterState, today: date, mode, expected) -> None:
        """Test legacy strike modes map to fixed fractions."""
        operations = wire(compile_filters(put_state, strike_mode=mode, today=today))
        assert {"operation": "strikeFilter", "field": "put", "value": expected} in operations

    def test_strike_mode_all_omitted(self, put_state: FilterState, today: date) -> None:
        """Test the ALL mode adds nothing."""
        operations = compile_filters(put_state, strike_mode=StrikeFilterMode.ALL, today=today)
        assert all(op.operation is not Operation.STRIKE_FILTER for op in operations)

    def test_moneyness_beats_strike_mode(self, call_state: FilterState, today: date) -> None:
        """Test an explicit moneyness range wins over the legacy mode."""
        call_state.moneyness_range = (-5, 15)
        operations = compile_filters(call_state, strike_mode=StrikeFilterMode.THREE_PERCENT, today=today)
        strike_filters = [op for op in operations if op.operation is Operation.STRIKE_FILTER]
        assert len(strike_filters) == 1
        assert strike_filters[0].value == -0.05

    def test_categorical(self, call_state: FilterState, today: date) -> None:
        """Test sector and crossover compile unless left at 'any'."""
        call_state.sector = "Technology"
        call_state.moving_average_crossover = "50 > 200"
        operations = wire(compile_filters(call_state, today=today))
        assert {"operation": "eq", "field": "sector", "value": '"Technology"'} in operations
        assert {"operation": "eq", "field": "movingAverageCrossover", "value": '"50 > 200"'} in operations

    def test_sort_last(self, call_state: FilterState, today: date) -> None:
        """Test sort is appended after every filter."""
        call_state.sector = "Energy"
        operations = wire(compile_filters(call_state, SortSpec(field="strike", direction="desc"), today=today))
        assert operations[-1] == {"operation": "sort", "field": "strike", "value": "desc"}

    def test_operation_order(self, call_state: FilterState, today: date) -> None:
        """Test type, symbols, ranges, expiration, moneyness, categorical, sort."""
        call_state.symbols = ["AAPL"]
        call_state.yield_range = (1, 10)
        call_state.implied_volatility = (30, 200)
        call_state.dte_range = (7, 45)
        call_state.moneyness_range = (0, 15)
        call_state.sector = "Technology"
        operations = compile_filters(call_state, SortSpec(field="yieldPercent"), today=today)
        assert fields(operations) == [
            "type",
            "symbol",
            "yieldPercent",
            "impliedVolatility",
            "expiration",
            "expiration",
            "call",
            "sector",
            "yieldPercent",
        ]

    def test_gated_dimensions_skipped(self, call_state: FilterState, today: date) -> None:
        """Test dimensions outside the enabled set are not compiled."""
        call_state.yield_range = (2, 10)
        call_state.delta_range = (-0.5, 0.5)
        call_state.price_range = (100, 2000)
        operations = compile_filters(
            call_state,
            today=today,
            enabled_dimensions=enabled_dimensions(AccessStatus.NEEDS_SUBSCRIPTION),
        )
        assert "yieldPercent" not in fields(operations)
        assert "delta" not in fields(operations)
        assert "strike" in fields(operations)


class TestQueryRequest:
    """Tests for the paging envelope."""

    def test_payload(self, call_state: FilterState, today: date) -> None:
        """Test the request body carries paging fields."""
        request = compile_query(call_state, page_no=3, page_size=25, user_id="user-1", today=today)
        payload = request.to_payload()
        assert payload["paging"] is True
        assert payload["pageNo"] == 3
        assert payload["pageSize"] == 25
        assert payload["userId"] == "user-1"
        assert payload["filters"][0] == {"operation": "eq", "field": "type", "value": '"call"'}

    def test_default_page_size(self, call_state: FilterState, today: date) -> None:
        """Test the configured page size applies by default."""
        request = build_query_request(compile_filters(call_state, today=today))
        assert request.page_size == 50
        assert "userId" not in request.to_payload()

    def test_with_page(self, call_state: FilterState, today: date) -> None:
        """Test changing the page keeps the filters."""
        request = compile_query(call_state, today=today)
        next_request = request.with_page(2)
        assert next_request.page_no == 2
        assert next_request.filters == request.filters
