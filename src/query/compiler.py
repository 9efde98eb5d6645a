"""Compile filter state into the ordered operation list sent to the service.

The compiler is pure: the same FilterState, sort, strike mode and ``today``
always produce the same operations in the same order. Order:

1. option type
2. symbols
3. numeric ranges, in registry order
4. expiration
5. moneyness (``strikeFilter``)
6. categorical selections
7. sort
"""

import logging
from collections.abc import Collection
from datetime import date

from src.data.models.option_type import OptionType, StrikeFilterMode
from src.exceptions import InvalidQueryError
from src.filters.registry import (
    ANY_CROSSOVER,
    ANY_SECTOR,
    DIMENSIONS,
    DTE,
    MONEYNESS,
    MOVING_AVERAGE_CROSSOVER,
    RANGE_DIMENSIONS,
    SECTOR,
    SYMBOLS,
    FilterDimension,
)
from src.filters.state import FilterState, Range
from src.query.operations import FilterOperation, Operation, QueryRequest, SortSpec
from src.utils.date_utils import add_days, format_service_date

logger = logging.getLogger("wheelscreener")

STRIKE_MODE_FRACTIONS: dict[StrikeFilterMode, float | None] = {
    StrikeFilterMode.ALL: None,
    StrikeFilterMode.ONE_OUT: 0.0,
    StrikeFilterMode.THREE_PERCENT: 0.03,
}


def quote(value: str) -> str:
    """Wrap a literal the way the service expects for exact and ``in`` matches."""
    return f'"{value}"'


def wire_number(value: float) -> int | float:
    """Send integral values as integers, matching the service's JSON numbers."""
    number = float(value)
    return int(number) if number.is_integer() else number


def clamp_range(value: Range) -> Range:
    """Pull the minimum down to the maximum when the pair is inverted."""
    lower, upper = value
    if lower > upper:
        logger.debug(f"Clamping inverted range ({lower}, {upper})")
        lower = upper
    return (lower, upper)


def _range_operations(dimension: FilterDimension, value: Range) -> list[FilterOperation]:
    lower, upper = clamp_range(value)
    operations: list[FilterOperation] = []
    if dimension.is_restrictive_min(lower):
        operations.append(
            FilterOperation(
                operation=Operation(dimension.min_operation),
                field=dimension.field,
                value=wire_number(lower * dimension.scale),
            )
        )
    if dimension.is_restrictive_max(upper):
        operations.append(
            FilterOperation(
                operation=Operation(dimension.max_operation),
                field=dimension.field,
                value=wire_number(upper * dimension.scale),
            )
        )
    return operations


def _symbol_operations(symbols: list[str]) -> list[FilterOperation]:
    if not symbols:
        return []
    if len(symbols) == 1:
        return [FilterOperation(operation=Operation.EQ, field="symbol", value=quote(symbols[0]))]
    return [FilterOperation(operation=Operation.IN, field="symbol", value=quote(",".join(symbols)))]


def expiration_bounds(state: FilterState, today: date) -> tuple[date | None, date | None]:
    """Resolve the expiration floor and ceiling dates for a state.

    Explicit dates win over the days-to-expiration range. A restrictive DTE
    floor without a ceiling uses the largest DTE as ceiling.
    """
    dte = DIMENSIONS[DTE]
    low_days, high_days = clamp_range(state.dte_range)

    floor = state.min_expiration
    if floor is None and dte.is_restrictive_min(low_days):
        floor = add_days(today, int(low_days))

    ceiling = state.max_expiration
    if ceiling is None and dte.is_restrictive_max(high_days):
        ceiling = add_days(today, int(high_days))
    if ceiling is None and floor is not None:
        ceiling = add_days(today, int(dte.max))

    if floor is not None and ceiling is not None and floor > ceiling:
        floor = ceiling
    return floor, ceiling


def _expiration_operations(state: FilterState, today: date) -> list[FilterOperation]:
    floor, ceiling = expiration_bounds(state, today)
    if ceiling is None:
        # The service reads "no expiration filter" as today's expirations only
        return [
            FilterOperation(
                operation=Operation.EQ,
                field="expiration",
                value=quote(format_service_date(today)),
            )
        ]
    return [
        FilterOperation(
            operation=Operation.GTE,
            field="expiration",
            value=quote(format_service_date(floor or today)),
        ),
        FilterOperation(
            operation=Operation.LTE,
            field="expiration",
            value=quote(format_service_date(ceiling)),
        ),
    ]


def _strike_filter_operation(
    state: FilterState,
    option_type: OptionType,
    strike_mode: StrikeFilterMode | str | None,
    moneyness_enabled: bool,
) -> FilterOperation | None:
    moneyness = DIMENSIONS[MONEYNESS]
    lower, upper = clamp_range(state.moneyness_range)

    fraction: float | None = None
    if moneyness_enabled and (lower, upper) != moneyness.default_range:
        fraction = lower / 100
    elif strike_mode is not None:
        fraction = STRIKE_MODE_FRACTIONS[StrikeFilterMode(strike_mode)]

    if fraction is None:
        return None
    return FilterOperation(
        operation=Operation.STRIKE_FILTER,
        field=option_type.value,
        value=wire_number(fraction),
    )


def compile_filters(
    state: FilterState | None,
    sort: SortSpec | None = None,
    strike_mode: StrikeFilterMode | str | None = None,
    *,
    today: date | None = None,
    enabled_dimensions: Collection[str] | None = None,
) -> list[FilterOperation]:
    """Compile a filter state into the ordered operation list.

    Args:
        state: Current filter values.
        sort: Optional sort column and direction, emitted last.
        strike_mode: Legacy moneyness preset, used when no moneyness range is set.
        today: Reference date for expiration filters. Defaults to today.
        enabled_dimensions: When given, only these dimension keys are compiled;
            the rest are treated as left at their defaults.

    Returns:
        Ordered list of FilterOperation.

    Raises:
        InvalidQueryError: If the state carries no option type.
    """
    if state is None or state.option_type is None:
        raise InvalidQueryError("An option type is required to compile a query")

    today = today or date.today()
    option_type = state.option_type
    enabled = None if enabled_dimensions is None else frozenset(enabled_dimensions)

    def is_enabled(key: str) -> bool:
        return enabled is None or key in enabled

    operations: list[FilterOperation] = [
        FilterOperation(operation=Operation.EQ, field="type", value=quote(option_type.value))
    ]

    if is_enabled(SYMBOLS):
        operations.extend(_symbol_operations(state.symbols))

    for key in RANGE_DIMENSIONS:
        if is_enabled(key):
            operations.extend(_range_operations(DIMENSIONS[key], state.range_for(key)))

    operations.extend(_expiration_operations(state, today))

    strike_operation = _strike_filter_operation(
        state,
        option_type,
        strike_mode,
        is_enabled(MONEYNESS),
    )
    if strike_operation is not None:
        operations.append(strike_operation)

    if is_enabled(SECTOR) and state.sector != ANY_SECTOR:
        operations.append(
            FilterOperation(operation=Operation.EQ, field="sector", value=quote(state.sector))
        )
    if is_enabled(MOVING_AVERAGE_CROSSOVER) and state.moving_average_crossover != ANY_CROSSOVER:
        operations.append(
            FilterOperation(
                operation=Operation.EQ,
                field="movingAverageCrossover",
                value=quote(state.moving_average_crossover),
            )
        )

    if sort is not None:
        operations.append(
            FilterOperation(operation=Operation.SORT, field=sort.field, value=sort.direction.value)
        )

    return operations


def build_query_request(
    operations: list[FilterOperation],
    page_no: int = 1,
    page_size: int | None = None,
    user_id: str | None = None,
) -> QueryRequest:
    """Wrap compiled operations in the paging envelope."""
    fields: dict[str, object] = {"filters": tuple(operations), "page_no": page_no, "user_id": user_id}
    if page_size is not None:
        fields["page_size"] = page_size
    return QueryRequest(**fields)


def compile_query(
    state: FilterState | None,
    sort: SortSpec | None = None,
    strike_mode: StrikeFilterMode | str | None = None,
    page_no: int = 1,
    page_size: int | None = None,
    *,
    user_id: str | None = None,
    today: date | None = None,
    enabled_dimensions: Collection[str] | None = None,
) -> QueryRequest:
    """Compile a state straight into a request for one page."""
    operations = compile_filters(
        state,
        sort,
        strike_mode,
        today=today,
        enabled_dimensions=enabled_dimensions,
    )
    return build_query_request(operations, page_no=page_no, page_size=page_size, user_id=user_id)
