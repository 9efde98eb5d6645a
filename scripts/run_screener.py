#!/usr/bin/env python3
"""Main CLI entry point for screening covered calls and cash-secured puts."""

import argparse
import asyncio
import json
import sys
import time
from collections.abc import Sequence
from datetime import date
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import aiohttp

from config.settings_pydantic import settings
from src.data.cache import SQLiteKeyedStore
from src.data.fetchers.options_client import AsyncOptionsQueryClient
from src.data.models.option_type import SortDirection, StrikeFilterMode
from src.exceptions import DuplicateScreenerError, ScreenerError
from src.filters.registry import (
    ALL_COLUMNS,
    ANNUALIZED_RETURN,
    DEFAULT_VISIBLE_COLUMNS,
    DELTA,
    DTE,
    IMPLIED_VOLATILITY,
    MARKET_CAP,
    MARKET_CAP_CATEGORIES,
    MONEYNESS,
    MOVING_AVERAGE_CROSSOVER_OPTIONS,
    PE_RATIO,
    PRICE,
    PROBABILITY,
    SECTOR_OPTIONS,
    VOLUME,
    YIELD,
    market_cap_range,
)
from src.filters.state import RANGE_ATTRIBUTES, FilterState, FilterStateStore
from src.output.csv_writer import CSVWriter
from src.output.json_writer import JSONWriter
from src.query.compiler import compile_query
from src.query.operations import SortSpec
from src.query.paginator import QueryPaginator, QueryStatus
from src.screeners.persistence import ScreenerPersistence
from src.screeners.repositories import LocalScreenerRepository
from src.utils.logging_config import setup_logging

logger = setup_logging(settings.log_level, settings.log_file)

# CLI flag -> dimension key for MIN MAX range overrides
RANGE_FLAGS: dict[str, str] = {
    "yield_range": YIELD,
    "price": PRICE,
    "volume": VOLUME,
    "delta": DELTA,
    "dte": DTE,
    "pe_ratio": PE_RATIO,
    "market_cap": MARKET_CAP,
    "moneyness": MONEYNESS,
    "iv": IMPLIED_VOLATILITY,
    "annualized_return": ANNUALIZED_RETURN,
    "probability": PROBABILITY,
}


def get_writer(
    output_path: Path,
    output_format: str,
    columns: Sequence[str] = DEFAULT_VISIBLE_COLUMNS,
) -> CSVWriter | JSONWriter:
    """Factory function to get output writer.

    Args:
        output_path: Path to output file.
        output_format: Output format ('csv' or 'json').
        columns: Columns written to CSV output.

    Returns:
        Writer instance.

    Raises:
        ValueError: If output format is not supported.
    """
    if output_format.lower() == "csv":
        return CSVWriter(output_path, columns=columns)
    if output_format.lower() == "json":
        return JSONWriter(output_path)

    raise ValueError(f"Unsupported output format: {output_format}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Options Wheel Screener",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Covered calls on two symbols yielding at least 1.5%
  wheelscreener --type call --symbols AAPL,MSFT --yield 1.5 10

  # Print the compiled request without calling the service
  wheelscreener --type put --dte 7 45 --dry-run

  # Save the current put filters as a screener
  wheelscreener --type put --iv 40 200 --save-screener "Volatile puts"
        """,
    )

    parser.add_argument(
        "--type",
        dest="option_type",
        choices=settings.supported_option_types,
        default=settings.default_option_type,
        help=f"Option type to screen (default: {settings.default_option_type})",
    )
    parser.add_argument("--symbols", help="Comma-separated symbols to include")
    parser.add_argument("--exclude", help="Comma-separated symbols to drop from results")

    range_help = {
        "yield_range": ("--yield", "Premium yield percent"),
        "price": ("--price", "Strike price"),
        "volume": ("--volume", "Contract volume"),
        "delta": ("--delta", "Option delta"),
        "dte": ("--dte", "Days to expiration"),
        "pe_ratio": ("--pe-ratio", "P/E ratio"),
        "market_cap": ("--market-cap", "Market cap in billions"),
        "moneyness": ("--moneyness", "Strike distance from price in percent"),
        "iv": ("--iv", "Implied volatility percent"),
        "annualized_return": ("--annualized-return", "Annualized return percent"),
        "probability": ("--probability", "Probability of profit percent"),
    }
    for dest, (flag, label) in range_help.items():
        parser.add_argument(
            flag,
            dest=dest,
            nargs=2,
            type=float,
            metavar=("MIN", "MAX"),
            help=f"{label} range",
        )

    parser.add_argument("--min-expiration", type=date.fromisoformat, help="Earliest expiration (YYYY-MM-DD)")
    parser.add_argument("--max-expiration", type=date.fromisoformat, help="Latest expiration (YYYY-MM-DD)")
    parser.add_argument("--sector", choices=SECTOR_OPTIONS, help="Sector")
    parser.add_argument(
        "--market-cap-category",
        choices=list(MARKET_CAP_CATEGORIES),
        help="Market cap category; --market-cap overrides it",
    )
    parser.add_argument(
        "--ma-crossover",
        choices=MOVING_AVERAGE_CROSSOVER_OPTIONS,
        help="Moving-average crossover",
    )

    parser.add_argument("--sort-by", choices=ALL_COLUMNS, help="Column to sort by")
    parser.add_argument(
        "--sort-dir",
        choices=[direction.value for direction in SortDirection],
        default=SortDirection.ASC.value,
        help="Sort direction (default: asc)",
    )
    parser.add_argument(
        "--strike-mode",
        choices=[mode.value for mode in StrikeFilterMode],
        help="Legacy moneyness preset",
    )
    parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    parser.add_argument(
        "--page-size",
        type=int,
        default=settings.default_page_size,
        help=f"Rows per page (default: {settings.default_page_size})",
    )
    parser.add_argument("--user-id", help="User id forwarded to the service")

    parser.add_argument("--dry-run", action="store_true", help="Print the compiled request and exit")
    parser.add_argument("--reset", action="store_true", help="Reset remembered filters to defaults first")

    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output file path (default: auto-generated in data/outputs/)",
    )
    parser.add_argument(
        "--output-format",
        choices=["csv", "json"],
        default=settings.default_output_format,
        help=f"Output file format (default: {settings.default_output_format})",
    )
    parser.add_argument(
        "--all-columns",
        action="store_true",
        help="Write every column to CSV instead of the default visible set",
    )

    parser.add_argument("--list-screeners", action="store_true", help="List saved screeners and exit")
    parser.add_argument("--save-screener", metavar="NAME", help="Save the filters under NAME")
    parser.add_argument("--overwrite", action="store_true", help="Replace a screener with the same name")
    parser.add_argument("--load-screener", metavar="ID", help="Start from a saved screener")

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser


def apply_overrides(state: FilterState, args: argparse.Namespace) -> FilterState:
    """Apply command-line filter flags on top of a state.

    Args:
        state: Loaded or default filter state.
        args: Parsed arguments.

    Returns:
        The same state, updated in place.
    """
    if args.symbols is not None:
        state.symbols = args.symbols
    if args.exclude is not None:
        state.excluded_symbols = args.exclude
    if args.market_cap_category is not None:
        state.market_cap = market_cap_range(args.market_cap_category)
    for dest, key in RANGE_FLAGS.items():
        value = getattr(args, dest, None)
        if value is not None:
            setattr(state, RANGE_ATTRIBUTES[key], tuple(value))
    if args.min_expiration is not None:
        state.min_expiration = args.min_expiration
    if args.max_expiration is not None:
        state.max_expiration = args.max_expiration
    if args.sector is not None:
        state.sector = args.sector
    if args.ma_crossover is not None:
        state.moving_average_crossover = args.ma_crossover
    return state


async def run(args: argparse.Namespace) -> int:
    """Run one screener invocation. Returns the process exit code."""
    store = SQLiteKeyedStore()
    state_store = FilterStateStore(store)
    persistence = ScreenerPersistence(LocalScreenerRepository(store), override_store=store)

    if args.list_screeners:
        for screener in await persistence.list_screeners(args.option_type):
            marker = " (default)" if screener.is_default else ""
            print(f"{screener.id}\t{screener.name}{marker}")
        return 0

    if args.load_screener:
        screener = await persistence.get(args.load_screener)
        state = screener.filters.model_copy(deep=True)
        logger.info(f"Loaded screener '{screener.name}'")
    elif args.reset:
        state = state_store.reset(args.option_type)
    else:
        state = state_store.load(args.option_type)

    state = apply_overrides(state, args)
    state_store.save(state)

    if args.save_screener:
        try:
            saved = await persistence.save(args.save_screener, state, overwrite=args.overwrite)
        except DuplicateScreenerError as e:
            logger.error(f"{e}; pass --overwrite to replace it")
            return 1
        logger.info(f"Saved screener id: {saved.id}")

    sort = None
    if args.sort_by:
        sort = SortSpec(field=args.sort_by, direction=SortDirection(args.sort_dir))

    if args.dry_run:
        request = compile_query(
            state,
            sort,
            args.strike_mode,
            page_no=max(args.page, 1),
            page_size=args.page_size,
            user_id=args.user_id,
        )
        print(json.dumps(request.to_payload(), indent=2))
        return 0

    async with aiohttp.ClientSession() as session:
        paginator = QueryPaginator(
            AsyncOptionsQueryClient(session=session),
            state,
            page_size=args.page_size,
            strike_mode=args.strike_mode,
            user_id=args.user_id,
        )
        paginator.sort = sort
        paginator.page_no = max(args.page, 1)
        await paginator.refresh()

    if paginator.status is QueryStatus.FAILED:
        logger.error(f"Query failed: {paginator.error}")
        return 1

    logger.info(
        f"Page {paginator.page_no}: {len(paginator.rows)} rows of {paginator.total_count} matches",
    )

    output_path = args.output
    if output_path is None:
        output_filename = f"{state.option_type.value}_screener_page{paginator.page_no}.{args.output_format}"
        output_path = settings.output_dir / output_filename

    columns = ALL_COLUMNS if args.all_columns else DEFAULT_VISIBLE_COLUMNS
    writer = get_writer(output_path, args.output_format, columns)
    if isinstance(writer, JSONWriter):
        writer.write(paginator.rows, total_count=paginator.total_count)
    else:
        writer.write(paginator.rows)
    return 0


def main() -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args()

    if args.verbose:
        setup_logging(settings.log_level, settings.log_file, verbose=True)

    time_start = time.time()
    try:
        exit_code = asyncio.run(run(args))
    except ScreenerError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.debug(f"Finished in {time.time() - time_start:.2f}s")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
