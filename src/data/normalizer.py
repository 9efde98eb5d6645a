"""Normalization of raw screening-service rows into Option models."""

import logging
from collections.abc import Iterable
from datetime import date, datetime

import numpy as np
import pandas as pd
from pydantic import ValidationError

from config.settings_pydantic import settings
from src.data.models.option import Option
from src.data.types import RawOptionDict
from src.utils.date_utils import add_days, format_service_date, parse_datetime

logger = logging.getLogger("wheelscreener")

# Numeric fields coerced to 0 when missing or not a number
ZERO_FILLED_FIELDS = (
    "stockPrice",
    "strike",
    "bidPrice",
    "askPrice",
    "volume",
    "openInterest",
    "yieldPercent",
    "impliedVolatility",
    "peRatio",
    "marketCap",
    "probability",
    "annualizedReturn",
)


def _is_missing(value: object) -> bool:
    return isinstance(value, float) and bool(np.isnan(value))


def shift_expiration(value: object, days: int | None = None) -> str | None:
    """Move a service expiration forward and format it as yyyy-MM-dd.

    The service reports expirations one day early. Not idempotent: apply once
    per fetched row.

    Args:
        value: Expiration as received (ISO date or datetime string).
        days: Shift in days. Defaults to settings.expiration_shift_days.

    Returns:
        Shifted date string, or None when the value cannot be parsed.
    """
    if not isinstance(value, (str, datetime, date)):
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        logger.debug(f"Unparseable expiration: {value!r}")
        return None
    shift = settings.expiration_shift_days if days is None else days
    return format_service_date(add_days(parsed.date(), shift))


def calculate_premium(bid_price: float, ask_price: float) -> float:
    """Contract premium: bid/ask midpoint times the contract multiplier."""
    return (ask_price + bid_price) / 2 * settings.premium_multiplier


def normalize_rows(raw_rows: Iterable[RawOptionDict]) -> list[Option]:
    """Normalize a page of raw rows.

    Recomputes premium from bid/ask, coerces NaN-producing numeric fields to 0
    (delta to None) and shifts expiration forward one day. Rows that still fail
    validation, e.g. without a symbol, are dropped with a warning.

    Args:
        raw_rows: Rows as decoded from the service response.

    Returns:
        List of Option models in the original order.
    """
    rows = list(raw_rows)
    if not rows:
        return []

    frame = pd.DataFrame(rows)

    for column in ZERO_FILLED_FIELDS:
        if column in frame.columns:
            frame[column] = pd.to_numeric(frame[column], errors="coerce").fillna(0.0).astype(float)
        else:
            frame[column] = 0.0

    if "delta" in frame.columns:
        frame["delta"] = pd.to_numeric(frame["delta"], errors="coerce")
    else:
        frame["delta"] = np.nan

    frame["premium"] = calculate_premium(frame["bidPrice"], frame["askPrice"])

    if "expiration" in frame.columns:
        frame["expiration"] = frame["expiration"].map(shift_expiration)

    options: list[Option] = []
    for raw_record in frame.to_dict("records"):
        record = {key: None if _is_missing(value) else value for key, value in raw_record.items()}
        try:
            options.append(Option.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Dropping malformed option row {record.get('optionKey')}: {e}")

    return options


def normalize_row(raw_row: RawOptionDict) -> Option | None:
    """Normalize a single raw row; None when the row is malformed."""
    options = normalize_rows([raw_row])
    return options[0] if options else None


def exclude_symbols(options: list[Option], excluded: Iterable[str]) -> list[Option]:
    """Drop rows whose underlying symbol the user excluded.

    Args:
        options: Normalized rows.
        excluded: Symbols to remove (case-insensitive).

    Returns:
        Filtered list of Option models.
    """
    excluded_upper = {symbol.strip().upper() for symbol in excluded}
    if not excluded_upper:
        return options
    return [option for option in options if option.symbol not in excluded_upper]
