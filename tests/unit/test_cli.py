"""Unit tests for the command-line entry point."""

import json
from datetime import date
from pathlib import Path

import pytest

from config.settings_pydantic import settings
from scripts.run_screener import apply_overrides, build_parser, get_writer, run
from src.filters.registry import ALL_COLUMNS, DEFAULT_VISIBLE_COLUMNS
from src.filters.state import FilterState
from src.output.csv_writer import CSVWriter
from src.output.json_writer import JSONWriter


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the keyed store at a temporary database."""
    path = tmp_path / "state.db"
    monkeypatch.setattr(settings, "state_store_path", path)
    return path


def parse(*argv: str):
    return build_parser().parse_args(list(argv))


class TestParser:
    """Tests for argument parsing and overrides."""

    def test_defaults(self) -> None:
        """Test defaults come from settings."""
        args = parse()

        assert args.option_type == settings.default_option_type
        assert args.page == 1
        assert args.page_size == settings.default_page_size
        assert args.yield_range is None

    def test_apply_overrides(self, put_state: FilterState) -> None:
        """Test flags replace the matching filter values."""
        args = parse(
            "--type",
            "put",
            "--symbols",
            "aapl, msft",
            "--exclude",
            "tsla",
            "--yield",
            "1.5",
            "10",
            "--dte",
            "7",
            "45",
            "--min-expiration",
            "2024-02-01",
            "--sector",
            "Technology",
        )

        state = apply_overrides(put_state, args)

        assert state.symbols == ["AAPL", "MSFT"]
        assert state.excluded_symbols == ["TSLA"]
        assert state.yield_range == (1.5, 10.0)
        assert state.dte_range == (7.0, 45.0)
        assert state.min_expiration == date(2024, 2, 1)
        assert state.sector == "Technology"

    def test_get_writer(self, tmp_path: Path) -> None:
        """Test the writer factory."""
        assert isinstance(get_writer(tmp_path / "out.csv", "csv"), CSVWriter)
        assert isinstance(get_writer(tmp_path / "out.json", "JSON"), JSONWriter)
        with pytest.raises(ValueError):
            get_writer(tmp_path / "out.xml", "xml")

    def test_market_cap_category(self, call_state: FilterState) -> None:
        """Test a market cap category sets the range and an explicit range wins."""
        state = apply_overrides(call_state, parse("--market-cap-category", "Large Cap ($10B-$200B)"))
        assert state.market_cap == (10.0, 200.0)

        args = parse("--market-cap-category", "Large Cap ($10B-$200B)", "--market-cap", "50", "100")
        assert apply_overrides(call_state, args).market_cap == (50.0, 100.0)

    def test_csv_columns(self, tmp_path: Path) -> None:
        """Test CSV output defaults to the visible columns."""
        assert not parse().all_columns
        assert parse("--all-columns").all_columns
        assert get_writer(tmp_path / "out.csv", "csv").columns == list(DEFAULT_VISIBLE_COLUMNS)
        assert get_writer(tmp_path / "out.csv", "csv", ALL_COLUMNS).columns == list(ALL_COLUMNS)


class TestRun:
    """Tests for run() that never reach the network."""

    @pytest.mark.asyncio
    async def test_dry_run_prints_request(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a dry run prints the compiled request body."""
        exit_code = await run(parse("--type", "put", "--symbols", "aapl,msft", "--dry-run", "--page-size", "25"))

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["pageSize"] == 25
        assert payload["filters"][0] == {"operation": "eq", "field": "type", "value": '"put"'}
        assert {"operation": "in", "field": "symbol", "value": '"AAPL,MSFT"'} in payload["filters"]

    @pytest.mark.asyncio
    async def test_filters_are_remembered(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test filter values persist between invocations per option type."""
        await run(parse("--type", "call", "--symbols", "nvda", "--dry-run"))
        capsys.readouterr()

        await run(parse("--type", "call", "--dry-run"))
        remembered = json.loads(capsys.readouterr().out)
        await run(parse("--type", "call", "--reset", "--dry-run"))
        reset = json.loads(capsys.readouterr().out)

        assert {"operation": "eq", "field": "symbol", "value": '"NVDA"'} in remembered["filters"]
        assert all(op["field"] != "symbol" for op in reset["filters"])

    @pytest.mark.asyncio
    async def test_save_and_list_screeners(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test saving a screener, rejecting a duplicate and listing it."""
        assert await run(parse("--type", "put", "--save-screener", "Mine", "--dry-run")) == 0
        assert await run(parse("--type", "put", "--save-screener", "Mine", "--dry-run")) == 1
        assert await run(parse("--type", "put", "--save-screener", "Mine", "--overwrite", "--dry-run")) == 0
        capsys.readouterr()

        assert await run(parse("--type", "put", "--list-screeners")) == 0
        lines = capsys.readouterr().out.splitlines()

        assert lines[0] == "high-iv-put\tHigh IV (default)"
        assert sum(line.endswith("\tMine") for line in lines) == 1

    @pytest.mark.asyncio
    async def test_load_screener(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test starting from a built-in screener."""
        await run(parse("--type", "call", "--load-screener", "high-yield-call", "--dry-run"))

        payload = json.loads(capsys.readouterr().out)
        assert {"operation": "gt", "field": "yieldPercent", "value": 2} in payload["filters"]
