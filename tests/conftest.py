"""Pytest configuration and fixtures."""

import asyncio
from datetime import date, datetime, timezone
from typing import Any

import aiohttp
import pytest

from src.access.models import SubscriptionRecord
from src.data.cache import MemoryKeyedStore
from src.data.fetchers.base_fetcher import BaseOptionsClient
from src.data.models.option import Option
from src.data.models.query_page import QueryPage
from src.filters.state import FilterState
from src.query.operations import QueryRequest


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager."""

    def __init__(self, body: Any = None, status: int = 200) -> None:
        self.body = body
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=None,  # type: ignore[arg-type]
                history=(),
                status=self.status,
                message="Server Error",
            )

    async def json(self) -> Any:
        if isinstance(self.body, Exception):
            raise self.body
        return self.body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False


class FakeSession:
    """Replays queued responses (or raises queued exceptions) per request."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class ControlledOptionsClient(BaseOptionsClient):
    """Query client whose responses are resolved by the test."""

    def __init__(self) -> None:
        self.requests: list[QueryRequest] = []
        self.pending: list[asyncio.Future[QueryPage]] = []

    async def fetch_page(self, request: QueryRequest) -> QueryPage:
        self.requests.append(request)
        future: asyncio.Future[QueryPage] = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


class StaticOptionsClient(BaseOptionsClient):
    """Query client answering every request with the next queued page or error."""

    def __init__(self, results: list[QueryPage | Exception]) -> None:
        self.results = list(results)
        self.requests: list[QueryRequest] = []

    async def fetch_page(self, request: QueryRequest) -> QueryPage:
        self.requests.append(request)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeSubscriptionProvider:
    """Subscription provider returning fixed records, or raising."""

    def __init__(self, records: list[SubscriptionRecord] | None = None, error: Exception | None = None) -> None:
        self.records = records or []
        self.error = error
        self.calls = 0

    async def get_subscriptions(self, user_id: str) -> list[SubscriptionRecord]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture
def today() -> date:
    """Fixed reference date for expiration filters."""
    return date(2024, 1, 15)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for access resolution."""
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def call_state() -> FilterState:
    """Default call filter state."""
    return FilterState.defaults("call")


@pytest.fixture
def put_state() -> FilterState:
    """Default put filter state."""
    return FilterState.defaults("put")


@pytest.fixture
def memory_store() -> MemoryKeyedStore:
    """Empty in-memory keyed store."""
    return MemoryKeyedStore()


@pytest.fixture
def raw_option_row() -> dict[str, Any]:
    """A raw row as returned by the screening service."""
    return {
        "symbol": "aapl",
        "type": "call",
        "expiration": "2024-01-19",
        "stockPrice": 185.5,
        "strike": 190.0,
        "bidPrice": 2.0,
        "askPrice": 2.5,
        "premium": 0,
        "delta": 0.32,
        "volume": 1520,
        "openInterest": 8800,
        "yieldPercent": 1.21,
        "impliedVolatility": 24.5,
        "earningsDate": "2024-02-01",
        "peRatio": 29.4,
        "marketCap": 2_900_000_000_000,
        "sector": "Technology",
        "probability": 68.0,
        "annualizedReturn": 31.2,
        "optionKey": "AAPL240119C00190000",
        "lastUpdatedDate": "2024-01-15T14:30:00Z",
    }


def make_options(*symbols: str) -> list[Option]:
    """Build minimal Option rows for the given symbols."""
    return [Option(symbol=symbol, strike=100.0) for symbol in symbols]


@pytest.fixture
def option_factory():
    """Factory building minimal Option rows."""
    return make_options


@pytest.fixture
def fake_session_factory():
    """Factory building a FakeSession from queued responses."""
    return FakeSession


@pytest.fixture
def fake_response_factory():
    """Factory building FakeResponse objects."""
    return FakeResponse


@pytest.fixture
def controlled_client() -> ControlledOptionsClient:
    """Query client resolved manually by the test."""
    return ControlledOptionsClient()


@pytest.fixture
def static_client_factory():
    """Factory building a StaticOptionsClient."""
    return StaticOptionsClient


@pytest.fixture
def subscription_provider_factory():
    """Factory building a FakeSubscriptionProvider."""
    return FakeSubscriptionProvider
