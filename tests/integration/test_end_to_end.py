"""End-to-end integration tests."""

import json
from datetime import timedelta

import pytest

from src.access.feature_gate import visible_row_count
from src.access.models import AccessStatus, AuthUser, SubscriptionRecord
from src.access.resolver import AccessStatusResolver
from src.data.cache import SQLiteKeyedStore
from src.data.fetchers.options_client import AsyncOptionsQueryClient
from src.filters.state import FilterStateStore
from src.output.json_writer import JSONWriter
from src.query.paginator import QueryPaginator, QueryStatus
from src.screeners.persistence import ScreenerPersistence
from src.screeners.repositories import LocalScreenerRepository
from src.utils.debounce import Debouncer


def service_rows(raw_option_row, count):
    rows = []
    for index in range(count):
        row = dict(raw_option_row)
        row["symbol"] = f"sym{index}"
        row["optionKey"] = f"KEY{index}"
        rows.append(row)
    return rows


@pytest.mark.integration
class TestEndToEnd:
    """End-to-end integration tests."""

    @pytest.mark.asyncio
    async def test_screen_from_saved_screener(
        self,
        tmp_path,
        now,
        today,
        raw_option_row,
        fake_session_factory,
        fake_response_factory,
        subscription_provider_factory,
    ) -> None:
        """Test a trialing user loads a preset, pages through results and exports them."""
        store = SQLiteKeyedStore(tmp_path / "state.db")
        persistence = ScreenerPersistence(LocalScreenerRepository(store), override_store=store, today=today)
        user = AuthUser(uid="u1", email="me@example.com", created_at=now - timedelta(days=2))
        provider = subscription_provider_factory(
            [SubscriptionRecord(status="trialing", created_at=now - timedelta(days=2), trial_end=now + timedelta(days=5))]
        )
        access = await AccessStatusResolver(provider, clock=lambda: now).resolve(user)
        assert access.status is AccessStatus.TRIALING

        preset = await persistence.get("high-yield-put")
        session = fake_session_factory(
            [
                fake_response_factory({"options": service_rows(raw_option_row, 3), "count": 5}),
                fake_response_factory({"options": service_rows(raw_option_row, 2), "count": 5}),
            ]
        )
        paginator = QueryPaginator(
            AsyncOptionsQueryClient(session=session, retry_delay=0),
            preset.filters.model_copy(deep=True),
            page_size=3,
            access_status=access.status,
            user_id=user.uid,
            debouncer=Debouncer(quiet_period=0.01),
            state_store=FilterStateStore(store),
            today=today,
        )

        assert await paginator.refresh()
        assert paginator.status is QueryStatus.READY
        assert [row.symbol for row in paginator.rows] == ["SYM0", "SYM1", "SYM2"]
        assert all(row.expiration == "2024-01-20" for row in paginator.rows)
        assert paginator.can_next

        assert await paginator.next_page()
        assert not paginator.can_next
        assert len(paginator.rows) == 2

        first_body = session.calls[0]["json"]
        assert first_body["userId"] == "u1"
        assert {"operation": "gt", "field": "yieldPercent", "value": 2} in first_body["filters"]
        assert session.calls[1]["json"]["pageNo"] == 2

        output_path = tmp_path / "page2.json"
        JSONWriter(output_path).write(paginator.rows, total_count=paginator.total_count)
        exported = json.loads(output_path.read_text(encoding="utf-8"))
        assert exported["count"] == 5
        assert exported["options"][0]["premium"] == 225.0

    @pytest.mark.asyncio
    async def test_lapsed_user_sees_preview_only(
        self,
        today,
        now,
        put_state,
        raw_option_row,
        fake_session_factory,
        fake_response_factory,
        subscription_provider_factory,
    ) -> None:
        """Test a lapsed trial drops gated filters and is limited to a preview."""
        provider = subscription_provider_factory(
            [SubscriptionRecord(status="canceled", created_at=now - timedelta(days=20), trial_end=now - timedelta(days=6))]
        )
        access = await AccessStatusResolver(provider, clock=lambda: now).resolve(AuthUser(uid="u2"))
        assert access.status is AccessStatus.TRIAL_ENDED

        put_state.yield_range = (3.0, 10.0)
        put_state.price_range = (10.0, 2000.0)
        session = fake_session_factory(
            [fake_response_factory({"options": service_rows(raw_option_row, 8), "count": 8})],
        )
        paginator = QueryPaginator(
            AsyncOptionsQueryClient(session=session, retry_delay=0),
            put_state,
            access_status=access.status,
            today=today,
        )

        await paginator.refresh()

        fields = {op["field"] for op in session.calls[0]["json"]["filters"]}
        assert "yieldPercent" not in fields
        assert "strike" in fields
        assert visible_row_count(access.status, len(paginator.rows), preview_rows=5) == 5
