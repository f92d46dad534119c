"""End-to-end tests for the application facade."""

from decimal import Decimal

import httpx
import pytest

from ledgerly.config import AppSettings, get_settings, validate_all_settings
from ledgerly.orchestrator import LedgerlyApp, create_app
from ledgerly.services.credentials import TokenAuthenticator
from ledgerly.services.storage import AuthenticationError, GitHubContentsClient

from test_credentials import FakeClient, ScriptedProvider


class TestInitialization:
    """Tests for start-up gating."""

    @pytest.mark.asyncio
    async def test_operations_blocked_until_initialized(self, store):
        app = LedgerlyApp(store=store)

        with pytest.raises(AuthenticationError):
            await app.load_month("2024", "01")
        with pytest.raises(AuthenticationError):
            app.summary("2024", "01")

    @pytest.mark.asyncio
    async def test_failed_authentication_keeps_app_blocked(self, store):
        authenticator = TokenAuthenticator(FakeClient(), ScriptedProvider(None))
        app = LedgerlyApp(store=store, authenticator=authenticator)

        with pytest.raises(AuthenticationError):
            await app.initialize()
        assert app.is_ready is False
        with pytest.raises(AuthenticationError):
            await app.add_transaction({"date": "2024-01-02", "description": "x", "amount": 1}, "income")

    @pytest.mark.asyncio
    async def test_initialize_loads_categories(self, store):
        store.seed("data/category.json", {"income": ["Salary"], "expenses": []})
        authenticator = TokenAuthenticator(FakeClient(), ScriptedProvider("ghp_good"))
        app = LedgerlyApp(store=store, authenticator=authenticator)

        await app.initialize()

        assert app.is_ready is True
        assert app.list_categories("income") == ["Salary"]

    def test_github_store_gets_default_authenticator(self):
        app = create_app()
        assert isinstance(app.store, GitHubContentsClient)
        assert app._authenticator is not None


class TestLedgerFlow:
    """Tests for a whole session against the in-memory store."""

    @pytest.mark.asyncio
    async def test_session(self, store):
        app = LedgerlyApp(store=store)
        await app.initialize()

        await app.load_month(2024, 1)
        summary = app.summary(2024, 1)
        assert summary.balance == Decimal("60")

        added = await app.add_transaction(
            {"date": "2024-01-25", "description": "Cinema", "amount": 20, "category": "Fun"},
            "expense",
        )
        assert app.summary(2024, 1).total_expenses == Decimal("60")
        assert app.combined_view(2024, 1)[0].transaction.id == added.id

        await app.update_transaction(added.id, {"date": "2024-02-01"})
        assert app.find_transaction(added.id, 2024, 1) is None
        assert app.summary(2024, 2).total_expenses == Decimal("20")

        comparison = await app.month_comparison(2024, 2)
        assert comparison.expense_change == -50

        average = await app.rolling_average(2024, 2, 2)
        assert average.months_used == 2

        await app.delete_transaction(added.id)
        assert app.find_transaction(added.id) is None

        await app.add_category("Fun", "expense")
        assert app.list_categories("expense") == ["Fun"]

    @pytest.mark.asyncio
    async def test_refresh_month_picks_up_remote_changes(self, store):
        app = LedgerlyApp(store=store)
        await app.initialize()
        await app.load_month("2024", "01")

        store.seed("data/2024/01/income.json", [])
        assert app.summary("2024", "01").total_income == Decimal("100")

        await app.refresh_month("2024", "01")
        assert app.summary("2024", "01").total_income == 0

    @pytest.mark.asyncio
    async def test_initialize_month(self, store):
        app = LedgerlyApp(store=store)
        await app.initialize()

        created = await app.initialize_month(2024, 5)

        assert created == ["data/2024/05/income.json", "data/2024/05/expenses.json"]


class TestGitHubWiring:
    """Tests for the facade over the real client with a mock transport."""

    @pytest.mark.asyncio
    async def test_initialize_against_github(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/user":
                return httpx.Response(200, json={"login": "octo"})
            return httpx.Response(404, json={"message": "Not Found"})

        settings = get_settings()
        http_client = httpx.AsyncClient(
            base_url=settings.github.api_url,
            transport=httpx.MockTransport(handler),
        )
        client = GitHubContentsClient(settings.github, http_client=http_client)
        authenticator = TokenAuthenticator(client, ScriptedProvider("ghp_good"))

        async with LedgerlyApp(settings=settings, store=client, authenticator=authenticator) as app:
            await app.initialize()
            shard = await app.load_month(2024, 1)
            assert shard.income == []
            assert client.login == "octo"

        await http_client.aclose()


class TestStartupFailures:
    """Tests for errors surfaced by initialize()."""

    @pytest.mark.asyncio
    async def test_unreadable_category_index_does_not_block(self, store):
        store.seed_raw("data/category.json", b"{not json")
        app = LedgerlyApp(store=store)

        await app.initialize()

        assert app.is_ready is True
        assert app.list_categories("income") == []
        assert app.list_categories("expense") == []

    @pytest.mark.asyncio
    async def test_failed_category_read_does_not_block(self, store):
        store.fail("data/category.json")
        app = LedgerlyApp(store=store)

        await app.initialize()

        assert app.is_ready is True

    @pytest.mark.asyncio
    async def test_rejected_credential_on_category_read(self, store):
        store.fail("data/category.json", AuthenticationError("Bad credentials"))
        app = LedgerlyApp(store=store)

        with pytest.raises(AuthenticationError):
            await app.initialize()
        assert app.is_ready is False

    def test_settings_validation(self):
        results = validate_all_settings()
        assert results["github"] is True
        assert results["app"] is True

    def test_app_settings_fields(self):
        assert set(AppSettings.model_fields) == {
            "credential_store_path",
            "token_storage_key",
            "rolling_window_months",
            "burn_rate_days",
            "currency_symbol",
        }
