"""Pytest configuration and fixtures."""

import pytest

from ledgerly.audit import AuditLogger
from ledgerly.config import get_settings
from ledgerly.ledger import LedgerCache, TransactionService
from ledgerly.queries import LedgerQueries
from ledgerly.services.storage import InMemoryRemoteStore


INCOME_2024_01 = "data/2024/01/income.json"
EXPENSES_2024_01 = "data/2024/01/expenses.json"


def make_record(
    transaction_id: str,
    date: str,
    amount,
    description: str = "Entry",
    category=None,
) -> dict:
    """A transaction as it appears inside a month file."""
    record = {
        "id": transaction_id,
        "date": date,
        "description": description,
        "amount": amount,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
    }
    if category:
        record["category"] = category
    return record


@pytest.fixture(autouse=True)
def ledgerly_env(monkeypatch, tmp_path):
    """Point settings at a throwaway repository and credential file."""
    monkeypatch.setenv("LEDGERLY_GITHUB_OWNER", "octo")
    monkeypatch.setenv("LEDGERLY_GITHUB_REPO", "finances")
    monkeypatch.delenv("LEDGERLY_GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("LEDGERLY_CREDENTIAL_STORE_PATH", str(tmp_path / "credentials.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store():
    """In-memory remote store with one month of data."""
    return InMemoryRemoteStore({
        INCOME_2024_01: [make_record("inc_1", "2024-01-10", 100, "Salary")],
        EXPENSES_2024_01: [make_record("exp_1", "2024-01-12", 40, "Groceries", "Food")],
    })


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def cache(store, audit_logger):
    return LedgerCache(store, "data", audit_logger)


@pytest.fixture
def service(cache, audit_logger):
    return TransactionService(cache, audit_logger=audit_logger)


@pytest.fixture
def queries(cache):
    return LedgerQueries(cache)
