"""Tests for the guarded transaction helper."""
import pytest
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from conftest import make_provider
from src.lib.db import SessionLocal
from src.lib.metrics import get_metrics_collector
from src.lib.settings import settings
from src.lib.transactions import run_in_transaction
from src.models.provider_profiles import ProviderProfile
from src.services.errors import TransactionConflictError


def conflicts(operation):
    return get_metrics_collector().get_counter_value(
        "transaction_conflicts_total", {"operation": operation}
    )


@pytest.mark.integration
def test_commits_and_returns_result(provider):
    def work(session):
        profile = session.get(ProviderProfile, provider.provider_id)
        profile.bio = "Spotless since 2012."
        return profile.provider_id

    assert run_in_transaction(work, operation="edit") == provider.provider_id

    with SessionLocal() as db:
        assert db.get(ProviderProfile, provider.provider_id).bio == "Spotless since 2012."


@pytest.mark.integration
def test_retries_after_stale_data():
    calls = []

    def work(session):
        calls.append(session)
        if len(calls) < 3:
            raise StaleDataError("row changed")
        return "done"

    assert run_in_transaction(work, operation="flaky") == "done"
    assert len(calls) == 3
    assert len({id(s) for s in calls}) == 3
    assert conflicts("flaky") == 2


@pytest.mark.integration
def test_gives_up_after_max_attempts(monkeypatch):
    monkeypatch.setattr(settings, "transaction_max_attempts", 4)
    calls = []

    def work(session):
        calls.append(1)
        raise StaleDataError("row changed")

    with pytest.raises(TransactionConflictError) as exc_info:
        run_in_transaction(work, operation="hot_row")

    assert len(calls) == 4
    assert exc_info.value.details == {"attempts": 4, "operation": "hot_row"}
    assert conflicts("hot_row") == 4

    calls.clear()
    with pytest.raises(TransactionConflictError):
        run_in_transaction(work, operation="hot_row", max_attempts=2)
    assert len(calls) == 2


@pytest.mark.integration
def test_other_errors_roll_back_without_retry(provider):
    calls = []

    def work(session):
        calls.append(1)
        session.get(ProviderProfile, provider.provider_id).bio = "half-written"
        raise ValueError("boom")

    with pytest.raises(ValueError):
        run_in_transaction(work, operation="broken")

    assert calls == [1]
    with SessionLocal() as db:
        assert db.get(ProviderProfile, provider.provider_id).bio == ""


@pytest.mark.integration
def test_version_counter_detects_concurrent_write():
    """A commit against a row another session already updated raises StaleDataError."""
    profile = make_provider(name="Versioned")
    stale = SessionLocal()
    try:
        mine = stale.execute(
            select(ProviderProfile).where(ProviderProfile.provider_id == profile.provider_id)
        ).scalar_one()

        def bump(session):
            session.get(ProviderProfile, profile.provider_id).bio = "first"

        run_in_transaction(bump, operation="bump")

        mine.bio = "second"
        with pytest.raises(StaleDataError):
            stale.commit()
    finally:
        stale.rollback()
        stale.close()
