"""Tests for transient database error handling."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from hostpanel.core.exceptions import StoreUnavailableError
from hostpanel.db.session import driver_error_code, is_transient, retry_on_transient


def _operational_error(code: int) -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception(code, "driver message"))


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr("hostpanel.db.session.time.sleep", delays.append)
    return delays


def test_driver_error_code():
    assert driver_error_code(_operational_error(2013)) == 2013
    assert driver_error_code(ValueError("plain")) is None


def test_access_and_schema_errors_are_not_transient():
    assert is_transient(_operational_error(2006))
    for code in (1044, 1045, 1049, 1054, 1146):
        assert not is_transient(_operational_error(code))


def test_transient_error_is_retried(monkeypatch, no_sleep):
    monkeypatch.setattr("hostpanel.db.session.settings.DB_RETRY_ATTEMPTS", 3)
    monkeypatch.setattr("hostpanel.db.session.settings.DB_RETRY_BACKOFF_SECONDS", 0.5)
    session = MagicMock()
    outcomes = [_operational_error(2013), _operational_error(2013), "ok"]

    @retry_on_transient
    def unit_of_work(db):
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    assert unit_of_work(session) == "ok"
    assert session.rollback.call_count == 2
    assert no_sleep == [0.5, 1.0]


def test_retries_exhausted_raise_store_unavailable(monkeypatch):
    monkeypatch.setattr("hostpanel.db.session.settings.DB_RETRY_ATTEMPTS", 2)
    calls = []

    @retry_on_transient
    def unit_of_work(db):
        calls.append(1)
        raise _operational_error(2003)

    with pytest.raises(StoreUnavailableError) as exc_info:
        unit_of_work(MagicMock())
    assert len(calls) == 2
    assert isinstance(exc_info.value.__cause__, OperationalError)


def test_access_denied_fails_fast(monkeypatch, no_sleep):
    monkeypatch.setattr("hostpanel.db.session.settings.DB_RETRY_ATTEMPTS", 5)
    calls = []

    @retry_on_transient
    def unit_of_work(db):
        calls.append(1)
        raise _operational_error(1045)

    with pytest.raises(StoreUnavailableError):
        unit_of_work(MagicMock())
    assert len(calls) == 1
    assert no_sleep == []


def test_other_errors_propagate_untouched():
    @retry_on_transient
    def unit_of_work(db):
        raise ValueError("not a database problem")

    with pytest.raises(ValueError):
        unit_of_work(MagicMock())
