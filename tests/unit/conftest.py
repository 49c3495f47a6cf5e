"""Unit tests never touch a real database.

Storage singletons are reset and engine creation raises, so a unit test
that reaches the database fails loudly instead of creating passgate.db.
Database tests belong in ``tests/integration/``.
"""

import pytest

import passgate.storage as storage


def _no_database(*args, **kwargs):
    raise RuntimeError(
        "Unit test tried to open a database. Override get_db or move the test "
        "to tests/integration/."
    )


@pytest.fixture(autouse=True)
def _isolate_db(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(storage, "_engine", None)
    monkeypatch.setattr(storage, "_session_factory", None)
    monkeypatch.setattr(storage, "get_engine", _no_database)
    monkeypatch.setattr(storage, "get_session_factory", _no_database)
