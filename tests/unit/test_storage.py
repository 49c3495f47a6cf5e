"""Unit tests for the storage singletons."""

import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

import passgate.storage as storage


def _lock_free_from_other_thread() -> bool:
    acquired: list[bool] = []

    def _try() -> None:
        got = storage._init_lock.acquire(timeout=0.5)
        if got:
            storage._init_lock.release()
        acquired.append(got)

    worker = threading.Thread(target=_try)
    worker.start()
    worker.join()
    return acquired[0]


@pytest.mark.asyncio
class TestCloseDb:
    async def test_disposes_engine_after_releasing_lock(self, monkeypatch):
        seen: dict[str, object] = {}

        async def _dispose() -> None:
            seen["lock_free"] = _lock_free_from_other_thread()
            seen["engine"] = storage._engine
            seen["factory"] = storage._session_factory

        engine = MagicMock()
        engine.dispose = AsyncMock(side_effect=_dispose)
        monkeypatch.setattr(storage, "_engine", engine)
        monkeypatch.setattr(storage, "_session_factory", MagicMock())

        await storage.close_db()

        engine.dispose.assert_awaited_once()
        assert seen == {"lock_free": True, "engine": None, "factory": None}

    async def test_without_engine_is_a_no_op(self):
        await storage.close_db()

        assert storage._engine is None
        assert storage._session_factory is None
