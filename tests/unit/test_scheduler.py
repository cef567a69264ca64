"""
Unit tests for the periodic session status sync job
"""
from datetime import timedelta

import pytest

from app.services import scheduler as scheduler_module
from app.services.item_store import SESSIONS
from app.services.session_lifecycle import SessionLifecycle
from tests.fakes import BASE_TIME


class TestSchedulerConfiguration:

    def test_sync_job_registered(self):
        scheduler_module.configure_scheduler()

        job = scheduler_module.scheduler.get_job('session_status_sync')

        assert job is not None
        assert job.trigger.interval == timedelta(minutes=scheduler_module.config.SESSION_SYNC_INTERVAL_MINUTES)
        assert job.coalesce is True
        assert job.max_instances == 1

        scheduler_module.scheduler.remove_job('session_status_sync')


class TestSyncSessionStatuses:

    @pytest.mark.asyncio
    async def test_completes_elapsed_sessions(self, monkeypatch, store, seed):
        subscription = seed.subscription(status="active")
        session = seed.session(subscription, start_at=BASE_TIME - timedelta(days=30))
        monkeypatch.setattr(scheduler_module, "get_session_lifecycle", lambda: SessionLifecycle(store))

        await scheduler_module.sync_session_statuses()

        assert seed.get(SESSIONS, session["id"])["status"] == "completed"

    @pytest.mark.asyncio
    async def test_job_failure_is_logged_not_raised(self, monkeypatch, caplog):
        def broken():
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(scheduler_module, "get_session_lifecycle", broken)

        await scheduler_module.sync_session_statuses()

        assert "Failed to sync session statuses" in caplog.text
