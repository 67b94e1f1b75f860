import asyncio
import logging
from datetime import UTC, datetime

import pytest

from sermon_helper.audit.usage import FEATURE_HELPER_SUGGESTIONS, UsageLogger
from sermon_helper.storage.base import UsageEvent
from sermon_helper.storage.sqlite import SQLiteGuardrailStore

FIXED = datetime(2025, 5, 4, 10, 30, tzinfo=UTC)


def test_record_persists_event(store: SQLiteGuardrailStore) -> None:
    usage_logger = UsageLogger(store, clock=lambda: FIXED)

    ok = asyncio.run(
        usage_logger.record(
            "tenant-a",
            FEATURE_HELPER_SUGGESTIONS,
            "gpt-4o-mini",
            100,
            40,
            meta={"sermonId": "s-1", "fallback": False},
        )
    )

    assert ok is True
    total = asyncio.run(
        store.sum_tokens("tenant-a", datetime(2025, 5, 1, tzinfo=UTC), datetime(2025, 6, 1, tzinfo=UTC))
    )
    assert total == 140


def test_record_swallows_store_failure(caplog: pytest.LogCaptureFixture) -> None:
    class _FailingStore:
        async def insert_usage_event(self, event: UsageEvent) -> None:
            raise OSError("disk full")

    usage_logger = UsageLogger(_FailingStore())  # type: ignore[arg-type]

    with caplog.at_level(logging.WARNING, logger="shg.usage"):
        ok = asyncio.run(
            usage_logger.record("tenant-a", FEATURE_HELPER_SUGGESTIONS, "gpt-4o-mini", 1, 1)
        )

    assert ok is False
    assert any(record.getMessage() == "usage_log_failed" for record in caplog.records)
    assert all("disk full" not in record.getMessage() for record in caplog.records)
