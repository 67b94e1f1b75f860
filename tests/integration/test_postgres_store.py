from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from sermon_helper.storage import postgres as postgres_module
from sermon_helper.storage.base import UsageEvent
from sermon_helper.storage.postgres import PostgresGuardrailStore


def _dsn() -> str:
    return os.getenv("SHG_TEST_POSTGRES_DSN", "")


def _ensure_tables() -> None:
    import psycopg

    with psycopg.connect(_dsn()) as conn:
        with conn.cursor() as cursor:
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS tenant ("
                "id TEXT PRIMARY KEY, ai_enabled BOOLEAN NOT NULL DEFAULT true, "
                "ai_monthly_token_limit INTEGER)"
            )
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS ai_usage_events ("
                "id BIGSERIAL PRIMARY KEY, tenant_id TEXT NOT NULL, feature TEXT NOT NULL, "
                "model TEXT NOT NULL, tokens_in INTEGER NOT NULL, tokens_out INTEGER NOT NULL, "
                "meta JSONB, created_at TIMESTAMPTZ NOT NULL DEFAULT now())"
            )
        conn.commit()


def test_store_requires_psycopg(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(postgres_module, "psycopg", None)
    with pytest.raises(RuntimeError, match="psycopg is required"):
        PostgresGuardrailStore(dsn="postgresql://localhost/unused")


@pytest.mark.skipif(not _dsn(), reason="SHG_TEST_POSTGRES_DSN is not configured")
def test_postgres_usage_round_trip() -> None:
    import psycopg

    _ensure_tables()
    tenant_id = f"tenant-{uuid4().hex[:8]}"
    with psycopg.connect(_dsn()) as conn:
        with conn.cursor() as cursor:
            cursor.execute(
                "INSERT INTO tenant (id, ai_enabled, ai_monthly_token_limit) VALUES (%s, %s, %s)",
                [tenant_id, True, 5000],
            )
        conn.commit()

    store = PostgresGuardrailStore(dsn=_dsn())
    now = datetime.now(UTC)
    asyncio.run(
        store.insert_usage_event(
            UsageEvent(
                tenant_id=tenant_id,
                feature="sermon.helperSuggestions",
                model="gpt-4o-mini",
                tokens_in=100,
                tokens_out=50,
                meta={"sermonId": "s-1"},
                created_at=now,
            )
        )
    )

    config = asyncio.run(store.load_tenant_ai_config(tenant_id))
    start = datetime(now.year, now.month, 1, tzinfo=UTC)
    end = datetime(now.year + 1, 1, 1, tzinfo=UTC)
    assert config is not None
    assert config.monthly_token_limit == 5000
    assert asyncio.run(store.sum_tokens(tenant_id, start, end)) == 150
    usage = asyncio.run(store.usage_by_feature(tenant_id, start, end))
    assert [(item.feature, item.events) for item in usage] == [("sermon.helperSuggestions", 1)]
