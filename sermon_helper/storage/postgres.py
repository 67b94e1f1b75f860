"""Postgres storage backend against the application's existing tables."""

import asyncio
from datetime import datetime
from typing import Any, cast

from sermon_helper.storage.base import (
    FeatureUsage,
    ProviderSettingsRecord,
    TenantAiConfig,
    UsageEvent,
)

try:
    import psycopg
    from psycopg.rows import dict_row
    from psycopg.types.json import Jsonb
except ImportError:  # pragma: no cover - import guard
    psycopg = cast(Any, None)
    dict_row = cast(Any, None)
    Jsonb = cast(Any, None)


class PostgresGuardrailStore:
    backend = "postgres"

    def __init__(self, dsn: str):
        if psycopg is None or dict_row is None:
            raise RuntimeError("psycopg is required for the Postgres store")
        self._dsn = dsn

    async def load_provider_settings(self) -> ProviderSettingsRecord | None:
        row = await asyncio.to_thread(
            self._fetch_one,
            "SELECT provider, api_key_encrypted, enabled FROM ai_settings "
            "ORDER BY created_at ASC LIMIT 1",
            [],
        )
        if row is None:
            return None
        return ProviderSettingsRecord(
            enabled=bool(row.get("enabled")),
            api_key_encrypted=row.get("api_key_encrypted"),
            provider=str(row.get("provider") or "openai"),
        )

    async def load_tenant_ai_config(self, tenant_id: str) -> TenantAiConfig | None:
        row = await asyncio.to_thread(
            self._fetch_one,
            "SELECT ai_enabled, ai_monthly_token_limit FROM tenant WHERE id = %s",
            [tenant_id],
        )
        if row is None:
            return None
        limit = row.get("ai_monthly_token_limit")
        return TenantAiConfig(
            ai_enabled=bool(row.get("ai_enabled")),
            monthly_token_limit=int(limit) if limit is not None else None,
        )

    async def sum_tokens(self, tenant_id: str, start: datetime, end: datetime) -> int:
        row = await asyncio.to_thread(
            self._fetch_one,
            "SELECT COALESCE(SUM(tokens_in + tokens_out), 0) AS total "
            "FROM ai_usage_events "
            "WHERE tenant_id = %s AND created_at >= %s AND created_at < %s",
            [tenant_id, start, end],
        )
        return int(row.get("total", 0)) if row else 0

    async def insert_usage_event(self, event: UsageEvent) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO ai_usage_events "
            "(tenant_id, feature, model, tokens_in, tokens_out, meta, created_at) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s)",
            [
                event.tenant_id,
                event.feature,
                event.model,
                event.tokens_in,
                event.tokens_out,
                Jsonb(event.meta) if event.meta is not None else None,
                event.created_at,
            ],
        )

    async def usage_by_feature(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[FeatureUsage]:
        rows = await asyncio.to_thread(
            self._fetch_all,
            "SELECT feature, COUNT(*) AS events, "
            "COALESCE(SUM(tokens_in), 0) AS tokens_in, "
            "COALESCE(SUM(tokens_out), 0) AS tokens_out "
            "FROM ai_usage_events "
            "WHERE tenant_id = %s AND created_at >= %s AND created_at < %s "
            "GROUP BY feature ORDER BY feature ASC",
            [tenant_id, start, end],
        )
        return [
            FeatureUsage(
                feature=str(row.get("feature", "")),
                events=int(row.get("events", 0)),
                tokens_in=int(row.get("tokens_in", 0)),
                tokens_out=int(row.get("tokens_out", 0)),
            )
            for row in rows
        ]

    async def load_theology_profile(self, tenant_id: str) -> dict[str, Any] | None:
        row = await asyncio.to_thread(
            self._fetch_one,
            "SELECT theology_tradition, theology_bible_translation, theology_sermon_style, "
            "theology_sensitivity, theology_restricted_topics, theology_preferred_tone "
            "FROM brand_pack "
            "WHERE tenant_id = %s AND is_active = true AND deleted_at IS NULL "
            "LIMIT 1",
            [tenant_id],
        )
        if row is None:
            return None
        return {
            "tradition": row.get("theology_tradition"),
            "bible_translation": row.get("theology_bible_translation"),
            "sermon_style": row.get("theology_sermon_style"),
            "sensitivity": row.get("theology_sensitivity"),
            "restricted_topics": row.get("theology_restricted_topics"),
            "preferred_tone": row.get("theology_preferred_tone"),
        }

    def _fetch_one(self, sql: str, params: list[Any]) -> dict[str, Any] | None:
        with psycopg.connect(self._dsn, row_factory=dict_row) as conn:
            with conn.cursor() as cursor:
                cursor.execute(sql, params)
                return cast(dict[str, Any] | None, cursor.fetchone())

    def _fetch_all(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        with psycopg.connect(self._dsn, row_factory=dict_row) as conn:
            with conn.cursor() as cursor:
                cursor.execute(sql, params)
                return list(cursor.fetchall())

    def _execute(self, sql: str, params: list[Any]) -> None:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cursor:
                cursor.execute(sql, params)
            conn.commit()
