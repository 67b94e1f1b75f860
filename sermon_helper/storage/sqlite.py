"""SQLite storage backend for provider settings, tenants, usage and theology profiles."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sermon_helper.storage.base import (
    FeatureUsage,
    ProviderSettingsRecord,
    TenantAiConfig,
    UsageEvent,
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS ai_settings (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        provider TEXT NOT NULL DEFAULT 'openai',
        api_key_encrypted TEXT,
        enabled INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tenant (
        id TEXT PRIMARY KEY,
        ai_enabled INTEGER NOT NULL DEFAULT 1,
        ai_monthly_token_limit INTEGER CHECK (
            ai_monthly_token_limit IS NULL OR ai_monthly_token_limit >= 0
        )
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ai_usage_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        tenant_id TEXT NOT NULL,
        feature TEXT NOT NULL,
        model TEXT NOT NULL,
        tokens_in INTEGER NOT NULL,
        tokens_out INTEGER NOT NULL,
        meta_json TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_ai_usage_events_tenant_created
    ON ai_usage_events(tenant_id, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS theology_profile (
        tenant_id TEXT PRIMARY KEY,
        tradition TEXT,
        bible_translation TEXT,
        sermon_style TEXT,
        sensitivity TEXT,
        restricted_topics_json TEXT,
        preferred_tone TEXT
    )
    """,
)


def _timestamp(value: datetime) -> str:
    """UTC ISO-8601 text so lexical order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


@dataclass
class SQLiteGuardrailStore:
    """Implements every storage protocol on one SQLite file.

    Blocking ``sqlite3`` calls run in a worker thread so the event loop is
    never held by disk I/O.
    """

    path: Path
    backend: str = "sqlite"

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self.path))
        connection.row_factory = sqlite3.Row
        return connection

    def _ensure_schema(self) -> None:
        with self._connect() as connection:
            for statement in _SCHEMA:
                connection.execute(statement)
            connection.commit()

    # -- protocol methods --

    async def load_provider_settings(self) -> ProviderSettingsRecord | None:
        return await asyncio.to_thread(self._load_provider_settings)

    async def load_tenant_ai_config(self, tenant_id: str) -> TenantAiConfig | None:
        return await asyncio.to_thread(self._load_tenant_ai_config, tenant_id)

    async def sum_tokens(self, tenant_id: str, start: datetime, end: datetime) -> int:
        return await asyncio.to_thread(self._sum_tokens, tenant_id, start, end)

    async def insert_usage_event(self, event: UsageEvent) -> None:
        await asyncio.to_thread(self._insert_usage_event, event)

    async def usage_by_feature(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[FeatureUsage]:
        return await asyncio.to_thread(self._usage_by_feature, tenant_id, start, end)

    async def load_theology_profile(self, tenant_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._load_theology_profile, tenant_id)

    # -- seeding, used by local setup and tests --

    def save_provider_settings(
        self, *, enabled: bool, api_key_encrypted: str | None, provider: str = "openai"
    ) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO ai_settings (id, provider, api_key_encrypted, enabled)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    provider = excluded.provider,
                    api_key_encrypted = excluded.api_key_encrypted,
                    enabled = excluded.enabled
                """,
                (provider, api_key_encrypted, int(enabled)),
            )
            connection.commit()

    def save_tenant(
        self, tenant_id: str, *, ai_enabled: bool = True, monthly_token_limit: int | None = None
    ) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO tenant (id, ai_enabled, ai_monthly_token_limit)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    ai_enabled = excluded.ai_enabled,
                    ai_monthly_token_limit = excluded.ai_monthly_token_limit
                """,
                (tenant_id, int(ai_enabled), monthly_token_limit),
            )
            connection.commit()

    def save_theology_profile(self, tenant_id: str, row: dict[str, Any]) -> None:
        topics = row.get("restricted_topics")
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO theology_profile (
                    tenant_id,
                    tradition,
                    bible_translation,
                    sermon_style,
                    sensitivity,
                    restricted_topics_json,
                    preferred_tone
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(tenant_id) DO UPDATE SET
                    tradition = excluded.tradition,
                    bible_translation = excluded.bible_translation,
                    sermon_style = excluded.sermon_style,
                    sensitivity = excluded.sensitivity,
                    restricted_topics_json = excluded.restricted_topics_json,
                    preferred_tone = excluded.preferred_tone
                """,
                (
                    tenant_id,
                    row.get("tradition"),
                    row.get("bible_translation"),
                    row.get("sermon_style"),
                    row.get("sensitivity"),
                    json.dumps(topics, ensure_ascii=True) if topics is not None else None,
                    row.get("preferred_tone"),
                ),
            )
            connection.commit()

    # -- blocking implementations --

    def _load_provider_settings(self) -> ProviderSettingsRecord | None:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT provider, api_key_encrypted, enabled FROM ai_settings WHERE id = 1"
            ).fetchone()
        if row is None:
            return None
        return ProviderSettingsRecord(
            enabled=bool(row["enabled"]),
            api_key_encrypted=row["api_key_encrypted"],
            provider=row["provider"],
        )

    def _load_tenant_ai_config(self, tenant_id: str) -> TenantAiConfig | None:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT ai_enabled, ai_monthly_token_limit FROM tenant WHERE id = ?",
                (tenant_id,),
            ).fetchone()
        if row is None:
            return None
        limit = row["ai_monthly_token_limit"]
        return TenantAiConfig(
            ai_enabled=bool(row["ai_enabled"]),
            monthly_token_limit=int(limit) if limit is not None else None,
        )

    def _sum_tokens(self, tenant_id: str, start: datetime, end: datetime) -> int:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT COALESCE(SUM(tokens_in + tokens_out), 0) AS total
                FROM ai_usage_events
                WHERE tenant_id = ? AND created_at >= ? AND created_at < ?
                """,
                (tenant_id, _timestamp(start), _timestamp(end)),
            ).fetchone()
        return int(row["total"])

    def _insert_usage_event(self, event: UsageEvent) -> None:
        meta_json = json.dumps(event.meta, ensure_ascii=True) if event.meta is not None else None
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO ai_usage_events (
                    tenant_id,
                    feature,
                    model,
                    tokens_in,
                    tokens_out,
                    meta_json,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.tenant_id,
                    event.feature,
                    event.model,
                    event.tokens_in,
                    event.tokens_out,
                    meta_json,
                    _timestamp(event.created_at),
                ),
            )
            connection.commit()

    def _usage_by_feature(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[FeatureUsage]:
        with self._connect() as connection:
            rows = connection.execute(
                """
                SELECT feature,
                       COUNT(*) AS events,
                       COALESCE(SUM(tokens_in), 0) AS tokens_in,
                       COALESCE(SUM(tokens_out), 0) AS tokens_out
                FROM ai_usage_events
                WHERE tenant_id = ? AND created_at >= ? AND created_at < ?
                GROUP BY feature
                ORDER BY feature ASC
                """,
                (tenant_id, _timestamp(start), _timestamp(end)),
            ).fetchall()
        return [
            FeatureUsage(
                feature=row["feature"],
                events=int(row["events"]),
                tokens_in=int(row["tokens_in"]),
                tokens_out=int(row["tokens_out"]),
            )
            for row in rows
        ]

    def _load_theology_profile(self, tenant_id: str) -> dict[str, Any] | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT tradition, bible_translation, sermon_style, sensitivity,
                       restricted_topics_json, preferred_tone
                FROM theology_profile WHERE tenant_id = ?
                """,
                (tenant_id,),
            ).fetchone()
        if row is None:
            return None
        topics: Any = None
        if row["restricted_topics_json"]:
            try:
                topics = json.loads(row["restricted_topics_json"])
            except json.JSONDecodeError:
                topics = None
        return {
            "tradition": row["tradition"],
            "bible_translation": row["bible_translation"],
            "sermon_style": row["sermon_style"],
            "sensitivity": row["sensitivity"],
            "restricted_topics": topics,
            "preferred_tone": row["preferred_tone"],
        }
