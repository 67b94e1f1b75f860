"""Storage collaborators the guardrail pipeline reads from and writes to.

The pipeline only depends on these protocols; records crossing the boundary
are plain frozen dataclasses so nothing downstream holds a live row or a
connection.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class ProviderSettingsRecord:
    """The installation-wide provider settings singleton."""

    enabled: bool
    api_key_encrypted: str | None
    provider: str = "openai"


@dataclass(frozen=True)
class TenantAiConfig:
    ai_enabled: bool
    monthly_token_limit: int | None


@dataclass(frozen=True)
class UsageEvent:
    tenant_id: str
    feature: str
    model: str
    tokens_in: int
    tokens_out: int
    meta: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class FeatureUsage:
    feature: str
    events: int
    tokens_in: int
    tokens_out: int


class ProviderSettingsStore(Protocol):
    async def load_provider_settings(self) -> ProviderSettingsRecord | None:
        """Return the provider settings singleton, or ``None`` if absent."""


class TenantConfigStore(Protocol):
    async def load_tenant_ai_config(self, tenant_id: str) -> TenantAiConfig | None:
        """Return the tenant's AI switch and monthly limit, or ``None``."""


class UsageStore(Protocol):
    async def sum_tokens(self, tenant_id: str, start: datetime, end: datetime) -> int:
        """Sum ``tokens_in + tokens_out`` for events in ``[start, end)``."""

    async def insert_usage_event(self, event: UsageEvent) -> None:
        """Append one usage event."""

    async def usage_by_feature(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[FeatureUsage]:
        """Aggregate usage events in ``[start, end)`` per feature."""


class TheologyProfileStore(Protocol):
    async def load_theology_profile(self, tenant_id: str) -> dict[str, Any] | None:
        """Return the raw stored theology columns for a tenant, or ``None``."""
