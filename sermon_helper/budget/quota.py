"""Per-tenant monthly AI token quota.

Status is computed fresh on every call from two reads: the tenant's AI
switch and limit, and the sum of ``tokens_in + tokens_out`` over usage
events in the current calendar month of the configured time zone. Any
storage failure fails closed.

Design notes
------------
* The check and the later usage write are not atomic. Two concurrent
  requests from one tenant can both see "under limit" and both proceed, so
  the limit can be overshot by at most the in-flight requests. Enforcement
  is advisory; no tokens are reserved up front.
* Nothing is cached between calls.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from sermon_helper.core.errors import QuotaDenialReason, QuotaExceeded
from sermon_helper.storage.base import TenantConfigStore, UsageStore

logger = logging.getLogger("shg.quota")


@dataclass(frozen=True)
class AiQuotaStatus:
    enabled: bool
    limit_tokens: int | None
    used_tokens: int
    remaining_tokens: int | None
    over_limit: bool

    @classmethod
    def closed(cls) -> "AiQuotaStatus":
        """Status used whenever the real status cannot be established."""
        return cls(
            enabled=False,
            limit_tokens=0,
            used_tokens=0,
            remaining_tokens=0,
            over_limit=True,
        )

    @classmethod
    def compute(
        cls, enabled: bool, limit_tokens: int | None, used_tokens: int
    ) -> "AiQuotaStatus":
        if not enabled:
            return cls(
                enabled=False,
                limit_tokens=limit_tokens,
                used_tokens=used_tokens,
                remaining_tokens=0,
                over_limit=True,
            )
        if limit_tokens is None:
            return cls(
                enabled=True,
                limit_tokens=None,
                used_tokens=used_tokens,
                remaining_tokens=None,
                over_limit=False,
            )
        return cls(
            enabled=True,
            limit_tokens=limit_tokens,
            used_tokens=used_tokens,
            remaining_tokens=max(limit_tokens - used_tokens, 0),
            over_limit=used_tokens >= limit_tokens,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "enabled": self.enabled,
            "limitTokens": self.limit_tokens,
            "usedTokens": self.used_tokens,
            "remainingTokens": self.remaining_tokens,
            "overLimit": self.over_limit,
        }


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    status: AiQuotaStatus
    reason: QuotaDenialReason | None = None


def month_window(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return ``[start, next_start)`` of the calendar month containing *now* in *tz*."""
    local = now.astimezone(tz)
    start = datetime(local.year, local.month, 1, tzinfo=tz)
    if local.month == 12:
        next_start = datetime(local.year + 1, 1, 1, tzinfo=tz)
    else:
        next_start = datetime(local.year, local.month + 1, 1, tzinfo=tz)
    return start, next_start


def _utc_now() -> datetime:
    return datetime.now(UTC)


class QuotaGuard:
    """Monthly token quota for tenants.

    Parameters
    ----------
    tenant_store : TenantConfigStore
        Source of the tenant's ``ai_enabled`` switch and monthly limit.
    usage_store : UsageStore
        Source of recorded usage events.
    timezone : str
        IANA zone whose calendar months bound the quota window.
    clock : callable, optional
        Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        tenant_store: TenantConfigStore,
        usage_store: UsageStore,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._tenant_store = tenant_store
        self._usage_store = usage_store
        self._tz = ZoneInfo(timezone)
        self._clock = clock

    def current_window(self) -> tuple[datetime, datetime]:
        return month_window(self._clock(), self._tz)

    async def status(self, tenant_id: str | None) -> AiQuotaStatus:
        if not tenant_id:
            logger.warning("quota_missing_tenant")
            return AiQuotaStatus.closed()

        try:
            config = await self._tenant_store.load_tenant_ai_config(tenant_id)
            if config is None:
                logger.warning("quota_tenant_not_found", extra={"tenant_id": tenant_id})
                return AiQuotaStatus.closed()

            start, end = self.current_window()
            used = await self._usage_store.sum_tokens(tenant_id, start, end)
        except Exception as exc:
            logger.error(
                "quota_status_failed",
                extra={"tenant_id": tenant_id, "error": type(exc).__name__},
            )
            return AiQuotaStatus.closed()

        status = AiQuotaStatus.compute(
            enabled=config.ai_enabled,
            limit_tokens=config.monthly_token_limit,
            used_tokens=max(int(used), 0),
        )
        logger.debug("quota_status_computed", extra={"tenant_id": tenant_id})
        return status

    async def ensure_available(self, tenant_id: str | None) -> QuotaDecision:
        status = await self.status(tenant_id)
        if not status.enabled:
            return QuotaDecision(False, status, QuotaDenialReason.DISABLED)
        if status.over_limit:
            return QuotaDecision(False, status, QuotaDenialReason.OVER_LIMIT)
        return QuotaDecision(True, status)

    async def enforce(self, tenant_id: str | None) -> AiQuotaStatus:
        decision = await self.ensure_available(tenant_id)
        if not decision.allowed and decision.reason is not None:
            raise QuotaExceeded(decision.reason)
        return decision.status
