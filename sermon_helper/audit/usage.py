"""Best-effort recording of AI usage events.

A failed write is logged and dropped. It never fails the caller's request,
which means quota accounting can under-count when storage is unhealthy.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sermon_helper.budget.pricing import calculate_usage_cost
from sermon_helper.storage.base import UsageEvent, UsageStore

logger = logging.getLogger("shg.usage")

FEATURE_HELPER_SUGGESTIONS = "sermon.helperSuggestions"
FEATURE_GENERATE_DRAFT = "sermon.generateDraft"


class UsageLogger:
    def __init__(
        self,
        store: UsageStore,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._store = store
        self._clock = clock

    async def record(
        self,
        tenant_id: str,
        feature: str,
        model: str,
        tokens_in: int,
        tokens_out: int,
        meta: dict[str, Any] | None = None,
    ) -> bool:
        """Persist one usage event. Returns ``False`` when the write failed."""
        event = UsageEvent(
            tenant_id=tenant_id,
            feature=feature,
            model=model,
            tokens_in=max(tokens_in, 0),
            tokens_out=max(tokens_out, 0),
            meta=meta,
            created_at=self._clock(),
        )
        try:
            await self._store.insert_usage_event(event)
        except Exception as exc:
            logger.warning(
                "usage_log_failed",
                extra={
                    "tenant_id": tenant_id,
                    "feature": feature,
                    "error": type(exc).__name__,
                },
            )
            return False

        logger.info(
            "usage_logged",
            extra={
                "tenant_id": tenant_id,
                "feature": feature,
                "model": model,
                "token_in": event.tokens_in,
                "token_out": event.tokens_out,
                "cost_usd": round(calculate_usage_cost(model, event.tokens_in, event.tokens_out), 8),
            },
        )
        return True
