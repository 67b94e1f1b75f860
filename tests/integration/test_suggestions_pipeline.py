import asyncio
import json
import logging
from datetime import UTC, datetime

import pytest

from sermon_helper.audit.usage import UsageLogger
from sermon_helper.budget.quota import QuotaGuard
from sermon_helper.config.settings import Settings
from sermon_helper.core.errors import (
    ConfigurationBlocked,
    ProviderUnavailable,
    QuotaDenialReason,
    QuotaExceeded,
)
from sermon_helper.crypto.secrets import AesGcmSecretCipher
from sermon_helper.guards.credentials import CredentialResolver
from sermon_helper.models.suggestions import (
    SUGGESTION_COLLECTIONS,
    SermonContext,
    SuggestionsRequest,
)
from sermon_helper.models.theology import TheologyProfile, TheologyTradition
from sermon_helper.providers.base import ProviderCompletion
from sermon_helper.providers.stub import StubProvider
from sermon_helper.services.pipeline import SermonHelperPipeline
from sermon_helper.storage.sqlite import SQLiteGuardrailStore

MONTH = (datetime(2000, 1, 1, tzinfo=UTC), datetime(2100, 1, 1, tzinfo=UTC))


def _pipeline(
    store: SQLiteGuardrailStore,
    cipher: AesGcmSecretCipher,
    provider: object,
    deploy_env: str = "development",
) -> SermonHelperPipeline:
    settings = Settings(deploy_env=deploy_env)
    return SermonHelperPipeline(
        settings=settings,
        credentials=CredentialResolver(deploy_env, cipher, store),
        quota=QuotaGuard(store, store),
        provider=provider,  # type: ignore[arg-type]
        usage_logger=UsageLogger(store),
    )


def _seed(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher, limit: int | None = None) -> None:
    store.save_provider_settings(enabled=True, api_key_encrypted=cipher.encrypt("sk-test"))
    store.save_tenant("tenant-a", ai_enabled=True, monthly_token_limit=limit)


def _request(theme: str = "The Lord is my shepherd", notes: str | None = None) -> SuggestionsRequest:
    return SuggestionsRequest(
        sermon=SermonContext(sermon_id="sermon-1", title="Rest for the Weary"),
        theme=theme,
        notes=notes,
    )


def _usage(store: SQLiteGuardrailStore) -> int:
    return asyncio.run(store.sum_tokens("tenant-a", *MONTH))


def _assert_envelope(payload: dict) -> None:
    assert sorted(payload["suggestions"]) == sorted(SUGGESTION_COLLECTIONS)
    assert all(isinstance(payload["suggestions"][key], list) for key in SUGGESTION_COLLECTIONS)


def test_successful_suggestions(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    _seed(store, cipher)
    provider = StubProvider(tokens_in=120, tokens_out=80)

    response = asyncio.run(
        _pipeline(store, cipher, provider).suggest(
            "tenant-a", "Grace Chapel", TheologyProfile(), _request()
        )
    )
    payload = response.as_payload()

    _assert_envelope(payload)
    assert payload["meta"] == {"model": "gpt-4o-mini", "tokensUsed": 200}
    assert len(payload["suggestions"]["scriptureSuggestions"]) == 2
    assert provider.calls[0]["temperature"] == 0.7
    assert provider.calls[0]["max_tokens"] == 2000
    assert '"Grace Chapel"' in str(provider.calls[0]["system_prompt"])
    assert _usage(store) == 200


def test_restricted_topic_short_circuits(
    store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher, caplog: pytest.LogCaptureFixture
) -> None:
    _seed(store, cipher)
    provider = StubProvider()
    profile = TheologyProfile(
        tradition=TheologyTradition.METHODIST, restricted_topics=["tithing", "end times"]
    )

    with caplog.at_level(logging.INFO, logger="shg.guardrail"):
        response = asyncio.run(
            _pipeline(store, cipher, provider).suggest(
                "tenant-a", "Grace Chapel", profile, _request(theme="End times prophecy")
            )
        )
    payload = response.as_payload()

    _assert_envelope(payload)
    assert response.suggestions.is_empty()
    assert payload["meta"] == {"restrictedTopicTriggered": True}
    assert provider.call_count == 0
    assert _usage(store) == 0

    events = [r for r in caplog.records if r.getMessage() == "sermonHelper.restrictedTopic"]
    assert len(events) == 1
    assert events[0].restricted_topics_count == 2
    assert events[0].theology_tradition == "Methodist"
    assert not hasattr(events[0], "theme")


def test_malformed_output_falls_back(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    _seed(store, cipher)
    provider = StubProvider(content="{ bad json ]", tokens_in=50, tokens_out=10)

    payload = asyncio.run(
        _pipeline(store, cipher, provider).suggest(
            "tenant-a", "Grace Chapel", TheologyProfile(), _request()
        )
    ).as_payload()

    _assert_envelope(payload)
    assert all(payload["suggestions"][key] == [] for key in SUGGESTION_COLLECTIONS)
    assert payload["meta"]["fallback"] is True
    assert "politicalContentDetected" not in payload["meta"]
    assert _usage(store) == 60


def test_political_items_are_removed(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    _seed(store, cipher)
    content = json.dumps(
        {
            "scriptureSuggestions": [
                {"reference": "Romans 13:1", "reason": "Vote Republican for God's authority"},
                {"reference": "John 3:16", "reason": "Gospel message"},
            ]
        }
    )
    provider = StubProvider(content=content)

    payload = asyncio.run(
        _pipeline(store, cipher, provider).suggest(
            "tenant-a", "Grace Chapel", TheologyProfile(), _request()
        )
    ).as_payload()

    _assert_envelope(payload)
    assert payload["suggestions"]["scriptureSuggestions"] == [
        {"reference": "John 3:16", "reason": "Gospel message"}
    ]
    assert payload["meta"]["politicalContentDetected"] is True
    assert "fallback" not in payload["meta"]


def test_production_blocks_before_storage(cipher: AesGcmSecretCipher) -> None:
    class _ExplodingStore:
        async def load_provider_settings(self):  # type: ignore[no-untyped-def]
            raise AssertionError("storage must not be read")

    provider = StubProvider()
    pipeline = SermonHelperPipeline(
        settings=Settings(deploy_env="production"),
        credentials=CredentialResolver("production", cipher, _ExplodingStore()),  # type: ignore[arg-type]
        quota=QuotaGuard(_ExplodingStore(), _ExplodingStore()),  # type: ignore[arg-type]
        provider=provider,
        usage_logger=UsageLogger(_ExplodingStore()),  # type: ignore[arg-type]
    )

    with pytest.raises(ConfigurationBlocked):
        asyncio.run(pipeline.suggest("tenant-a", "Grace", TheologyProfile(), _request()))
    assert provider.call_count == 0


def test_missing_credentials_block(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    store.save_tenant("tenant-a")
    provider = StubProvider()

    with pytest.raises(ConfigurationBlocked) as exc_info:
        asyncio.run(
            _pipeline(store, cipher, provider).suggest(
                "tenant-a", "Grace", TheologyProfile(), _request()
            )
        )
    assert exc_info.value.code == "ai_not_configured"
    assert provider.call_count == 0


def test_quota_denial_precedes_topic_check(
    store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher
) -> None:
    _seed(store, cipher, limit=0)
    provider = StubProvider()
    profile = TheologyProfile(restricted_topics=["shepherd"])

    with pytest.raises(QuotaExceeded) as exc_info:
        asyncio.run(
            _pipeline(store, cipher, provider).suggest("tenant-a", "Grace", profile, _request())
        )
    assert exc_info.value.reason is QuotaDenialReason.OVER_LIMIT
    assert provider.call_count == 0


def test_provider_failure_logs_no_usage(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    _seed(store, cipher)

    class _DownProvider:
        async def complete(self, *args, **kwargs) -> ProviderCompletion:  # type: ignore[no-untyped-def]
            raise ProviderUnavailable(upstream_status=500)

    with pytest.raises(ProviderUnavailable):
        asyncio.run(
            _pipeline(store, cipher, _DownProvider()).suggest(
                "tenant-a", "Grace", TheologyProfile(), _request()
            )
        )
    assert _usage(store) == 0


def test_cancelled_call_logs_no_usage(store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher) -> None:
    _seed(store, cipher)

    class _HangingProvider:
        async def complete(self, *args, **kwargs) -> ProviderCompletion:  # type: ignore[no-untyped-def]
            await asyncio.sleep(60)
            raise AssertionError("unreachable")

    pipeline = _pipeline(store, cipher, _HangingProvider())

    async def _run() -> None:
        task = asyncio.create_task(
            pipeline.suggest("tenant-a", "Grace", TheologyProfile(), _request())
        )
        await asyncio.sleep(0.1)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(_run())
    assert _usage(store) == 0


def test_usage_failure_does_not_fail_request(
    store: SQLiteGuardrailStore, cipher: AesGcmSecretCipher
) -> None:
    _seed(store, cipher)

    class _ReadOnlyUsage:
        async def insert_usage_event(self, event):  # type: ignore[no-untyped-def]
            raise PermissionError("read-only database")

    pipeline = SermonHelperPipeline(
        settings=Settings(),
        credentials=CredentialResolver("development", cipher, store),
        quota=QuotaGuard(store, store),
        provider=StubProvider(),
        usage_logger=UsageLogger(_ReadOnlyUsage()),  # type: ignore[arg-type]
    )

    response = asyncio.run(pipeline.suggest("tenant-a", "Grace", TheologyProfile(), _request()))
    assert response.suggestions.scripture_suggestions
