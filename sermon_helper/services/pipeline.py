"""Sermon helper request pipeline.

Suggestions:
    gate -> quota -> restricted topics -> prompts -> provider -> validate
    -> political filter -> usage log -> response

Drafts follow the same order with a plan-wide topic check that raises, plain
text output and phrase redaction instead of item removal.

Every guardrail decision is logged as a metadata-only event; sermon text,
notes and model output never reach the logs.
"""

import asyncio
import logging
from datetime import UTC, datetime
from time import perf_counter

from sermon_helper.audit.events import (
    DraftPoliticalFilteredEvent,
    DraftRestrictedTopicEvent,
    PoliticalFilteredEvent,
    RestrictedTopicEvent,
    emit_guardrail_event,
)
from sermon_helper.audit.usage import (
    FEATURE_GENERATE_DRAFT,
    FEATURE_HELPER_SUGGESTIONS,
    UsageLogger,
)
from sermon_helper.budget.pricing import calculate_usage_cost
from sermon_helper.budget.quota import QuotaGuard
from sermon_helper.config.settings import Settings
from sermon_helper.core.errors import (
    AppError,
    DraftIncomplete,
    DraftRestrictedTopic,
)
from sermon_helper.guards.credentials import CredentialResolver
from sermon_helper.metrics import record_guardrail_trigger, record_pipeline_request
from sermon_helper.models.plan import SermonPlan
from sermon_helper.models.suggestions import (
    DraftMeta,
    DraftResponse,
    SermonDraft,
    SuggestionsMeta,
    SuggestionsRequest,
    SuggestionsResponse,
    empty_suggestions,
)
from sermon_helper.models.theology import TheologyProfile
from sermon_helper.policy.political import (
    filter_political_content,
    filter_political_content_from_draft,
)
from sermon_helper.policy.topics import (
    build_plan_detection_text,
    build_topic_detection_text,
    detect_restricted_topic,
)
from sermon_helper.prompts.builder import (
    build_draft_prompt,
    build_suggestions_prompt,
    build_system_prompt,
)
from sermon_helper.providers.base import ChatProvider, ProviderCompletion
from sermon_helper.validation.response import parse_draft_response, validate_suggestions

logger = logging.getLogger("shg.pipeline")
guardrail_logger = logging.getLogger("shg.guardrail")


class SermonHelperPipeline:
    def __init__(
        self,
        settings: Settings,
        credentials: CredentialResolver,
        quota: QuotaGuard,
        provider: ChatProvider,
        usage_logger: UsageLogger,
    ):
        self._settings = settings
        self._credentials = credentials
        self._quota = quota
        self._provider = provider
        self._usage_logger = usage_logger

    async def suggest(
        self,
        tenant_id: str,
        org_name: str,
        profile: TheologyProfile,
        request: SuggestionsRequest,
    ) -> SuggestionsResponse:
        started = perf_counter()
        feature = FEATURE_HELPER_SUGGESTIONS
        sermon_id = request.sermon.sermon_id
        try:
            api_key = await self._credentials.require()
            await self._quota.enforce(tenant_id)

            detection_text = build_topic_detection_text(
                request.theme, request.notes, request.sermon.title
            )
            if detect_restricted_topic(detection_text, profile.restricted_topics) is not None:
                emit_guardrail_event(
                    guardrail_logger,
                    RestrictedTopicEvent(
                        tenant_id=tenant_id,
                        theology_tradition=profile.tradition.value,
                        restricted_topics_count=len(profile.restricted_topics),
                        sermon_id=sermon_id,
                    ),
                )
                record_guardrail_trigger(feature, "restricted_topic")
                record_pipeline_request(feature, "restricted_topic", perf_counter() - started)
                return SuggestionsResponse(
                    suggestions=empty_suggestions(),
                    meta=SuggestionsMeta.build(restricted_topic_triggered=True),
                )

            system_prompt = build_system_prompt(org_name, profile)
            user_prompt = build_suggestions_prompt(request)
            completion = await self._provider.complete(
                api_key,
                system_prompt,
                user_prompt,
                model=self._settings.model,
                temperature=self._settings.suggestions_temperature,
                max_tokens=self._settings.suggestions_max_tokens,
                json_mode=True,
            )
        except asyncio.CancelledError:
            record_pipeline_request(feature, "cancelled", perf_counter() - started)
            raise
        except AppError as exc:
            record_pipeline_request(feature, exc.code, perf_counter() - started)
            raise

        validation = validate_suggestions(completion.content)
        political = filter_political_content(validation.suggestions)
        if political.detected:
            emit_guardrail_event(
                guardrail_logger,
                PoliticalFilteredEvent(
                    tenant_id=tenant_id,
                    theology_tradition=profile.tradition.value,
                    sermon_id=sermon_id,
                ),
            )
            record_guardrail_trigger(feature, "political_content")

        await self._usage_logger.record(
            tenant_id,
            feature,
            completion.model,
            completion.tokens_in,
            completion.tokens_out,
            meta={
                "sermonId": sermon_id,
                "fallback": validation.used_fallback,
                "politicalContentDetected": political.detected,
            },
        )
        self._record_completion(
            feature,
            "fallback" if validation.used_fallback else "ok",
            started,
            completion,
            fallback=validation.used_fallback,
        )
        logger.info(
            "suggestions_generated",
            extra={
                "tenant_id": tenant_id,
                "sermon_id": sermon_id,
                "feature": feature,
                "model": completion.model,
                "theology_tradition": profile.tradition.value,
                "fallback": validation.used_fallback,
                "political_content_detected": political.detected,
                "token_in": completion.tokens_in,
                "token_out": completion.tokens_out,
            },
        )

        return SuggestionsResponse(
            suggestions=political.filtered,
            meta=SuggestionsMeta.build(
                model=completion.model,
                tokens_used=completion.total_tokens,
                fallback=validation.used_fallback,
                political_content_detected=political.detected,
            ),
        )

    async def generate_draft(
        self,
        tenant_id: str,
        org_name: str,
        profile: TheologyProfile,
        plan: SermonPlan,
    ) -> DraftResponse:
        started = perf_counter()
        feature = FEATURE_GENERATE_DRAFT
        try:
            api_key = await self._credentials.require()
            await self._quota.enforce(tenant_id)

            detection_text = build_plan_detection_text(plan)
            if detect_restricted_topic(detection_text, profile.restricted_topics) is not None:
                emit_guardrail_event(
                    guardrail_logger,
                    DraftRestrictedTopicEvent(
                        tenant_id=tenant_id,
                        restricted_topics_count=len(profile.restricted_topics),
                        sermon_id=plan.sermon_id,
                    ),
                )
                record_guardrail_trigger(feature, "restricted_topic")
                raise DraftRestrictedTopic()

            completion = await self._provider.complete(
                api_key,
                build_system_prompt(org_name, profile),
                build_draft_prompt(plan, profile),
                model=self._settings.model,
                temperature=self._settings.draft_temperature,
                max_tokens=self._settings.draft_max_tokens,
                json_mode=False,
            )

            parsed = parse_draft_response(completion.content)
            if not parsed.valid:
                logger.error(
                    "draft_incomplete",
                    extra={"tenant_id": tenant_id, "sermon_id": plan.sermon_id},
                )
                raise DraftIncomplete()
        except asyncio.CancelledError:
            record_pipeline_request(feature, "cancelled", perf_counter() - started)
            raise
        except AppError as exc:
            record_pipeline_request(feature, exc.code, perf_counter() - started)
            raise

        redacted = filter_political_content_from_draft(parsed.markdown)
        if redacted.detected:
            emit_guardrail_event(
                guardrail_logger,
                DraftPoliticalFilteredEvent(tenant_id=tenant_id, sermon_id=plan.sermon_id),
            )
            record_guardrail_trigger(feature, "political_content")

        await self._usage_logger.record(
            tenant_id,
            feature,
            completion.model,
            completion.tokens_in,
            completion.tokens_out,
            meta={
                "sermonId": plan.sermon_id,
                "styleProfile": plan.style_profile,
                "politicalContentDetected": redacted.detected,
            },
        )
        self._record_completion(feature, "ok", started, completion)
        logger.info(
            "draft_generated",
            extra={
                "tenant_id": tenant_id,
                "sermon_id": plan.sermon_id,
                "feature": feature,
                "model": completion.model,
                "political_content_detected": redacted.detected,
                "token_in": completion.tokens_in,
                "token_out": completion.tokens_out,
            },
        )

        return DraftResponse(
            draft=SermonDraft(
                sermon_id=plan.sermon_id,
                style_profile=plan.style_profile,
                theology_tradition=profile.tradition,
                created_at=datetime.now(UTC).isoformat(),
                content_markdown=redacted.text,
            ),
            meta=DraftMeta(
                model=completion.model,
                tokens_used=completion.total_tokens,
                political_content_detected=True if redacted.detected else None,
            ),
        )

    @staticmethod
    def _record_completion(
        feature: str,
        outcome: str,
        started: float,
        completion: ProviderCompletion,
        fallback: bool = False,
    ) -> None:
        record_pipeline_request(
            feature,
            outcome,
            perf_counter() - started,
            model=completion.model,
            tokens_in=completion.tokens_in,
            tokens_out=completion.tokens_out,
            cost_usd=calculate_usage_cost(
                completion.model, completion.tokens_in, completion.tokens_out
            ),
            fallback=fallback,
        )
