import logging
from typing import Any

from fastapi import APIRouter, Request

from sermon_helper.budget.quota import QuotaGuard
from sermon_helper.config.settings import Settings
from sermon_helper.guards.environment import assert_environment_allows_ai
from sermon_helper.models.plan import SermonPlan
from sermon_helper.models.suggestions import SuggestionsRequest
from sermon_helper.models.theology import TheologyProfile, theology_profile_from_row
from sermon_helper.services.pipeline import SermonHelperPipeline
from sermon_helper.storage.base import TheologyProfileStore, UsageStore

logger = logging.getLogger("shg.api")

router = APIRouter()


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _load_profile(request: Request) -> TheologyProfile:
    store: TheologyProfileStore = request.app.state.profile_store
    row = await store.load_theology_profile(request.state.tenant_id)
    return theology_profile_from_row(row)


def _org_name(request: Request) -> str:
    settings: Settings = request.app.state.settings
    return request.state.org_name or settings.org_name


@router.get("/v1/ai/quota")
async def ai_quota(request: Request) -> dict[str, Any]:
    quota: QuotaGuard = request.app.state.quota_guard
    usage_store: UsageStore = request.app.state.usage_store
    tenant_id = request.state.tenant_id

    status = await quota.status(tenant_id)
    start, end = quota.current_window()
    try:
        features = await usage_store.usage_by_feature(tenant_id, start, end)
    except Exception as exc:
        logger.warning(
            "usage_report_failed",
            extra={"tenant_id": tenant_id, "error": type(exc).__name__},
        )
        features = []

    return {
        **status.as_dict(),
        "periodStart": start.isoformat(),
        "periodEnd": end.isoformat(),
        "byFeature": [
            {
                "feature": item.feature,
                "events": item.events,
                "tokensIn": item.tokens_in,
                "tokensOut": item.tokens_out,
            }
            for item in features
        ],
    }


@router.post("/v1/sermons/suggestions")
async def sermon_suggestions(request: Request, payload: SuggestionsRequest) -> dict[str, Any]:
    settings: Settings = request.app.state.settings
    pipeline: SermonHelperPipeline = request.app.state.pipeline

    # Checked before the profile read so production never touches storage.
    assert_environment_allows_ai(settings.deploy_env)
    profile = await _load_profile(request)
    response = await pipeline.suggest(
        request.state.tenant_id, _org_name(request), profile, payload
    )
    return response.as_payload()


@router.post("/v1/sermons/draft")
async def sermon_draft(request: Request, payload: SermonPlan) -> dict[str, Any]:
    settings: Settings = request.app.state.settings
    pipeline: SermonHelperPipeline = request.app.state.pipeline

    assert_environment_allows_ai(settings.deploy_env)
    profile = await _load_profile(request)
    response = await pipeline.generate_draft(
        request.state.tenant_id, _org_name(request), profile, payload
    )
    return response.as_payload()
