import hmac
from dataclasses import dataclass

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sermon_helper.config.settings import Settings, get_settings
from sermon_helper.core.errors import app_error_response, request_id_from_request

TENANT_HEADER = "x-shg-tenant-id"
USER_HEADER = "x-shg-user-id"
ORG_NAME_HEADER = "x-shg-org-name"
BYPASS_PATHS = {"/healthz", "/metrics", "/openapi.json", "/docs", "/docs/oauth2-redirect"}
MAX_IDENTIFIER_LENGTH = 128


@dataclass(frozen=True)
class CallerIdentity:
    tenant_id: str
    user_id: str
    org_name: str | None


def api_key_matches(token: str, keys: set[str]) -> bool:
    # compare_digest against every key so timing does not leak which one matched
    matched = False
    for key in keys:
        matched |= hmac.compare_digest(token.encode(), key.encode())
    return matched


def caller_identity(headers: Headers) -> CallerIdentity | list[str]:
    """Return the caller identity, or the names of missing or invalid headers."""
    tenant_id = headers.get(TENANT_HEADER, "").strip()
    user_id = headers.get(USER_HEADER, "").strip()
    problems = [
        name
        for name, value in ((TENANT_HEADER, tenant_id), (USER_HEADER, user_id))
        if not value or len(value) > MAX_IDENTIFIER_LENGTH
    ]
    if problems:
        return problems
    org_name = headers.get(ORG_NAME_HEADER, "").strip() or None
    return CallerIdentity(tenant_id=tenant_id, user_id=user_id, org_name=org_name)


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in BYPASS_PATHS:
            return await call_next(request)

        request_id = request_id_from_request(request)
        settings: Settings = getattr(request.app.state, "settings", None) or get_settings()

        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme != "Bearer" or not token.strip():
            return app_error_response(
                401, "auth_missing", "auth", "Missing bearer token", request_id
            )
        if not api_key_matches(token.strip(), settings.api_key_set):
            return app_error_response(401, "auth_invalid", "auth", "Invalid API key", request_id)

        identity = caller_identity(request.headers)
        if isinstance(identity, list):
            return app_error_response(
                422,
                "missing_required_headers",
                "validation",
                f"Missing or invalid headers: {', '.join(identity)}",
                request_id,
            )

        request.state.tenant_id = identity.tenant_id
        request.state.user_id = identity.user_id
        request.state.org_name = identity.org_name
        return await call_next(request)
