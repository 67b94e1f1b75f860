from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    type: str
    request_id: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "type": self.type,
                "request_id": self.request_id,
            }
        }


class AppError(Exception):
    retryable = False

    def __init__(self, status_code: int, code: str, error_type: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.error_type = error_type
        self.message = message


class ConfigurationBlocked(AppError):
    """AI is unavailable for this deployment tier or has no usable credentials."""

    def __init__(
        self,
        message: str = "AI features are not configured. Please configure AI in Settings.",
        code: str = "ai_not_configured",
    ):
        super().__init__(412, code, "precondition", message)


class QuotaDenialReason(Enum):
    DISABLED = "disabled_for_tenant"
    OVER_LIMIT = "over_monthly_limit"


class QuotaExceeded(AppError):
    """Tenant may not spend AI tokens right now."""

    def __init__(self, reason: QuotaDenialReason):
        if reason is QuotaDenialReason.DISABLED:
            code = "ai_disabled_for_tenant"
            message = "AI features are disabled for this tenant."
        else:
            code = "ai_quota_exceeded"
            message = "Monthly AI usage limit reached."
        super().__init__(403, code, "quota", message)
        self.reason = reason


class ProviderUnavailable(AppError):
    retryable = True

    def __init__(
        self,
        message: str = "AI service temporarily unavailable. Please try again.",
        upstream_status: int | None = None,
    ):
        super().__init__(503, "provider_unavailable", "provider", message)
        self.upstream_status = upstream_status


class ProviderEmptyResponse(AppError):
    retryable = True

    def __init__(self, message: str = "AI service returned empty response."):
        super().__init__(502, "provider_empty_response", "provider", message)


class DraftRestrictedTopic(AppError):
    def __init__(self) -> None:
        super().__init__(
            403,
            "restricted_topic",
            "policy",
            "Draft generation is disabled for sermons containing restricted topics. "
            "Please handle this content personally.",
        )


class DraftIncomplete(AppError):
    retryable = True

    def __init__(self) -> None:
        super().__init__(
            502,
            "draft_incomplete",
            "provider",
            "AI generated incomplete draft. Please try again.",
        )


def request_id_from_request(request: Request) -> str:
    state_id = getattr(request.state, "request_id", None)
    header_id = request.headers.get("x-request-id")
    return state_id or header_id or str(uuid4())


def app_error_response(
    status_code: int, code: str, error_type: str, message: str, request_id: str
) -> JSONResponse:
    envelope = ErrorEnvelope(code=code, message=message, type=error_type, request_id=request_id)
    response = JSONResponse(status_code=status_code, content=envelope.as_dict())
    response.headers["x-request-id"] = request_id
    return response
