"""HTTP provider for OpenAI-compatible chat completion endpoints."""

import json
import logging

import httpx

from sermon_helper.core.errors import ProviderUnavailable
from sermon_helper.providers.base import ProviderCompletion, completion_from_payload

logger = logging.getLogger("shg.provider")


class HTTPOpenAIProvider:
    """Calls ``/v1/chat/completions``; never retries, the caller decides."""

    def __init__(
        self,
        base_url: str = "https://api.openai.com",
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s
        self._transport = transport

    async def complete(
        self,
        api_key: str,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool = True,
    ) -> ProviderCompletion:
        body: dict[str, object] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        payload = await self._post("/v1/chat/completions", body, api_key)
        return completion_from_payload(payload, requested_model=model)

    async def _post(self, path: str, body: dict[str, object], api_key: str) -> object:
        url = f"{self._base_url}{path}"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("provider_timeout", extra={"error": type(exc).__name__})
            raise ProviderUnavailable() from exc
        except httpx.HTTPError as exc:
            logger.error("provider_connection_error", extra={"error": type(exc).__name__})
            raise ProviderUnavailable() from exc

        self._raise_for_status(resp)

        try:
            return resp.json()
        except json.JSONDecodeError as exc:
            logger.error("provider_invalid_body", extra={"status_code": resp.status_code})
            raise ProviderUnavailable() from exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.is_success:
            return
        logger.error("provider_http_error", extra={"status_code": resp.status_code})
        if resp.status_code == 429:
            raise ProviderUnavailable(
                message="AI service is rate limited. Please try again shortly.",
                upstream_status=429,
            )
        raise ProviderUnavailable(upstream_status=resp.status_code)
