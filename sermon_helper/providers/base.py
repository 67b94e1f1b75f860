from dataclasses import dataclass
from typing import Any, Protocol

from sermon_helper.core.errors import ProviderEmptyResponse


@dataclass(frozen=True)
class ProviderCompletion:
    content: str
    model: str
    tokens_in: int = 0
    tokens_out: int = 0

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out


class ChatProvider(Protocol):
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
        """Run one chat completion and return its text and token usage."""


def _usage_count(usage: object, key: str) -> int:
    if not isinstance(usage, dict):
        return 0
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return max(int(value), 0)


def completion_from_payload(payload: Any, requested_model: str) -> ProviderCompletion:
    """Extract text and usage from an OpenAI-style chat completion payload.

    Missing usage becomes zero tokens; missing or blank content raises
    ``ProviderEmptyResponse``.
    """
    content = ""
    if isinstance(payload, dict):
        choices = payload.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"].strip()
    if not content:
        raise ProviderEmptyResponse()

    usage = payload.get("usage")
    model = payload.get("model")
    return ProviderCompletion(
        content=content,
        model=model if isinstance(model, str) and model else requested_model,
        tokens_in=_usage_count(usage, "prompt_tokens"),
        tokens_out=_usage_count(usage, "completion_tokens"),
    )
