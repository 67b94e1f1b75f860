import json

from sermon_helper.providers.base import ProviderCompletion

_DEFAULT_SUGGESTIONS: dict[str, object] = {
    "scriptureSuggestions": [
        {"reference": "Psalm 23:1-3", "reason": "The Lord as shepherd who provides rest"},
        {"reference": "John 10:11", "reason": "Jesus the good shepherd lays down his life"},
    ],
    "outline": [
        {"type": "section", "title": "Introduction"},
        {"type": "point", "text": "The shepherd knows his sheep"},
        {"type": "point", "text": "The shepherd leads to rest"},
    ],
    "applicationIdeas": [
        {"audience": "believers", "idea": "Set aside one quiet hour this week for prayer."},
        {"audience": "families", "idea": "Read Psalm 23 together at dinner."},
    ],
    "hymnThemes": [
        {"theme": "guidance", "reason": "Echoes the shepherd's leading"},
        {"theme": "grace", "reason": "Rest is received, not earned"},
    ],
    "illustrationSuggestions": [
        {
            "id": "illus-1",
            "title": "A shepherd counting at dusk",
            "summary": "A shepherd counts every sheep into the fold at night. "
            "One is missing, and he goes back out into the dark.",
            "forSection": "introduction",
        }
    ],
}

_DEFAULT_DRAFT = "\n\n".join(
    [
        "## Introduction",
        "Friends, every one of us knows what it is to be tired. Not just in the body, "
        "but tired in the soul, tired of carrying the weight of the week.",
        "## The Shepherd Knows",
        "Psalm 23 begins with a name before it begins with a promise. The Lord is my "
        "shepherd. Before we hear about green pastures we hear who leads us there.",
        "## Closing",
        "This week, let the shepherd lead. Let us pray.",
    ]
)


class StubProvider:
    """Deterministic provider for local development and tests."""

    def __init__(
        self,
        content: str | None = None,
        draft_content: str | None = None,
        tokens_in: int = 120,
        tokens_out: int = 80,
    ):
        self._content = content if content is not None else json.dumps(_DEFAULT_SUGGESTIONS)
        self._draft_content = draft_content if draft_content is not None else _DEFAULT_DRAFT
        self._tokens_in = tokens_in
        self._tokens_out = tokens_out
        self.calls: list[dict[str, object]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

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
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            }
        )
        return ProviderCompletion(
            content=self._content if json_mode else self._draft_content,
            model=model,
            tokens_in=self._tokens_in,
            tokens_out=self._tokens_out,
        )
