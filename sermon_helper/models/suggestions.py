from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from sermon_helper.models.theology import TheologyTradition

SUGGESTION_COLLECTIONS = (
    "scriptureSuggestions",
    "outline",
    "applicationIdeas",
    "hymnThemes",
    "illustrationSuggestions",
)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScriptureSuggestion(_WireModel):
    reference: str
    reason: str = ""


class OutlineItem(_WireModel):
    type: Literal["section", "point"]
    title: str | None = None
    text: str | None = None

    @model_validator(mode="after")
    def _requires_label(self) -> "OutlineItem":
        if self.type == "section" and self.title is None:
            raise ValueError("outline section requires a title")
        if self.type == "point" and self.text is None:
            raise ValueError("outline point requires text")
        return self


class ApplicationIdea(_WireModel):
    audience: str
    idea: str


class HymnTheme(_WireModel):
    theme: str
    reason: str = ""


class IllustrationSuggestion(_WireModel):
    id: str
    title: str
    summary: str
    for_section: str | None = None


class SermonHelperSuggestions(_WireModel):
    scripture_suggestions: list[ScriptureSuggestion] = Field(default_factory=list)
    outline: list[OutlineItem] = Field(default_factory=list)
    application_ideas: list[ApplicationIdea] = Field(default_factory=list)
    hymn_themes: list[HymnTheme] = Field(default_factory=list)
    illustration_suggestions: list[IllustrationSuggestion] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _requires_known_collection(cls, data: Any) -> Any:
        if isinstance(data, dict) and not any(
            key in data
            for key in (*SUGGESTION_COLLECTIONS, *cls.model_fields.keys())
        ):
            raise ValueError("response contains none of the suggestion collections")
        return data

    def is_empty(self) -> bool:
        return not any(
            (
                self.scripture_suggestions,
                self.outline,
                self.application_ideas,
                self.hymn_themes,
                self.illustration_suggestions,
            )
        )


def empty_suggestions() -> SermonHelperSuggestions:
    return SermonHelperSuggestions(
        scripture_suggestions=[],
        outline=[],
        application_ideas=[],
        hymn_themes=[],
        illustration_suggestions=[],
    )


class SuggestionsMeta(_WireModel):
    """Response metadata; guardrail flags are either ``True`` or absent."""

    model: str | None = None
    tokens_used: int | None = None
    fallback: Literal[True] | None = None
    restricted_topic_triggered: Literal[True] | None = None
    political_content_detected: Literal[True] | None = None

    @classmethod
    def build(
        cls,
        *,
        model: str | None = None,
        tokens_used: int | None = None,
        fallback: bool = False,
        restricted_topic_triggered: bool = False,
        political_content_detected: bool = False,
    ) -> "SuggestionsMeta":
        return cls(
            model=model,
            tokens_used=tokens_used,
            fallback=True if fallback else None,
            restricted_topic_triggered=True if restricted_topic_triggered else None,
            political_content_detected=True if political_content_detected else None,
        )


class SuggestionsResponse(_WireModel):
    suggestions: SermonHelperSuggestions
    meta: SuggestionsMeta

    def as_payload(self) -> dict[str, Any]:
        """Items keep exactly the keys the model sent, explicit nulls included."""
        suggestions = self.suggestions.model_dump(by_alias=True, exclude_unset=True)
        for key in SUGGESTION_COLLECTIONS:
            suggestions.setdefault(key, [])
        return {
            "suggestions": suggestions,
            "meta": self.meta.model_dump(by_alias=True, exclude_none=True),
        }


class SermonContext(_WireModel):
    sermon_id: str = Field(min_length=1)
    title: str = ""
    primary_scripture: str | None = None
    preacher: str | None = None
    sermon_date: str | None = None
    series_title: str | None = None


class SuggestionsRequest(_WireModel):
    sermon: SermonContext
    theme: str = Field(min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)
    style_profile: str | None = None


class SermonDraft(_WireModel):
    sermon_id: str
    style_profile: str | None
    theology_tradition: TheologyTradition
    created_at: str
    content_markdown: str


class DraftMeta(_WireModel):
    model: str | None = None
    tokens_used: int | None = None
    political_content_detected: Literal[True] | None = None


class DraftResponse(_WireModel):
    draft: SermonDraft
    meta: DraftMeta

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
