import json

import pytest

from sermon_helper.models.suggestions import SuggestionsMeta, SuggestionsResponse, empty_suggestions
from sermon_helper.validation.response import (
    MIN_DRAFT_LENGTH,
    parse_draft_response,
    strip_code_fences,
    validate_suggestions,
)

PAYLOAD = '{"scriptureSuggestions":[{"reference":"Psalm 23:1","reason":"Shepherd theme"}]}'


def test_fenced_json_is_accepted() -> None:
    result = validate_suggestions(f"```json\n{PAYLOAD}\n```")

    assert result.used_fallback is False
    assert len(result.suggestions.scripture_suggestions) == 1
    assert result.suggestions.scripture_suggestions[0].reference == "Psalm 23:1"
    assert result.suggestions.outline == []
    assert result.suggestions.illustration_suggestions == []


def test_fence_stripping_is_idempotent() -> None:
    fenced = validate_suggestions(f"```json\n{PAYLOAD}\n```")
    bare = validate_suggestions(PAYLOAD)
    plain_fence = validate_suggestions(f"```\n{PAYLOAD}\n```")

    assert fenced.suggestions == bare.suggestions == plain_fence.suggestions
    assert strip_code_fences(strip_code_fences(f"```json\n{PAYLOAD}\n```")) == PAYLOAD


@pytest.mark.parametrize(
    "raw",
    [
        "{ bad json ]",
        "",
        "[]",
        '"just a string"',
        "{}",
        '{"unrelated": 1}',
        '{"outline": "not a list"}',
        '{"outline": [{"type": "section"}]}',
        '{"scriptureSuggestions": [{"reason": "missing reference"}]}',
        '{"illustrationSuggestions": [{"id": "1", "title": "t"}]}',
        "[" * 100_000,
        '{"scriptureSuggestions": [], "x": ' + "9" * 5000 + "}",
    ],
)
def test_invalid_output_falls_back_to_empty(raw: str) -> None:
    result = validate_suggestions(raw)

    assert result.used_fallback is True
    assert result.suggestions == empty_suggestions()
    assert result.suggestions.model_dump(by_alias=True) == {
        "scriptureSuggestions": [],
        "outline": [],
        "applicationIdeas": [],
        "hymnThemes": [],
        "illustrationSuggestions": [],
    }


def test_missing_collections_default_to_empty_lists() -> None:
    result = validate_suggestions(json.dumps({"hymnThemes": [{"theme": "grace"}]}))

    assert result.used_fallback is False
    assert result.suggestions.hymn_themes[0].theme == "grace"
    assert result.suggestions.hymn_themes[0].reason == ""
    assert result.suggestions.application_ideas == []


def test_full_payload_round_trips_through_aliases() -> None:
    raw = json.dumps(
        {
            "scriptureSuggestions": [{"reference": "John 10:11", "reason": "Good shepherd"}],
            "outline": [
                {"type": "section", "title": "Introduction"},
                {"type": "point", "text": "He knows his sheep"},
            ],
            "applicationIdeas": [{"audience": "youth", "idea": "Memorize Psalm 23"}],
            "hymnThemes": [{"theme": "guidance", "reason": "Leading"}],
            "illustrationSuggestions": [
                {"id": "i1", "title": "Lost lamb", "summary": "A story.", "forSection": None}
            ],
        }
    )
    result = validate_suggestions(raw)

    assert result.used_fallback is False
    assert result.suggestions.illustration_suggestions[0].for_section is None
    assert result.suggestions.outline[1].text == "He knows his sheep"


def test_empty_strings_are_accepted() -> None:
    raw = json.dumps(
        {
            "illustrationSuggestions": [
                {"id": "", "title": "Empty ID", "summary": "This suggestion has an empty ID."}
            ],
            "hymnThemes": [{"theme": "", "reason": "r"}],
            "outline": [{"type": "section", "title": ""}],
        }
    )
    result = validate_suggestions(raw)

    assert result.used_fallback is False
    assert result.suggestions.illustration_suggestions[0].id == ""
    assert result.suggestions.hymn_themes[0].theme == ""
    assert result.suggestions.outline[0].title == ""


def test_payload_keeps_explicit_nulls_and_drops_empty_meta() -> None:
    raw = json.dumps(
        {
            "outline": [{"type": "section", "title": "Introduction"}],
            "illustrationSuggestions": [
                {"id": "i1", "title": "Lost lamb", "summary": "A story.", "forSection": None},
                {"id": "i2", "title": "Found coin", "summary": "Another story."},
            ],
        }
    )
    response = SuggestionsResponse(
        suggestions=validate_suggestions(raw).suggestions,
        meta=SuggestionsMeta.build(model="gpt-4o-mini", tokens_used=10),
    )
    payload = response.as_payload()

    first, second = payload["suggestions"]["illustrationSuggestions"]
    assert first["forSection"] is None
    assert "forSection" not in second
    assert payload["suggestions"]["outline"] == [{"type": "section", "title": "Introduction"}]
    assert payload["suggestions"]["hymnThemes"] == []
    assert payload["meta"] == {"model": "gpt-4o-mini", "tokensUsed": 10}


def test_draft_parsing_strips_markdown_fences() -> None:
    body = "# Title\n\n" + "word " * 60
    parsed = parse_draft_response(f"```markdown\n{body}\n```")

    assert parsed.valid is True
    assert parsed.markdown == body.strip()
    assert not parsed.markdown.startswith("```")


def test_short_draft_is_invalid() -> None:
    parsed = parse_draft_response("```md\n" + "x" * (MIN_DRAFT_LENGTH - 1) + "\n```")
    assert parsed.valid is False
    assert parsed.markdown == ""
