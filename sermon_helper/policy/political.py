"""Post-call political content filter.

Runs on every validated AI response, including ones for clean requests. The
keyword list is fixed and not tenant-configurable.

Suggestions are filtered item by item: an item whose checked fields contain
any keyword is removed whole. Drafts are long-form markdown, so there the
keyword occurrences are replaced in place instead.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from sermon_helper.models.suggestions import (
    ApplicationIdea,
    HymnTheme,
    IllustrationSuggestion,
    OutlineItem,
    ScriptureSuggestion,
    SermonHelperSuggestions,
)
from sermon_helper.policy.topics import normalize_for_topic_match

POLITICAL_KEYWORDS: tuple[str, ...] = (
    "republican",
    "democrat",
    "gop",
    "dnc",
    "trump",
    "biden",
    "harris",
    "obama",
    "maga",
    "liberal party",
    "conservative party",
    "vote for",
    "election campaign",
    "political party",
    "far-left",
    "far-right",
    "left-wing",
    "right-wing",
)

DRAFT_REPLACEMENT = "[content filtered]"

_DRAFT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(re.escape(keyword), re.IGNORECASE) for keyword in POLITICAL_KEYWORDS
)

T = TypeVar("T")


@dataclass
class PoliticalFilterResult:
    filtered: SermonHelperSuggestions
    detected: bool
    removed_count: int = 0


@dataclass
class DraftFilterResult:
    text: str
    detected: bool
    replacement_count: int = 0


def contains_political_content(text: str | None) -> bool:
    if not text:
        return False
    normalized = normalize_for_topic_match(text)
    return any(keyword in normalized for keyword in POLITICAL_KEYWORDS)


def _scripture_fields(item: ScriptureSuggestion) -> tuple[str | None, ...]:
    return (item.reference, item.reason)


def _outline_fields(item: OutlineItem) -> tuple[str | None, ...]:
    return (item.title, item.text)


def _application_fields(item: ApplicationIdea) -> tuple[str | None, ...]:
    return (item.audience, item.idea)


def _hymn_fields(item: HymnTheme) -> tuple[str | None, ...]:
    return (item.theme, item.reason)


def _illustration_fields(item: IllustrationSuggestion) -> tuple[str | None, ...]:
    return (item.title, item.summary)


def _drop_political(
    items: Sequence[T], fields: Callable[[T], tuple[str | None, ...]]
) -> tuple[list[T], int]:
    kept: list[T] = []
    removed = 0
    for item in items:
        if any(contains_political_content(value) for value in fields(item)):
            removed += 1
        else:
            kept.append(item)
    return kept, removed


def filter_political_content(suggestions: SermonHelperSuggestions) -> PoliticalFilterResult:
    """Remove every suggestion item that mentions a political keyword.

    Kept items are the same objects as in the input.
    """
    scripture, scripture_removed = _drop_political(
        suggestions.scripture_suggestions, _scripture_fields
    )
    outline, outline_removed = _drop_political(suggestions.outline, _outline_fields)
    applications, applications_removed = _drop_political(
        suggestions.application_ideas, _application_fields
    )
    hymns, hymns_removed = _drop_political(suggestions.hymn_themes, _hymn_fields)
    illustrations, illustrations_removed = _drop_political(
        suggestions.illustration_suggestions, _illustration_fields
    )
    removed = (
        scripture_removed
        + outline_removed
        + applications_removed
        + hymns_removed
        + illustrations_removed
    )
    filtered = SermonHelperSuggestions.model_construct(
        scripture_suggestions=scripture,
        outline=outline,
        application_ideas=applications,
        hymn_themes=hymns,
        illustration_suggestions=illustrations,
    )
    return PoliticalFilterResult(filtered=filtered, detected=removed > 0, removed_count=removed)


def filter_political_content_from_draft(markdown: str) -> DraftFilterResult:
    """Replace every political keyword occurrence in a draft manuscript."""
    filtered = markdown
    total = 0
    for pattern in _DRAFT_PATTERNS:
        filtered, substitutions = pattern.subn(DRAFT_REPLACEMENT, filtered)
        total += substitutions
    return DraftFilterResult(text=filtered, detected=total > 0, replacement_count=total)
