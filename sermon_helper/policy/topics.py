"""Restricted-topic hard block.

Tenants declare topics their pastors handle personally. If any of them shows
up in the user's free text the AI is not called at all. Matching is a plain
substring test on lowercased, trimmed text, so "end times" also catches
"end times prophecy".
"""

from collections.abc import Sequence

from sermon_helper.models.plan import SermonPlan, element_text


def normalize_for_topic_match(text: str) -> str:
    return text.lower().strip()


def build_topic_detection_text(theme: str, notes: str | None, title: str) -> str:
    """Join the request's free-text fields in a fixed order: theme, notes, title."""
    parts = [part for part in (theme, notes or "", title) if part]
    return normalize_for_topic_match(" ".join(parts))


def build_plan_detection_text(plan: SermonPlan) -> str:
    parts = [
        plan.title,
        plan.big_idea,
        plan.primary_text,
        *plan.supporting_texts,
        *(element_text(element) for element in plan.elements),
    ]
    return normalize_for_topic_match(" ".join(part for part in parts if part))


def detect_restricted_topic(content: str, restricted_topics: Sequence[str]) -> str | None:
    """Return the first topic, in tenant order, found in *content*.

    The topic comes back with its original casing; blank topics never match.
    """
    normalized_content = normalize_for_topic_match(content)
    for topic in restricted_topics:
        normalized_topic = normalize_for_topic_match(topic)
        if normalized_topic and normalized_topic in normalized_content:
            return topic
    return None
