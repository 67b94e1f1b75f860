"""Guardrail observability events.

Each variant has a fixed event name and a fixed set of metadata fields. None
of them can carry sermon text, notes, matched topics or model output.
"""

import logging
from dataclasses import asdict, dataclass
from typing import ClassVar


@dataclass(frozen=True)
class RestrictedTopicEvent:
    name: ClassVar[str] = "sermonHelper.restrictedTopic"

    tenant_id: str
    theology_tradition: str
    restricted_topics_count: int
    sermon_id: str


@dataclass(frozen=True)
class PoliticalFilteredEvent:
    name: ClassVar[str] = "sermonHelper.politicalFiltered"

    tenant_id: str
    theology_tradition: str
    sermon_id: str


@dataclass(frozen=True)
class DraftRestrictedTopicEvent:
    name: ClassVar[str] = "sermonHelper.draftRestrictedTopic"

    tenant_id: str
    restricted_topics_count: int
    sermon_id: str


@dataclass(frozen=True)
class DraftPoliticalFilteredEvent:
    name: ClassVar[str] = "sermonHelper.draftPoliticalFiltered"

    tenant_id: str
    sermon_id: str


GuardrailEvent = (
    RestrictedTopicEvent
    | PoliticalFilteredEvent
    | DraftRestrictedTopicEvent
    | DraftPoliticalFilteredEvent
)


def guardrail_event_fields(event: GuardrailEvent) -> dict[str, object]:
    return {"event": event.name, **asdict(event)}


def emit_guardrail_event(logger: logging.Logger, event: GuardrailEvent) -> None:
    logger.info(event.name, extra=guardrail_event_fields(event))
