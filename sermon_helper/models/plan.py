from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Element(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionElement(_Element):
    type: Literal["section"] = "section"
    title: str


class PointElement(_Element):
    type: Literal["point"] = "point"
    text: str


class ScriptureElement(_Element):
    type: Literal["scripture"] = "scripture"
    reference: str
    note: str | None = None


class HymnElement(_Element):
    type: Literal["hymn"] = "hymn"
    title: str
    note: str | None = None


class IllustrationElement(_Element):
    type: Literal["illustration"] = "illustration"
    title: str
    note: str | None = None


class NoteElement(_Element):
    type: Literal["note"] = "note"
    text: str


AnyElement = (
    SectionElement
    | PointElement
    | ScriptureElement
    | HymnElement
    | IllustrationElement
    | NoteElement
)
SermonElement = Annotated[AnyElement, Field(discriminator="type")]


class SermonPlan(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sermon_id: str = Field(min_length=1)
    title: str
    big_idea: str = ""
    primary_text: str = ""
    supporting_texts: list[str] = Field(default_factory=list)
    elements: list[SermonElement] = Field(default_factory=list)
    style_profile: str | None = None


def element_text(element: AnyElement) -> str:
    """Return the user-authored text carried by a plan element."""
    if isinstance(element, SectionElement):
        return element.title
    if isinstance(element, PointElement | NoteElement):
        return element.text
    if isinstance(element, ScriptureElement):
        return f"{element.reference} {element.note or ''}".strip()
    return f"{element.title} {element.note or ''}".strip()
