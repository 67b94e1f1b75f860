"""Tenant theology profile and its single default-substitution boundary."""

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class TheologyTradition(StrEnum):
    EVANGELICAL = "Non-denominational evangelical"
    REFORMED_BAPTIST = "Reformed Baptist"
    SOUTHERN_BAPTIST = "Southern Baptist"
    PRESBYTERIAN_PCA = "Presbyterian (PCA)"
    PRESBYTERIAN_PCUSA = "Presbyterian (PCUSA)"
    ANGLICAN = "Anglican/Episcopal"
    LUTHERAN_LCMS = "Lutheran (LCMS)"
    LUTHERAN_ELCA = "Lutheran (ELCA)"
    METHODIST = "Methodist"
    PENTECOSTAL = "Pentecostal/Charismatic"
    CHURCH_OF_CHRIST = "Church of Christ"
    CATHOLIC = "Catholic"
    ORTHODOX = "Orthodox"
    OTHER = "Other"


class BibleTranslation(StrEnum):
    ESV = "ESV"
    NIV = "NIV"
    CSB = "CSB"
    NASB = "NASB"
    KJV = "KJV"
    NKJV = "NKJV"
    NLT = "NLT"
    RSV = "RSV"
    NRSV = "NRSV"
    MSG = "MSG"


class SermonStyle(StrEnum):
    EXPOSITORY = "expository"
    TOPICAL = "topical"
    TEXTUAL = "textual"
    NARRATIVE = "narrative"


class Sensitivity(StrEnum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    BROAD = "broad"


DEFAULT_PREFERRED_TONE = "warm and pastoral"

# Short and legacy labels seen in stored rows.
_TRADITION_ALIASES: dict[str, TheologyTradition] = {
    "evangelical": TheologyTradition.EVANGELICAL,
    "baptist": TheologyTradition.SOUTHERN_BAPTIST,
    "presbyterian": TheologyTradition.PRESBYTERIAN_PCA,
    "anglican": TheologyTradition.ANGLICAN,
    "episcopal": TheologyTradition.ANGLICAN,
    "lutheran": TheologyTradition.LUTHERAN_LCMS,
    "pentecostal": TheologyTradition.PENTECOSTAL,
    "charismatic": TheologyTradition.PENTECOSTAL,
    "reformed": TheologyTradition.REFORMED_BAPTIST,
}


class TheologyProfile(BaseModel):
    tradition: TheologyTradition = TheologyTradition.EVANGELICAL
    bible_translation: BibleTranslation = BibleTranslation.ESV
    sermon_style: SermonStyle = SermonStyle.EXPOSITORY
    sensitivity: Sensitivity = Sensitivity.MODERATE
    restricted_topics: list[str] = Field(default_factory=list)
    preferred_tone: str = Field(default=DEFAULT_PREFERRED_TONE, min_length=1)


def default_theology_profile() -> TheologyProfile:
    return TheologyProfile()


def canonical_tradition(value: object) -> TheologyTradition:
    """Map a stored tradition label onto a known tradition, ``Other`` if unknown."""
    if not isinstance(value, str) or not value.strip():
        return TheologyTradition.OTHER
    candidate = value.strip().lower()
    for tradition in TheologyTradition:
        if candidate in {tradition.value.lower(), tradition.name.lower()}:
            return tradition
    return _TRADITION_ALIASES.get(candidate, TheologyTradition.OTHER)


def _enum_or_default(enum_type: type[StrEnum], value: object, default: StrEnum) -> Any:
    if isinstance(value, str) and value.strip():
        candidate = value.strip()
        for member in enum_type:
            if candidate.lower() == member.value.lower():
                return member
    return default


def _restricted_topics(value: object) -> list[str]:
    if not isinstance(value, list | tuple):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def theology_profile_from_row(row: Mapping[str, Any] | None) -> TheologyProfile:
    """Build a profile from stored columns, substituting defaults field by field.

    This is the only place defaults are merged; every consumer downstream
    receives a complete profile.
    """
    defaults = default_theology_profile()
    if not row:
        return defaults

    raw_tradition = row.get("tradition")
    tradition = (
        canonical_tradition(raw_tradition)
        if isinstance(raw_tradition, str) and raw_tradition.strip()
        else defaults.tradition
    )
    tone = row.get("preferred_tone")
    return TheologyProfile(
        tradition=tradition,
        bible_translation=_enum_or_default(
            BibleTranslation, row.get("bible_translation"), defaults.bible_translation
        ),
        sermon_style=_enum_or_default(
            SermonStyle, row.get("sermon_style"), defaults.sermon_style
        ),
        sensitivity=_enum_or_default(
            Sensitivity, row.get("sensitivity"), defaults.sensitivity
        ),
        restricted_topics=_restricted_topics(row.get("restricted_topics")),
        preferred_tone=(
            tone.strip() if isinstance(tone, str) and tone.strip() else defaults.preferred_tone
        ),
    )
