"""Prompt construction from the tenant theology profile.

The system prompt is the only thing constraining model behaviour, so every
profile renders the full profile, the seven numbered rules and the output
format block.
"""

from sermon_helper.models.plan import (
    HymnElement,
    IllustrationElement,
    NoteElement,
    PointElement,
    ScriptureElement,
    SectionElement,
    SermonPlan,
)
from sermon_helper.models.suggestions import SuggestionsRequest
from sermon_helper.models.theology import Sensitivity, TheologyProfile

NO_RESTRICTED_TOPICS = "none specified"

SENSITIVITY_GUIDANCE: dict[Sensitivity, str] = {
    Sensitivity.CONSERVATIVE: (
        "be very cautious with any topic that could be divisive or controversial."
    ),
    Sensitivity.MODERATE: "handle potentially sensitive topics with care and balance.",
    Sensitivity.BROAD: (
        "provide more latitude for mature theological discussion, "
        "while still avoiding extremes."
    ),
}

STYLE_PROFILE_LABELS: dict[str, str] = {
    "story_first_3_point": "Story-First 3-Point",
    "expository_verse_by_verse": "Expository Verse-by-Verse",
    "topical_teaching": "Topical Teaching",
}

_ILLUSTRATION_GUIDANCE: dict[str, str] = {
    "story_first_3_point": (
        "Since this is a story-first style, prioritize narrative illustrations and "
        "personal stories that connect emotionally. Lead with the story before the "
        "principle."
    ),
    "expository_verse_by_verse": (
        "Since this is an expository style, focus on illustrations that illuminate the "
        "text's original context, historical background, or word meanings. Keep "
        "illustrations brief and text-focused."
    ),
    "topical_teaching": (
        "Since this is a topical style, use illustrations that relate to contemporary "
        "life situations and practical application of the topic being taught."
    ),
}
_DEFAULT_ILLUSTRATION_GUIDANCE = (
    "Provide versatile illustrations that can work with various preaching styles."
)

_DRAFT_STYLE_GUIDANCE: dict[str, str] = {
    "story_first_3_point": """Style: Story-First 3-Point
- Lead with engaging stories and illustrations
- Structure around three memorable takeaways
- Use narrative hooks to transition between points
- Emphasize emotional connection before doctrine
- Include personal anecdotes where appropriate""",
    "expository_verse_by_verse": """Style: Expository Verse-by-Verse
- Walk through the text systematically
- Explain original language insights where helpful
- Focus on what the text says, means, and applies
- Keep illustrations brief and text-focused
- Prioritize doctrinal accuracy and textual fidelity""",
    "topical_teaching": """Style: Topical Teaching
- Organize around the central topic/theme
- Use multiple scripture passages to support points
- Connect to contemporary life situations
- Balance teaching with practical application
- Maintain logical flow through sub-topics""",
}
_DEFAULT_DRAFT_STYLE_GUIDANCE = """Style: General
- Balance exposition with application
- Include appropriate illustrations
- Maintain clear structure
- Connect scripture to life"""

_SUGGESTIONS_SHAPE = """{
  "scriptureSuggestions": [
    { "reference": "Book Chapter:Verse-Verse", "reason": "Short explanation (max 25 words)" }
  ],
  "outline": [
    { "type": "section", "title": "Section Name" },
    { "type": "point", "text": "Main point text (3-7 words)" }
  ],
  "applicationIdeas": [
    { "audience": "believers | seekers | youth | families | all", "idea": "Specific, concrete application (max 35 words)" }
  ],
  "hymnThemes": [
    { "theme": "grace | cross | resurrection | mission | etc.", "reason": "Why this fits (max 20 words)" }
  ],
  "illustrationSuggestions": [
    { "id": "unique-id-1", "title": "Short descriptive title (max 8 words)", "summary": "2-4 sentence story outline that illustrates the point", "forSection": "introduction | point1 | point2 | point3 | application | null" }
  ]
}"""  # noqa: E501


def restricted_topics_list(profile: TheologyProfile) -> str:
    if not profile.restricted_topics:
        return NO_RESTRICTED_TOPICS
    return ", ".join(profile.restricted_topics)


def build_system_prompt(org_name: str, profile: TheologyProfile) -> str:
    topics = restricted_topics_list(profile)
    tradition = profile.tradition.value
    translation = profile.bible_translation.value
    sensitivity = profile.sensitivity.value
    return f"""You are a sermon preparation assistant for the church "{org_name}".

Theological Profile:
- Tradition: {tradition}
- Preferred Bible translation: {translation}
- Sermon style: {profile.sermon_style.value}
- Sensitivity level: {sensitivity}
- Restricted topics: {topics}
- Preferred tone: {profile.preferred_tone}

RULES (Non-negotiable):
1. Stay within mainstream {tradition} theology. Do not introduce doctrines or interpretations that would be controversial within this tradition.
2. When citing Scripture, use references compatible with the {translation} versification, but return ONLY references (e.g., "John 3:16-18"), NOT full verse text.
3. Avoid these restricted topics unless explicitly requested: {topics}. If asked directly, decline gently and suggest the pastor handle that topic personally.
4. Do NOT discuss partisan politics, endorse political candidates, or frame issues in a culture-war style. Keep the focus on Scripture, Christ, and pastoral application.
5. Keep suggestions pastoral, humble, and helpful, not sensational, speculative, or divisive.
6. Keep outline points concise (3-7 words each). Keep explanations short and clear.
7. For a "{sensitivity}" sensitivity level, {SENSITIVITY_GUIDANCE[profile.sensitivity]}

Output format:
- Always return a single JSON object with the exact fields and types requested.
- Do not include any commentary, markdown fences, or explanation outside the JSON.
- Do not include actual Bible verse text, only references."""  # noqa: E501


def illustration_style_guidance(style_profile: str | None) -> str:
    if style_profile is None:
        return _DEFAULT_ILLUSTRATION_GUIDANCE
    return _ILLUSTRATION_GUIDANCE.get(style_profile, _DEFAULT_ILLUSTRATION_GUIDANCE)


def build_suggestions_prompt(request: SuggestionsRequest) -> str:
    sermon = request.sermon
    lines = [
        "Generate sermon preparation suggestions for this sermon.",
        "",
        "Sermon context:",
        f"- Theme or big idea: {request.theme}",
    ]
    if request.style_profile:
        label = STYLE_PROFILE_LABELS.get(request.style_profile, request.style_profile)
        lines.append(f"- Preferred sermon style: {label}")
    if sermon.primary_scripture:
        lines.append(f"- Scripture already chosen: {sermon.primary_scripture}")
    if sermon.title:
        lines.append(f"- Title: {sermon.title}")
    if sermon.series_title:
        lines.append(f"- Series: {sermon.series_title}")
    if sermon.sermon_date:
        lines.append(f"- Date: {sermon.sermon_date}")
    if sermon.preacher:
        lines.append(f"- Preacher: {sermon.preacher}")
    if request.notes:
        lines.append(f"- Additional notes from pastor: {request.notes}")

    guidance = illustration_style_guidance(request.style_profile)
    lines.extend(
        [
            "",
            "Return ONLY a single JSON object with this exact structure:",
            "",
            _SUGGESTIONS_SHAPE,
            "",
            "- Include 2-4 scripture suggestions",
            "- Include 3-5 outline elements (mix of sections and points)",
            "- Include 2-4 application ideas for different audiences",
            "- Include 2-3 hymn themes",
            "- Include 2-4 illustration suggestions that connect to the sermon's "
            "theme and scripture",
            f"  - {guidance}",
            '  - Each illustration should have a unique id (like "illus-1", "illus-2", etc.)',
            "  - The forSection field indicates where in the sermon the illustration "
            "fits best (or null if general)",
            "  - Keep illustrations pastoral, non-political, and appropriate for a "
            "church setting",
            "  - Avoid divisive cultural topics, partisan content, or controversial "
            "current events",
            "- Do not add extra fields",
            "- Do not include markdown fences or explanation",
        ]
    )
    return "\n".join(lines)


def _describe_element(index: int, element: object) -> str:
    position = index + 1
    if isinstance(element, SectionElement):
        return f"{position}. [SECTION] {element.title}"
    if isinstance(element, PointElement):
        return f"{position}. [POINT] {element.text}"
    if isinstance(element, NoteElement):
        return f"{position}. [NOTE] {element.text}"
    if isinstance(element, ScriptureElement):
        suffix = f" - {element.note}" if element.note else ""
        return f"{position}. [SCRIPTURE] {element.reference}{suffix}"
    if isinstance(element, HymnElement):
        suffix = f" - {element.note}" if element.note else ""
        return f"{position}. [HYMN] {element.title}{suffix}"
    if isinstance(element, IllustrationElement):
        suffix = f" - {element.note}" if element.note else ""
        return f"{position}. [ILLUSTRATION] {element.title}{suffix}"
    return f"{position}. [UNKNOWN]"


def build_draft_prompt(plan: SermonPlan, profile: TheologyProfile) -> str:
    elements = "\n".join(
        _describe_element(index, element) for index, element in enumerate(plan.elements)
    )
    supporting = ", ".join(plan.supporting_texts) if plan.supporting_texts else "None specified"
    style = _DRAFT_STYLE_GUIDANCE.get(plan.style_profile or "", _DEFAULT_DRAFT_STYLE_GUIDANCE)
    return f"""Generate a complete preaching manuscript draft based on this sermon plan.

=== SERMON PLAN ===
Title: {plan.title}
Big Idea: {plan.big_idea}
Primary Scripture: {plan.primary_text}
Supporting Texts: {supporting}

Outline Elements:
{elements}

=== STYLE GUIDANCE ===
{style}

=== THEOLOGY CONTEXT ===
Tradition: {profile.tradition.value}
Bible Translation: {profile.bible_translation.value}
Tone: {profile.preferred_tone}

=== INSTRUCTIONS ===
1. Write a complete preaching manuscript in markdown format
2. This is for ORAL DELIVERY - write as you would speak from a pulpit
3. Include natural transitions between sections
4. Expand each outline point with appropriate depth
5. Include scripture references but NOT full verse text (pastor has their Bible)
6. Expand illustration placeholders with brief story summaries
7. Include application points throughout
8. End with a clear call to action or closing prayer prompt
9. Use ## for main sections and ### for sub-points
10. Keep paragraphs short for easy reading while preaching
11. Total length: approximately 2,000-3,500 words (15-25 minute sermon)

Return ONLY the markdown manuscript text. No JSON, no code fences, no meta-commentary."""
