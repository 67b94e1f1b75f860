from sermon_helper.models.plan import HymnElement, PointElement, ScriptureElement, SermonPlan
from sermon_helper.policy.topics import (
    build_plan_detection_text,
    build_topic_detection_text,
    detect_restricted_topic,
)


def test_theme_matches_restricted_topic_substring() -> None:
    content = build_topic_detection_text("End times prophecy", None, "Looking Ahead")
    assert detect_restricted_topic(content, ["end times"]) == "end times"


def test_returns_first_topic_in_tenant_order_with_original_casing() -> None:
    content = build_topic_detection_text("Divorce and remarriage", "", "")
    assert detect_restricted_topic(content, ["Remarriage", "Divorce"]) == "Remarriage"


def test_notes_and_title_are_checked() -> None:
    assert detect_restricted_topic(
        build_topic_detection_text("Hope", "touch on ELECTION this week", "Sunday"),
        ["election"],
    ) == "election"
    assert detect_restricted_topic(
        build_topic_detection_text("Hope", None, "Baptism Questions"),
        ["baptism"],
    ) == "baptism"


def test_detection_text_order_and_blank_skipping() -> None:
    assert build_topic_detection_text(" Theme ", None, "Title") == "theme  title"
    assert build_topic_detection_text("a", "b", "") == "a b"


def test_blank_and_absent_topics_never_match() -> None:
    content = build_topic_detection_text("Grace", "notes", "title")
    assert detect_restricted_topic(content, []) is None
    assert detect_restricted_topic(content, ["", "   "]) is None
    assert detect_restricted_topic(content, ["tithing"]) is None


def test_plan_detection_covers_elements() -> None:
    plan = SermonPlan(
        sermon_id="s-1",
        title="The Good Shepherd",
        big_idea="He knows us",
        supporting_texts=["John 10"],
        elements=[
            PointElement(text="He leads"),
            ScriptureElement(reference="Psalm 23", note="Compare with end times imagery"),
            HymnElement(title="Be Thou My Vision"),
        ],
    )

    content = build_plan_detection_text(plan)
    assert "be thou my vision" in content
    assert detect_restricted_topic(content, ["End Times"]) == "End Times"
