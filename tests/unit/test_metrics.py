from sermon_helper.metrics import (
    counter_value,
    record_guardrail_trigger,
    record_pipeline_request,
    render_metrics,
    reset_metrics,
)


def test_pipeline_request_series() -> None:
    reset_metrics()
    record_pipeline_request(
        "sermon.helperSuggestions",
        "fallback",
        0.3,
        model="gpt-4o-mini",
        tokens_in=100,
        tokens_out=20,
        cost_usd=0.001,
        fallback=True,
    )
    record_guardrail_trigger("sermon.helperSuggestions", "political_content")

    assert counter_value(
        "shg_requests_total", {"feature": "sermon.helperSuggestions", "outcome": "fallback"}
    ) == 1.0
    assert counter_value(
        "shg_tokens_total",
        {"feature": "sermon.helperSuggestions", "model": "gpt-4o-mini", "direction": "input"},
    ) == 100.0
    assert counter_value("shg_fallbacks_total", {"feature": "sermon.helperSuggestions"}) == 1.0

    text = render_metrics()
    assert "# TYPE shg_guardrail_triggers_total counter" in text
    assert "# TYPE shg_request_duration_seconds histogram" in text
    assert 'shg_request_duration_seconds_bucket{feature="sermon.helperSuggestions",le="0.25"} 0' in text
    assert 'shg_request_duration_seconds_bucket{feature="sermon.helperSuggestions",le="0.5"} 1' in text
    assert 'shg_request_duration_seconds_count{feature="sermon.helperSuggestions"} 1' in text


def test_requests_without_model_skip_token_series() -> None:
    reset_metrics()
    record_pipeline_request("sermon.generateDraft", "restricted_topic", 0.01)

    assert "shg_tokens_total" not in render_metrics()


def test_help_lines_and_label_escaping() -> None:
    reset_metrics()
    record_guardrail_trigger('feature"x', "restricted_topic")

    text = render_metrics()
    assert "# HELP shg_guardrail_triggers_total " in text
    assert 'feature="feature\\"x"' in text
