"""Unit tests for prompt templates and context assembly."""

import pytest

from search_backend.application.services.context_builder import (
    DOCUMENT_DELIMITER,
    build_context,
    build_multi_source_context,
    format_conversation,
)
from search_backend.application.services.llm_json import loads_model_json, loads_string_list
from search_backend.application.services.prompt_templates import (
    CITATION_FORMAT,
    answer_user_prompt,
    keyword_system_prompt,
    select_template,
)
from search_backend.domain.entities import Document, MultiSourceResult, QueryCategory, SourceType


@pytest.mark.parametrize("category", list(QueryCategory))
def test_every_template_carries_grounding_and_format_rules(category):
    prompt = select_template(category)

    assert "ONLY" in prompt
    assert CITATION_FORMAT in prompt
    assert "Confidence: HIGH" in prompt


def test_templates_differ_by_category():
    assert "Answer structure (troubleshooting)" in select_template(QueryCategory.TROUBLESHOOTING)
    assert "Answer structure (API reference)" in select_template("api-reference")


def test_unknown_category_uses_general_template():
    assert select_template("nonsense") == select_template(QueryCategory.GENERAL)


def test_system_context_and_complexity_are_included():
    prompt = select_template(QueryCategory.HOW_TO, "Acme SDK", complexity="advanced")

    assert "Context about the product: Acme SDK" in prompt
    assert "advanced" in prompt


def test_keyword_prompt_mentions_limit():
    assert "up to 7" in keyword_system_prompt(7)


def test_answer_prompt_includes_history_when_present():
    without = answer_user_prompt("q", "ctx")
    with_history = answer_user_prompt("q", "ctx", "User: hi\nAssistant: hello")

    assert "Previous conversation" not in without
    assert with_history.startswith("Previous conversation:\nUser: hi")


# ── Context building ──


def test_build_context_keeps_order_and_delimiter():
    documents = [
        Document(title="First", content="one", url="https://x/1"),
        Document(title="Second", content="two", url="https://x/2"),
    ]

    context = build_context(documents)

    assert context == (
        "## Document 1: First\nURL: https://x/1\n\none"
        + DOCUMENT_DELIMITER
        + "## Document 2: Second\nURL: https://x/2\n\ntwo"
    )


def test_build_context_applies_document_cap():
    documents = [Document(title=f"D{i}", content="c") for i in range(4)]
    assert build_context(documents, max_documents=2).count("## Document") == 2
    assert build_context([]) == ""


def test_multi_source_context_headers():
    result = MultiSourceResult(
        "Crash on start",
        "Fixed in 2.1",
        "https://github.com/o/r/issues/1",
        SourceType.GITHUB,
        {"weight": 0.3, "type": "resolved", "timestamp": "2024-01-01T00:00:00Z"},
    )

    context = build_multi_source_context([result])

    assert "## Source 1: Crash on start" in context
    assert "Type: github | Weight: 0.30 | Status: resolved" in context
    assert "Updated: 2024-01-01T00:00:00Z" in context


def test_format_conversation_truncates_answers():
    text = format_conversation([("q1", "a" * 600)], max_answer_chars=10)
    assert text == "User: q1\nAssistant: " + "a" * 10


# ── Model JSON ──


def test_loads_model_json_strips_fences():
    assert loads_model_json('```json\n{"a": 1}\n```') == {"a": 1}


def test_loads_model_json_extracts_from_prose():
    assert loads_model_json('Here you go: ["x", "y"] hope it helps') == ["x", "y"]


def test_loads_model_json_rejects_garbage():
    with pytest.raises(ValueError):
        loads_model_json("no json here")


def test_loads_string_list_drops_non_strings():
    assert loads_string_list('["a", 1, " b ", ""]') == ["a", "b"]
    with pytest.raises(ValueError):
        loads_string_list('{"a": 1}')
