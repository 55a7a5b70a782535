"""
Tests for placeholder extraction, substitution and the template gallery
"""

import pytest

from promptopt.templates import (
    PROMPT_TEMPLATES,
    PromptTemplate,
    TemplateRegistry,
    extract_variables,
    get_template,
    list_templates,
    missing_variables,
    substitute,
    sync_variables,
)


def test_extract_variables_first_appearance_order():
    prompt = "Summarize {{text}} in {{language}} for {{text}}"
    assert extract_variables(prompt) == ["text", "language"]


def test_extract_variables_pattern_rules():
    prompt = "{{ok_1}} {{Case}} {{case}} {{with space}} {{dash-name}} {single} {{}}"
    assert extract_variables(prompt) == ["ok_1", "Case", "case"]


def test_extract_variables_empty():
    assert extract_variables("") == []
    assert extract_variables("no placeholders here") == []


def test_substitute_replaces_every_occurrence():
    result = substitute("{{a}} and {{a}} and {{b}}", {"a": "x", "b": "y"})
    assert result == "x and x and y"


def test_substitute_empty_map_is_identity():
    prompt = "Keep {{this}} as is"
    assert substitute(prompt, {}) == prompt


def test_substitute_ignores_unknown_keys_and_keeps_unset_placeholders():
    result = substitute("Hello {{name}} from {{place}}", {"name": "Ada", "unused": "z"})
    assert result == "Hello Ada from {{place}}"


def test_substitute_none_value_becomes_empty():
    assert substitute("[{{a}}]", {"a": None}) == "[]"


def test_substitute_is_single_pass():
    # A value that looks like a placeholder is inserted verbatim
    result = substitute("{{a}} {{b}}", {"a": "{{b}}", "b": "B"})
    assert result == "{{b}} B"


def test_substitute_value_with_regex_specials():
    assert substitute("cost: {{price}}", {"price": r"$1\g<0>"}) == r"cost: $1\g<0>"


def test_full_substitution_leaves_no_placeholders():
    prompt = "Write {{task}} using {{lang}}; {{task}} must be fast"
    values = {name: f"value-{name}" for name in extract_variables(prompt)}
    assert extract_variables(substitute(prompt, values)) == []


def test_sync_variables_carries_over_and_drops():
    current = {"text": "Hello", "old": "gone"}
    assert sync_variables("{{text}} {{language}}", current) == {"text": "Hello", "language": ""}


def test_missing_variables():
    assert missing_variables("{{a}} {{b}}", {"a": "1", "b": ""}) == ["b"]


def test_builtin_gallery():
    names = [t.name for t in PROMPT_TEMPLATES]
    assert "Summarize Content" in names
    assert len(PROMPT_TEMPLATES) == 5

    summarize = get_template("summarize content")
    assert summarize is not None
    assert summarize.variables == ["language", "text"]
    assert summarize.render({"language": "French", "text": "Hi"}).startswith(
        "Summarize the key points from the following text in French"
    )


def test_list_templates_by_category():
    code = list_templates("code generation")
    assert {t.name for t in code} == {"Python Function", "SQL Query"}
    assert list_templates("nope") == []


def test_user_templates_round_trip(tmp_path):
    registry = TemplateRegistry(user_path=tmp_path / "templates")
    path = registry.save_template(
        PromptTemplate(category="Support", name="Reply Email", prompt="Reply to {{customer}}")
    )
    assert path.name == "reply-email.yaml"

    fresh = TemplateRegistry(user_path=tmp_path / "templates")
    loaded = fresh.get_template("Reply Email")
    assert loaded is not None
    assert loaded.category == "Support"
    assert loaded.variables == ["customer"]
    # Built-ins are still there
    assert fresh.get_template("Ad Copy") is not None


def test_broken_user_template_is_skipped(tmp_path):
    user_dir = tmp_path / "templates"
    user_dir.mkdir()
    (user_dir / "bad.yaml").write_text("name: [unclosed", encoding="utf-8")
    (user_dir / "partial.yml").write_text("category: X\n", encoding="utf-8")

    registry = TemplateRegistry(user_path=user_dir)
    assert len(registry.list_templates()) == len(PROMPT_TEMPLATES)


@pytest.mark.parametrize("template", PROMPT_TEMPLATES, ids=lambda t: t.name)
def test_every_builtin_has_variables(template):
    assert template.variables
