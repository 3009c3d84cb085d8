import json

import pytest

from askmypdf.generation.prompt_builder import PromptBuilder, PromptTemplate


def test_packaged_prompts_are_registered():
    builder = PromptBuilder()
    names = builder.register_from_source("pkg:askmypdf.prompts:default.json")

    assert names == ["document_qa", "question_suggestions"]
    assert builder.list_prompts() == ["document_qa", "question_suggestions"]
    assert builder.get_template("question_suggestions").generation == {"temperature": 0.7, "max_tokens": 500}


def test_render_messages_substitutes_variables():
    template = PromptTemplate("t", system="Be brief.", user="Q: {{ question }}")
    assert template.render_messages(question="why?") == ("Be brief.", "Q: why?")
    assert template.render(question="why?") == "Be brief.\n\nQ: why?"


def test_register_from_file_resolves_relative_to_base_dir(tmp_path):
    (tmp_path / "prompts.json").write_text(
        json.dumps({"name": "custom", "user": "{{ content }}!"}), encoding="utf-8"
    )
    builder = PromptBuilder()

    assert builder.register_from_source("file:prompts.json", base_dir=tmp_path) == ["custom"]
    assert builder.build_messages("custom", content="hi") == ("", "hi!")


def test_invalid_definitions_are_rejected(tmp_path):
    builder = PromptBuilder()
    with pytest.raises(KeyError):
        builder.register_from_dict({"user": "x"})
    with pytest.raises(ValueError):
        builder.register_from_dict({"name": "  "})
    with pytest.raises(TypeError):
        builder.register_from_dict({"name": "x", "generation": [1]})

    (tmp_path / "prompts.yaml").write_text("name: x", encoding="utf-8")
    with pytest.raises(ValueError):
        builder.register_from_file(tmp_path / "prompts.yaml")
    with pytest.raises(FileNotFoundError):
        builder.register_from_file(tmp_path / "missing.json")
    with pytest.raises(FileNotFoundError):
        builder.register_from_source("pkg:askmypdf.prompts:missing.json")


def test_unknown_template_lists_available_names():
    builder = PromptBuilder()
    builder.register_from_dict({"name": "only"})
    with pytest.raises(KeyError, match="only"):
        builder.get_template("other")


def test_overwriting_a_template_warns():
    builder = PromptBuilder()
    builder.register_from_dict({"name": "dup", "user": "first"})
    with pytest.warns(UserWarning):
        builder.register_from_dict({"name": "dup", "user": "second"})
    assert builder.build("dup") == "second"
