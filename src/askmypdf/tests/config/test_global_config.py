from pathlib import Path

import pytest

from askmypdf.config import GlobalConfig


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_expands_environment_variables(tmp_path, monkeypatch):
    monkeypatch.setenv("ASKMYPDF_TEST_KEY", "secret")
    cfg = GlobalConfig.load(_write(tmp_path, "llm:\n  type: groq\n  api_key: ${ASKMYPDF_TEST_KEY}\n"))

    assert cfg.llm["api_key"] == "secret"
    assert cfg.base_dir == tmp_path.resolve()


def test_defaults_for_optional_sections(tmp_path):
    cfg = GlobalConfig.load(_write(tmp_path, "llm:\n  type: groq\n"))

    assert cfg.retrieval == {"top_k": 3, "vector_context": "excerpt"}
    assert cfg.ingestion == {"max_attempts": 3, "base_delay_seconds": 1.0, "workers": 2}
    assert cfg.vector_store["request_delay_seconds"] == 0.2
    assert cfg.embedder["type"] == "huggingface"
    assert cfg.chat == {"answer_prompt": "document_qa", "suggestion_prompt": "question_suggestions"}
    assert cfg.prompts == "pkg:askmypdf.prompts:default.json"
    assert cfg.logging == {}


def test_relative_paths_resolve_against_config_dir(tmp_path):
    cfg = GlobalConfig.load(_write(
        tmp_path,
        "llm: {type: groq}\n"
        "vector_store: {persist_dir: vectors}\n"
        "storage: {upload_dir: uploads}\n"
        "database: {url: 'sqlite:///db/app.db'}\n",
    ))
    base = tmp_path.resolve()

    assert cfg.vector_store["persist_dir"] == str(base / "vectors")
    assert cfg.storage["upload_dir"] == str(base / "uploads")
    assert cfg.database["url"] == f"sqlite:///{base / 'db' / 'app.db'}"


def test_in_memory_database_url_is_untouched():
    cfg = GlobalConfig({"database": {"url": "sqlite:///:memory:"}})
    assert cfg.database["url"] == "sqlite:///:memory:"


def test_missing_llm_section():
    with pytest.raises(KeyError):
        GlobalConfig({}).llm


@pytest.mark.parametrize(
    "raw, attr, error",
    [
        ({"retrieval": {"top_k": 0}}, "retrieval", ValueError),
        ({"retrieval": {"vector_context": "summary"}}, "retrieval", ValueError),
        ({"ingestion": {"max_attempts": "many"}}, "ingestion", TypeError),
        ({"vector_store": {"request_delay_seconds": -1}}, "vector_store", ValueError),
        ({"storage": ["not", "a", "mapping"]}, "storage", TypeError),
    ],
)
def test_invalid_sections_are_rejected(raw, attr, error):
    with pytest.raises(error):
        getattr(GlobalConfig(raw), attr)


def test_repository_sample_config_loads():
    sample = Path(__file__).resolve().parents[4] / "config" / "config.yaml"
    cfg = GlobalConfig.load(sample)

    assert cfg.llm["model_name"] == "llama-3.1-8b-instant"
    assert cfg.retrieval["top_k"] == 3
