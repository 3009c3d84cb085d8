from types import SimpleNamespace

import pytest

from askmypdf.retrieval.embedder import (
    HuggingFaceEmbedder,
    OpenAILikeEmbedder,
    create_embedder,
    normalize_text,
)


class DummyModel:
    """Records the inputs it was asked to embed."""

    def __init__(self, vector=None, error=None):
        self.vector = [0.1, 0.2, 0.3] if vector is None else vector
        self.error = error
        self.texts = []
        self.queries = []

    def get_text_embedding(self, text):
        self.texts.append(text)
        if self.error:
            raise self.error
        return self.vector

    def get_query_embedding(self, text):
        self.queries.append(text)
        if self.error:
            raise self.error
        return self.vector


def _embedder(model, max_input_chars=512):
    embedder = HuggingFaceEmbedder("dummy-model", max_input_chars=max_input_chars)
    embedder.embedder = model
    return embedder


def test_normalize_text_collapses_whitespace_and_truncates():
    assert normalize_text("  a\n\n b\t c  ", 100) == "a b c"
    assert normalize_text("abcdef", 3) == "abc"
    assert normalize_text(None, 10) == ""


def test_embed_sends_normalised_truncated_text():
    model = DummyModel()
    vector = _embedder(model, max_input_chars=5).embed("  hello\n world ")

    assert vector == [0.1, 0.2, 0.3]
    assert model.texts == ["hello"]


def test_embed_query_uses_query_entry_point():
    model = DummyModel()
    _embedder(model).embed_query("what is this?")
    assert model.queries == ["what is this?"]
    assert model.texts == []


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_not_sent(text):
    model = DummyModel()
    assert _embedder(model).embed(text) is None
    assert model.texts == []


def test_provider_errors_become_none():
    model = DummyModel(error=RuntimeError("rate limited"))
    embedder = _embedder(model)

    assert embedder.embed("some page") is None
    assert embedder.embed_query("some question") is None


def test_empty_vector_is_a_failure():
    assert _embedder(DummyModel(vector=[])).embed("text") is None


def test_model_load_failure_becomes_none(monkeypatch):
    embedder = HuggingFaceEmbedder("missing-model")

    def boom():
        raise OSError("model not found")

    monkeypatch.setattr(embedder, "get_embedder", boom)
    assert embedder.embed("text") is None


def test_create_embedder_selects_implementation():
    hf = create_embedder({"model_name": "m"})
    assert isinstance(hf, HuggingFaceEmbedder)
    assert hf.max_input_chars == 512

    remote = create_embedder(
        {"type": "OpenAILike", "model_name": "m", "api_base": "http://localhost:8080/v1", "api_key": "fake"}
    )
    assert isinstance(remote, OpenAILikeEmbedder)
    assert remote.max_input_chars == 20000

    with pytest.raises(ValueError):
        create_embedder({"type": "nope", "model_name": "m"})

    with pytest.raises(TypeError):
        create_embedder(SimpleNamespace(model_name="m"))
