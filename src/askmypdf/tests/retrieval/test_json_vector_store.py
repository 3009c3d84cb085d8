import json

import pytest

from askmypdf.common.schemas import EXCERPT_CHARS, PageUnit
from askmypdf.retrieval.vector_store import JsonVectorStore, cosine_similarities, create_vector_store


class DummyEmbedder:
    """Maps known texts to fixed vectors; anything else fails (returns None)."""

    def __init__(self, vectors, query_vector=None):
        self.vectors = vectors
        self.query_vector = query_vector
        self.embedded = []

    def embed(self, text):
        self.embedded.append(text)
        return self.vectors.get(text)

    def embed_query(self, query):
        return self.query_vector


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def store(tmp_path, sleeps):
    return JsonVectorStore(tmp_path / "vectors", request_delay_seconds=0.2, sleep=sleeps.append)


def test_build_index_skips_failed_pages(store):
    pages = [PageUnit(n, f"page {n}") for n in range(1, 6)]
    embedder = DummyEmbedder({
        "page 1": [1.0, 0.0],
        "page 3": [0.0, 1.0],
        "page 5": [1.0, 1.0],
    })

    assert store.build_index("doc", pages, embedder) == 3

    data = json.loads(store.index_path("doc").read_text(encoding="utf-8"))
    assert [item["id"] for item in data] == ["doc-page-1", "doc-page-3", "doc-page-5"]
    assert data[0]["metadata"] == {
        "documentId": "doc",
        "pageNumber": 1,
        "text": "page 1",
        "fullText": "page 1",
    }
    assert [r.page_number for r in store.load("doc")] == [1, 3, 5]


def test_build_index_pauses_between_requests_only(store, sleeps):
    pages = [PageUnit(1, "a"), PageUnit(2, "   "), PageUnit(3, "b"), PageUnit(4, "c")]
    embedder = DummyEmbedder({"a": [1.0], "b": [1.0], "c": [1.0]})

    store.build_index("doc", pages, embedder)

    assert embedder.embedded == ["a", "b", "c"]
    assert sleeps == [0.2, 0.2]


def test_build_index_with_no_embeddings_writes_nothing(store):
    pages = [PageUnit(1, "a"), PageUnit(2, "b")]
    assert store.build_index("doc", pages, DummyEmbedder({})) == 0
    assert not store.index_path("doc").exists()


def test_failed_rebuild_removes_stale_index(store):
    store.build_index("doc", [PageUnit(1, "a")], DummyEmbedder({"a": [1.0, 0.0]}))
    assert store.index_path("doc").exists()

    assert store.build_index("doc", [PageUnit(1, "a")], DummyEmbedder({})) == 0
    assert not store.index_path("doc").exists()
    assert store.load("doc") == []


def test_build_index_skips_mismatched_dimensions(store):
    pages = [PageUnit(1, "a"), PageUnit(2, "b"), PageUnit(3, "c")]
    embedder = DummyEmbedder({"a": [1.0, 0.0], "b": [1.0, 0.0, 0.0], "c": [0.0, 1.0]})

    assert store.build_index("doc", pages, embedder) == 2
    assert [r.page_number for r in store.load("doc")] == [1, 3]


def test_query_ranks_by_cosine_similarity(store):
    pages = [PageUnit(1, "north"), PageUnit(2, "east"), PageUnit(3, "north east")]
    embedder = DummyEmbedder(
        {"north": [0.0, 1.0], "east": [1.0, 0.0], "north east": [1.0, 1.0]},
        query_vector=[0.0, 2.0],
    )
    store.build_index("doc", pages, embedder)

    results = store.query("which way is north", "doc", embedder, top_k=2)

    assert [r.page_number for r in results] == [1, 3]
    assert results[0].score == pytest.approx(1.0)
    assert results[1].score == pytest.approx(2 ** -0.5)
    assert all(r.strategy == "vector" for r in results)


def test_query_ties_keep_page_order(store):
    pages = [PageUnit(n, f"p{n}") for n in (1, 2, 3)]
    embedder = DummyEmbedder({f"p{n}": [1.0, 0.0] for n in (1, 2, 3)}, query_vector=[1.0, 0.0])
    store.build_index("doc", pages, embedder)

    assert [r.page_number for r in store.query("q", "doc", embedder, top_k=3)] == [1, 2, 3]


def test_query_text_field_selects_excerpt_or_full_text(store):
    long_text = "z" * (EXCERPT_CHARS + 50)
    embedder = DummyEmbedder({long_text: [1.0]}, query_vector=[1.0])
    store.build_index("doc", [PageUnit(1, long_text)], embedder)

    [excerpt] = store.query("q", "doc", embedder)
    [full] = store.query("q", "doc", embedder, text_field="full_text")

    assert len(excerpt.text) == EXCERPT_CHARS
    assert full.text == long_text


def test_query_without_index_or_query_vector_is_empty(store):
    embedder = DummyEmbedder({"a": [1.0]}, query_vector=[1.0])
    assert store.query("q", "missing", embedder) == []

    store.build_index("doc", [PageUnit(1, "a")], embedder)
    assert store.query("q", "doc", DummyEmbedder({}, query_vector=None)) == []


def test_query_with_mismatched_dimension_is_empty(store):
    embedder = DummyEmbedder({"a": [1.0, 0.0]}, query_vector=[1.0, 0.0, 0.0])
    store.build_index("doc", [PageUnit(1, "a")], embedder)
    assert store.query("q", "doc", embedder) == []


def test_corrupt_index_loads_as_empty(store):
    store.persist_dir.mkdir(parents=True)
    store.index_path("doc").write_text("{not json", encoding="utf-8")
    assert store.load("doc") == []


def test_delete_index_is_idempotent(store):
    store.build_index("doc", [PageUnit(1, "a")], DummyEmbedder({"a": [1.0]}))
    store.delete_index("doc")
    store.delete_index("doc")
    assert not store.index_path("doc").exists()


def test_cosine_of_zero_vector_is_zero():
    scores = cosine_similarities([0.0, 0.0], [[1.0, 0.0], [0.0, 0.0]])
    assert scores.tolist() == [0.0, 0.0]

    scores = cosine_similarities([1.0, 0.0], [[0.0, 0.0], [2.0, 0.0]])
    assert scores.tolist() == pytest.approx([0.0, 1.0])


def test_create_vector_store_defaults_to_json(tmp_path):
    store = create_vector_store({"persist_dir": str(tmp_path), "request_delay_seconds": 0})
    assert isinstance(store, JsonVectorStore)
    assert store.request_delay_seconds == 0.0

    with pytest.raises(ValueError):
        create_vector_store({"type": "qdrant", "persist_dir": str(tmp_path)})
