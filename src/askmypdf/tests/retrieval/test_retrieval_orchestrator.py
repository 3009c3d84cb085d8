import pytest

from askmypdf.common.errors import DocumentNotFoundError, InvalidQuestionError
from askmypdf.common.schemas import PageUnit, RetrievalResult
from askmypdf.retrieval.context_assembler import NO_DOCUMENT_CONTENT, NO_RELEVANT_CONTENT
from askmypdf.retrieval.page_store import PageSource
from askmypdf.retrieval.retriever import RetrievalOrchestrator


class DummySources:
    def __init__(self, **sources):
        self.sources = sources

    def get_page_source(self, document_id):
        return self.sources.get(document_id)


class DummyVectorStore:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.calls = []
        self.built = []
        self.deleted = []

    def query(self, question, document_id, embedder, top_k=3, text_field="excerpt"):
        self.calls.append((question, document_id, top_k, text_field))
        if self.error:
            raise self.error
        return self.results[:top_k]

    def build_index(self, document_id, pages, embedder):
        self.built.append((document_id, list(pages)))
        return len(self.built[-1][1])

    def delete_index(self, document_id):
        self.deleted.append(document_id)


PAGES = [
    PageUnit(1, "Cats are small mammals"),
    PageUnit(2, "Engines burn fuel"),
]


def _orchestrator(store, **sources):
    if not sources:
        sources = {"doc": PageSource("doc", pages=list(PAGES), total_pages=2)}
    return RetrievalOrchestrator(
        embedder=object(),
        vector_store=store,
        page_sources=DummySources(**sources),
        top_k=3,
    )


def test_vector_results_are_used_when_available():
    store = DummyVectorStore(results=[
        RetrievalResult(2, 0.8, "Engines burn fuel.", "vector"),
        RetrievalResult(1, 0.3, "Cats are small mammals.", "vector"),
    ])
    context = _orchestrator(store).retrieve("How do engines work?", "doc", top_k=1)

    assert context.strategy == "vector"
    assert context.context_text == "[Page 2]: Engines burn fuel."
    assert [(c.page_number, c.relevance_score) for c in context.citations] == [(2, 0.8)]
    assert store.calls == [("How do engines work?", "doc", 1, "excerpt")]


def test_empty_vector_results_fall_back_to_keywords():
    context = _orchestrator(DummyVectorStore()).retrieve("Which engines burn fuel?", "doc")

    assert context.strategy == "lexical"
    assert context.context_text.startswith("[Page 2]: Engines burn fuel")
    assert context.citations[0].page_number == 2


def test_vector_errors_fall_back_to_keywords():
    store = DummyVectorStore(error=RuntimeError("index unreadable"))
    context = _orchestrator(store).retrieve("Tell me about mammals", "doc")

    assert context.strategy == "lexical"
    assert [c.page_number for c in context.citations] == [1]


def test_keyword_search_uses_reconstructed_pages():
    text = "alpha " * 10 + "mammal facts here"
    source = PageSource("doc", pages=[], extracted_text=text, total_pages=2)
    context = _orchestrator(DummyVectorStore(), doc=source).retrieve("mammal", "doc")

    assert context.strategy == "lexical"
    assert [c.page_number for c in context.citations] == [2]


def test_stop_word_question_found_verbatim_is_cited():
    source = PageSource("doc", pages=[PageUnit(1, "FAQ: what is it? It is a pump"), PageUnit(2, "Engines burn fuel")])
    context = _orchestrator(DummyVectorStore(), doc=source).retrieve("what is it", "doc")

    assert context.strategy == "lexical"
    assert context.context_text.startswith("[Page 1]: FAQ: what is it?")
    assert [(c.page_number, c.relevance_score) for c in context.citations] == [(1, pytest.approx(0.5))]


def test_no_matches_returns_relevance_sentinel():
    context = _orchestrator(DummyVectorStore()).retrieve("quantum chromodynamics", "doc")
    assert context.context_text == NO_RELEVANT_CONTENT
    assert context.citations == []


def test_document_without_text_returns_content_sentinel():
    context = _orchestrator(DummyVectorStore(), doc=PageSource("doc")).retrieve("anything useful", "doc")
    assert context.context_text == NO_DOCUMENT_CONTENT
    assert context.citations == []
    assert context.strategy == "none"


@pytest.mark.parametrize("question", ["", "   ", None])
def test_blank_question_is_rejected(question):
    store = DummyVectorStore()
    with pytest.raises(InvalidQuestionError):
        _orchestrator(store).retrieve(question, "doc")
    assert store.calls == []


def test_unknown_document_is_rejected():
    with pytest.raises(DocumentNotFoundError):
        _orchestrator(DummyVectorStore()).retrieve("question", "missing")


def test_index_lifecycle_delegates_to_store():
    store = DummyVectorStore()
    orchestrator = _orchestrator(store)

    assert orchestrator.build_index("doc", PAGES) == 2
    orchestrator.delete_index("doc")

    assert store.built == [("doc", PAGES)]
    assert store.deleted == ["doc"]
