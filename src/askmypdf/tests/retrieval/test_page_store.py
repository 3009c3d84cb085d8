from askmypdf.common.schemas import PageUnit
from askmypdf.retrieval.page_store import PageSource, pages_from_data, reconstruct_pages


def test_reconstruct_pages_splits_text_into_contiguous_chunks():
    text = "a" * 1000 + "b" * 1000 + "c" * 1000
    pages = reconstruct_pages(text, 3)

    assert [p.page_number for p in pages] == [1, 2, 3]
    assert [len(p.text) for p in pages] == [1000, 1000, 1000]
    assert "".join(p.text for p in pages) == text


def test_reconstruct_pages_rounds_chunk_size_up():
    pages = reconstruct_pages("abcdefg", 3)
    assert [p.text for p in pages] == ["abc", "def", "g"]


def test_reconstruct_pages_drops_blank_chunks():
    pages = reconstruct_pages("abc   ", 2)
    assert pages == [PageUnit(1, "abc")]


def test_reconstruct_pages_treats_missing_page_count_as_one():
    assert reconstruct_pages("hello", 0) == [PageUnit(1, "hello")]
    assert reconstruct_pages("", 4) == []


def test_pages_from_data_accepts_dicts_and_units():
    data = [{"pageNumber": 1, "text": "one"}, {"text": "two"}, PageUnit(3, "three")]
    assert pages_from_data(data) == [PageUnit(1, "one"), PageUnit(2, "two"), PageUnit(3, "three")]
    assert pages_from_data(None) == []


def test_resolve_pages_prefers_stored_pages():
    source = PageSource("doc", pages=[PageUnit(1, "stored")], extracted_text="other text", total_pages=1)
    assert source.resolve_pages() == [PageUnit(1, "stored")]


def test_resolve_pages_falls_back_to_reconstruction():
    source = PageSource("doc", pages=[], extracted_text="abcdef", total_pages=2)
    assert source.resolve_pages() == [PageUnit(1, "abc"), PageUnit(2, "def")]


def test_resolve_pages_without_text_is_empty():
    assert PageSource("doc").resolve_pages() == []
