"""
Retrieval layer of AskMyPDF.

This package covers everything needed to find the passages of one document
that are relevant to a question: embedding model wrappers, the per-document
vector index, the keyword-overlap fallback scorer, page reconstruction, context
assembly and the orchestrator that ties them together.

Submodules
----------
embedder
    Embedding model wrappers that never raise on provider failure.
vector_store
    Per-document vector index persisted as JSON.
lexical
    Deterministic keyword-overlap scorer.
page_store
    Stored and reconstructed page units.
context_assembler
    Prompt context and citation formatting.
retriever
    Vector-first retrieval with keyword fallback.
"""
