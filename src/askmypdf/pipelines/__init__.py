"""askmypdf.pipelines

High-level orchestration for question answering.

Modules
-------
chat_pipeline
    Retrieval → prompt building → generation for one document.
"""
from .chat_pipeline import ChatPipeline

__all__ = ["ChatPipeline"]
