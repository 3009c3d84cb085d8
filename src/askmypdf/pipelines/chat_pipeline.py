"""askmypdf.pipelines.chat_pipeline

Question answering over one document.

This module defines :class:`ChatPipeline`, which coordinates retrieval, prompt
construction and the LLM call, and turns provider failures into answers that
are safe to show to an end user.

Classes
-------
ChatPipeline
    Orchestrates retrieval → prompt building → generation.

Functions
---------
apology_for
    Map an LLM exception to a user-facing apology.
parse_suggestions
    Extract question suggestions from raw model output.
"""

import logging
import re
from typing import Any, List, Optional

from askmypdf.common.errors import DocumentNotFoundError
from askmypdf.common.schemas import ChatAnswer
from askmypdf.generation.llm_interface import BaseLLM
from askmypdf.generation.prompt_builder import PromptBuilder
from askmypdf.retrieval.page_store import PageSourceProvider
from askmypdf.retrieval.types import Retriever

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "I'm currently experiencing high demand. Please try again in a moment."
AUTH_MESSAGE = "AI service configuration error. Please contact the administrator."
BAD_REQUEST_MESSAGE = "I encountered an issue processing your question. Please try rephrasing it."
GENERIC_MESSAGE = (
    "I apologize, but I'm having trouble processing your question right now. "
    "Please try again in a moment."
)

FALLBACK_SUGGESTIONS = [
    "What are the main topics covered in this document?",
    "Can you summarize the key points?",
    "What are the most important findings or conclusions?",
    "Are there any specific recommendations mentioned?",
    "What details should I know about this topic?",
]

SUGGESTION_PAGES = 3
SUGGESTION_CONTENT_CHARS = 3000
MAX_SUGGESTIONS = 5

_NUMBERED_LINE = re.compile(r"^\d+\.?\s*")


def _status_code(exc: BaseException) -> Optional[int]:
    for candidate in (exc, getattr(exc, "response", None)):
        for attr in ("status_code", "status"):
            value = getattr(candidate, attr, None)
            if isinstance(value, int):
                return value
    return None


def apology_for(exc: BaseException) -> str:
    """Return the user-facing message for an LLM failure.

    Rate limits (HTTP 429 or "rate limit" in the message) and authentication
    problems (HTTP 401 or "api key" in the message) are checked first, then
    HTTP 400. Anything else gets a generic apology.
    """
    status = _status_code(exc)
    message = str(exc).lower()

    if status == 429 or "rate limit" in message:
        return RATE_LIMIT_MESSAGE
    if status == 401 or "api key" in message:
        return AUTH_MESSAGE
    if status == 400:
        return BAD_REQUEST_MESSAGE
    return GENERIC_MESSAGE


def parse_suggestions(raw: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Split model output into at most ``limit`` suggestions.

    Lines are trimmed; blank lines and lines that start with a number are
    dropped.
    """
    suggestions = []
    for line in (raw or "").split("\n"):
        line = line.strip()
        if line and not _NUMBERED_LINE.match(line):
            suggestions.append(line)
    return suggestions[:limit]


class ChatPipeline:
    """Answers questions about a document and proposes questions to ask.

    The pipeline is stateless beyond its configured components, so one
    instance can serve every request.

    Parameters
    ----------
    retriever : Retriever
        Produces the context and citations for a question.
    prompt_builder : PromptBuilder
        Registry holding the ``answer_prompt`` and ``suggestion_prompt`` templates.
    llm : BaseLLM
        Language model used for answers and suggestions.
    page_sources : PageSourceProvider
        Lookup for document text, used for suggestions.
    top_k : int or None, optional
        Passages per question. ``None`` uses the retriever's default.
    answer_prompt : str, optional
        Template name for answers.
    suggestion_prompt : str, optional
        Template name for suggestions.
    """

    def __init__(
            self,
            retriever: Retriever,
            prompt_builder: PromptBuilder,
            llm: BaseLLM,
            page_sources: PageSourceProvider,
            top_k: Optional[int] = None,
            answer_prompt: str = "document_qa",
            suggestion_prompt: str = "question_suggestions",
        ):
        self.retriever = retriever
        self.prompt_builder = prompt_builder
        self.llm = llm
        self.page_sources = page_sources
        self.top_k = top_k
        self.answer_prompt = answer_prompt
        self.suggestion_prompt = suggestion_prompt

    def _generation_kwargs(self, prompt_name: str, overrides: Optional[dict]) -> dict:
        defaults = self.prompt_builder.get_template(prompt_name).generation
        return {**defaults, **(overrides or {})}

    def answer(self, question: str, document_id: str, **llm_overrides: Any) -> ChatAnswer:
        """Answer ``question`` using passages from ``document_id``.

        Parameters
        ----------
        question : str
            The user's question.
        document_id : str
            Document to answer from.
        **llm_overrides : Any
            Generation parameters overriding the template defaults for this
            call only.

        Returns
        -------
        ChatAnswer
            The model's answer with citations and token usage. When the LLM
            call fails the answer is an apology with no citations and zero
            tokens.

        Raises
        ------
        InvalidQuestionError
            If the question is blank.
        DocumentNotFoundError
            If the document is unknown.
        """
        context = self.retriever.retrieve(question, document_id, top_k=self.top_k)
        logger.info(
            "Answering question for document %s with %d characters of %s context",
            document_id, len(context.context_text), context.strategy,
        )

        system_prompt, user_prompt = self.prompt_builder.build_messages(
            self.answer_prompt,
            context=context.context_text,
            question=question,
        )
        gen_kwargs = self._generation_kwargs(self.answer_prompt, llm_overrides)

        try:
            completion = self.llm.complete(system_prompt, user_prompt, **gen_kwargs)
        except Exception as exc:
            logger.error("LLM call failed for document %s: %s", document_id, exc, exc_info=True)
            return ChatAnswer(answer=apology_for(exc), citations=[], tokens_used=0)

        return ChatAnswer(
            answer=completion.answer_text,
            citations=context.citations,
            tokens_used=completion.tokens_used,
        )

    def suggest_questions(self, document_id: str) -> List[str]:
        """Propose up to five questions about a document.

        The first pages of the document (or its extracted text) are sent to
        the LLM. The fixed :data:`FALLBACK_SUGGESTIONS` are returned when the
        document has no text, the call fails, or no usable line comes back.

        Raises
        ------
        DocumentNotFoundError
            If the document is unknown.
        """
        source = self.page_sources.get_page_source(document_id)
        if source is None:
            raise DocumentNotFoundError(document_id)

        if source.pages:
            content = "\n\n".join(page.text for page in source.pages[:SUGGESTION_PAGES])
        elif source.extracted_text:
            content = source.extracted_text
        else:
            return list(FALLBACK_SUGGESTIONS)
        content = content[:SUGGESTION_CONTENT_CHARS]

        try:
            system_prompt, user_prompt = self.prompt_builder.build_messages(
                self.suggestion_prompt, content=content
            )
            completion = self.llm.complete(
                system_prompt, user_prompt, **self._generation_kwargs(self.suggestion_prompt, None)
            )
        except Exception:
            logger.exception("Question suggestion generation failed for document %s", document_id)
            return list(FALLBACK_SUGGESTIONS)

        suggestions = parse_suggestions(completion.answer_text)
        logger.info("Generated %d question suggestions for document %s", len(suggestions), document_id)
        return suggestions or list(FALLBACK_SUGGESTIONS)

    def __call__(self, question: str, document_id: str, **kwargs: Any) -> ChatAnswer:
        """Convenience wrapper around :meth:`answer`."""
        return self.answer(question, document_id, **kwargs)


__all__ = [
    "ChatPipeline",
    "apology_for",
    "parse_suggestions",
    "FALLBACK_SUGGESTIONS",
]
