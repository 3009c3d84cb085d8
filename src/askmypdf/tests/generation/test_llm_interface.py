from types import SimpleNamespace

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from askmypdf.common.schemas import LLMCompletion
from askmypdf.generation.llm_interface import OpenAIChatLikeLLM, OpenAILikeLLM, create_llm

GROQ_BASE = "https://api.groq.com/openai/v1"


class DummyChatModel:
    """Stands in for ChatOpenAI and records every invoke call."""

    def __init__(self, content="The pump moves water.", usage_metadata=None, response_metadata=None, error=None):
        self.content = content
        self.usage_metadata = usage_metadata
        self.response_metadata = response_metadata or {}
        self.error = error
        self.calls = []

    def invoke(self, messages, **kwargs):
        self.calls.append((messages, kwargs))
        if self.error:
            raise self.error
        return SimpleNamespace(
            content=self.content,
            usage_metadata=self.usage_metadata,
            response_metadata=self.response_metadata,
        )


class DummyCompletionModel:
    """Stands in for the LangChain OpenAI text completions model."""

    def __init__(self, text="Answer", token_usage=None):
        self.text = text
        self.token_usage = token_usage
        self.calls = []

    def generate(self, prompts, stop=None, **kwargs):
        self.calls.append((prompts, stop, kwargs))
        llm_output = {"token_usage": self.token_usage} if self.token_usage is not None else None
        return SimpleNamespace(generations=[[SimpleNamespace(text=self.text)]], llm_output=llm_output)


def _chat_llm(model):
    llm = OpenAIChatLikeLLM("llama-3.1-8b-instant", api_base=GROQ_BASE, api_key="fake")
    llm.llm = model
    return llm


def _completion_llm(model, **model_kwargs):
    llm = OpenAILikeLLM("local-model", api_base="http://localhost:8000/v1", api_key="fake", **model_kwargs)
    llm.llm = model
    return llm


def test_chat_complete_sends_system_and_user_messages():
    model = DummyChatModel(usage_metadata={"input_tokens": 40, "output_tokens": 12, "total_tokens": 52})
    result = _chat_llm(model).complete("Answer from the context.", "Question: what is it?", temperature=0.2)

    assert result == LLMCompletion(answer_text="The pump moves water.", tokens_used=52)

    [(messages, kwargs)] = model.calls
    assert [type(m) for m in messages] == [SystemMessage, HumanMessage]
    assert [m.content for m in messages] == ["Answer from the context.", "Question: what is it?"]
    assert kwargs == {"temperature": 0.2}


def test_chat_tokens_fall_back_to_response_metadata():
    model = DummyChatModel(response_metadata={"token_usage": {"total_tokens": 31}})
    assert _chat_llm(model).complete("s", "u").tokens_used == 31


def test_chat_tokens_are_summed_when_total_is_missing():
    model = DummyChatModel(response_metadata={"token_usage": {"prompt_tokens": 7, "completion_tokens": 3}})
    assert _chat_llm(model).complete("s", "u").tokens_used == 10


def test_chat_tokens_default_to_zero_without_usage():
    assert _chat_llm(DummyChatModel()).complete("s", "u").tokens_used == 0


def test_chat_non_string_content_is_stringified():
    result = _chat_llm(DummyChatModel(content=["part"])).complete("s", "u")
    assert result.answer_text == "['part']"


def test_chat_provider_errors_propagate():
    model = DummyChatModel(error=RuntimeError("429 rate limit"))
    with pytest.raises(RuntimeError, match="429"):
        _chat_llm(model).complete("s", "u")


def test_completion_joins_prompts_and_reports_usage():
    model = DummyCompletionModel(token_usage={"prompt_tokens": 20, "completion_tokens": 4})
    result = _completion_llm(model).complete("System part", "User part", max_tokens=50)

    assert result == LLMCompletion(answer_text="Answer", tokens_used=24)
    assert model.calls == [(["System part\n\nUser part"], None, {"max_tokens": 50})]


def test_completion_skips_empty_system_prompt():
    model = DummyCompletionModel()
    assert _completion_llm(model).complete("", "User part").tokens_used == 0
    assert model.calls[0][0] == ["User part"]


@pytest.mark.parametrize(
    "call_kwargs, expected_stop",
    [
        ({}, ["###"]),
        ({"stop_list": ["END"]}, ["END"]),
        ({"stop": ["STOP"], "stop_list": ["END"]}, ["STOP"]),
    ],
)
def test_completion_stop_sequence_resolution(call_kwargs, expected_stop):
    model = DummyCompletionModel()
    _completion_llm(model, stop_list=["###"]).complete("s", "u", **call_kwargs)

    [(_, stop, kwargs)] = model.calls
    assert stop == expected_stop
    assert kwargs == {}


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("groq", OpenAIChatLikeLLM),
        ("OpenAIChatLike", OpenAIChatLikeLLM),
        ("OpenAILike", OpenAILikeLLM),
        ("openai", OpenAILikeLLM),
    ],
)
def test_create_llm_selects_implementation(kind, expected):
    llm = create_llm({"type": kind, "model": "llama-3.1-8b-instant", "api_base": GROQ_BASE, "api_key": "fake"})
    assert isinstance(llm, expected)


def test_create_llm_forwards_model_kwargs():
    llm = create_llm({
        "provider": "groq",
        "model_name": "llama-3.1-8b-instant",
        "api_base": GROQ_BASE,
        "api_key": "fake",
        "model_kwargs": {"temperature": 0.1, "top_p": 0.9},
    })

    assert llm.model_name == "llama-3.1-8b-instant"
    assert llm.get_llm().temperature == pytest.approx(0.1)
    assert llm.get_llm().top_p == pytest.approx(0.9)


def test_create_llm_requires_discriminator():
    with pytest.raises(ValueError, match="discriminator"):
        create_llm({"model": "llama-3.1-8b-instant", "api_key": "fake"})


def test_create_llm_rejects_unknown_kind():
    with pytest.raises(ValueError, match="Unknown LLM kind"):
        create_llm({"type": "anthropic", "model": "claude", "api_key": "fake"})


def test_create_llm_requires_mapping():
    with pytest.raises(TypeError):
        create_llm(SimpleNamespace(type="groq"))
