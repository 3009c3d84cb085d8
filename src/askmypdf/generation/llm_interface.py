"""askmypdf.generation.llm_interface

Unified interface and factory for large language model (LLM) backends.

This module defines a small, provider-agnostic abstraction for answering a
prompt made of a system part and a user part, with concrete implementations
backed by LangChain OpenAI wrappers. Any OpenAI-compatible endpoint works
(OpenAI, Groq, local servers). A factory function is
provided to instantiate the appropriate implementation from configuration.

Classes
-------
BaseLLM
    Abstract interface specifying the API used by the chat pipeline.
OpenAIChatLikeLLM
    Chat completions using an OpenAI-compatible HTTP API via LangChain.
OpenAILikeLLM
    Text completions using an OpenAI-compatible HTTP API via LangChain.

Functions
---------
create_llm
    Construct an LLM implementation from a configuration mapping.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional
import inspect
import logging
import yaml
from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI, OpenAI

from askmypdf.common.schemas import LLMCompletion

logger = logging.getLogger(__name__)


def _coerce_top_p(top_p: Any) -> Optional[float]:
    if top_p is None:
        return None
    try:
        value = float(top_p)
    except (TypeError, ValueError):
        return None
    if not (0.0 < value < 1.0):
        return None
    return value


def _total_tokens(usage: Any) -> int:
    """Read a total token count from a LangChain/OpenAI usage mapping."""
    if not isinstance(usage, Mapping):
        return 0
    for key in ("total_tokens", "totalTokens"):
        value = usage.get(key)
        if isinstance(value, (int, float)):
            return int(value)
    prompt = usage.get("input_tokens", usage.get("prompt_tokens", 0)) or 0
    completion = usage.get("output_tokens", usage.get("completion_tokens", 0)) or 0
    return int(prompt) + int(completion)


class BaseLLM(ABC):
    """Abstract interface for LLM calls.

    Concrete implementations wrap provider-specific clients and expose
    :meth:`complete`, which takes a system prompt and a user prompt and returns
    the answer text with the number of tokens used. Provider errors are raised
    unchanged; translating them is the caller's job.
    """

    @classmethod
    @abstractmethod
    def from_config_dict(
            cls,
            config: dict,
            callback_manager: BaseCallbackHandler = None
        ) -> "BaseLLM":
        """Create an LLM instance from a configuration mapping.

        Parameters
        ----------
        config : dict
            Configuration parameters for the concrete implementation.
        callback_manager : BaseCallbackHandler, optional
            Optional callback handler for logging/telemetry/streaming.

        Returns
        -------
        BaseLLM
            An initialised LLM implementation.
        """
        pass

    @classmethod
    def from_config(
            cls,
            config_path: str,
            callback_manager: BaseCallbackHandler = None
        ) -> "BaseLLM":
        """Create an LLM instance from a YAML configuration file.

        The YAML is expected to contain ``model_name`` and ``api_base`` keys,
        plus optional ``api_key`` and ``model_kwargs``.
        """
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f)
        return cls.from_config_dict(cfg, callback_manager)

    @abstractmethod
    def get_llm(self) -> Any:
        """Return the underlying LangChain model object."""
        pass

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> LLMCompletion:
        """Send one system + user prompt pair and return the answer.

        Parameters
        ----------
        system_prompt : str
            Instructions for the model.
        user_prompt : str
            Question and retrieved context.
        **kwargs : Any
            Per-call generation parameters (e.g., ``temperature``,
            ``max_tokens``) forwarded to the provider.

        Returns
        -------
        LLMCompletion
            Answer text and total tokens used (0 when the provider does not
            report usage).
        """
        pass


class OpenAIChatLikeLLM(BaseLLM):
    """LLM interface using an OpenAI-compatible Chat Completions API via LangChain.

    This implementation wraps :class:`langchain_openai.ChatOpenAI` and sends the
    system and user prompts as separate chat messages.

    Parameters
    ----------
    model_name : str
        Model identifier (e.g., ``"llama-3.1-8b-instant"``).
    api_base : str or None
        Base URL for the OpenAI-compatible API endpoint. ``None`` uses the
        client default.
    api_key : str, optional
        API key value. Defaults to ``"fake"`` for local deployments that do
        not require authentication.
    callback_manager : BaseCallbackHandler, optional
        Optional callback handler for logging/telemetry/streaming.
    **model_kwargs : Any
        Additional keyword arguments forwarded to ChatOpenAI (e.g.,
        ``temperature``, ``max_tokens``, ``top_p``).
    """

    def __init__(
        self,
        model_name: str,
        api_base: str | None = None,
        api_key: str = "fake",
        callback_manager: BaseCallbackHandler = None,
        **model_kwargs: Any,
    ):
        self.api_base = api_base
        self.model_name = model_name
        top_p = _coerce_top_p(model_kwargs.pop("top_p", None))

        sig = inspect.signature(ChatOpenAI)
        init_kwargs: dict[str, Any] = dict(model_kwargs)

        if "model" in sig.parameters:
            init_kwargs["model"] = model_name
        else:
            init_kwargs["model_name"] = model_name

        if api_base:
            if "openai_api_base" in sig.parameters:
                init_kwargs["openai_api_base"] = api_base
            else:
                init_kwargs["base_url"] = api_base

        if api_key is not None:
            if "openai_api_key" in sig.parameters:
                init_kwargs["openai_api_key"] = api_key
            else:
                init_kwargs["api_key"] = api_key

        if top_p is not None:
            init_kwargs["top_p"] = top_p

        if callback_manager is not None:
            init_kwargs["callbacks"] = [callback_manager]

        self.llm = ChatOpenAI(**init_kwargs)

    @classmethod
    def from_config_dict(
        cls,
        config: dict,
        callback_manager: BaseCallbackHandler = None,
    ) -> "OpenAIChatLikeLLM":
        """Create an OpenAI-compatible chat LLM from a mapping."""
        return cls(
            model_name=config.get('model_name') or config.get('model'),
            api_base=config.get('api_base'),
            api_key=config.get('api_key', "fake"),
            callback_manager=callback_manager,
            **(config.get('model_kwargs') or {}),
        )

    def get_llm(self) -> Any:
        """Return the underlying LangChain chat model object."""
        return self.llm

    def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> LLMCompletion:
        run_kwargs = dict(kwargs)
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

        response = self.llm.invoke(messages, **run_kwargs)

        text = response.content if hasattr(response, "content") else str(response)
        if not isinstance(text, str):
            text = str(text)

        usage = getattr(response, "usage_metadata", None)
        if not usage:
            usage = (getattr(response, "response_metadata", None) or {}).get("token_usage")
        tokens = _total_tokens(usage)

        logger.debug("Chat completion from %s used %d tokens", self.model_name, tokens)
        return LLMCompletion(answer_text=text, tokens_used=tokens)


class OpenAILikeLLM(BaseLLM):
    """LLM interface using an OpenAI-compatible text completions API.

    This implementation wraps :class:`langchain_openai.OpenAI`. The system and
    user prompts are joined into a single prompt separated by a blank line.
    """

    def __init__(
        self,
        model_name: str,
        api_base: str | None = None,
        api_key: str = "fake",
        callback_manager: BaseCallbackHandler = None,
        **model_kwargs: Any,
    ):
        """Initialise an OpenAI-compatible completions wrapper.

        Parameters
        ----------
        model_name : str
            Model identifier.
        api_base : str or None, optional
            Base URL for the OpenAI-compatible API endpoint.
        api_key : str, optional
            API key value. Defaults to ``"fake"`` for local deployments.
        callback_manager : BaseCallbackHandler, optional
            Optional callback handler for logging/telemetry/streaming.
        **model_kwargs : Any
            Additional keyword arguments forwarded to the LangChain OpenAI
            wrapper. ``stop_list`` sets the default stop sequences.
        """
        self.api_base = api_base
        self.default_stop_list = model_kwargs.pop("stop_list", None)
        top_p = _coerce_top_p(model_kwargs.pop("top_p", None))

        self.llm = OpenAI(
            model_name=model_name,
            openai_api_base=api_base,
            openai_api_key=api_key,
            top_p=top_p or 1,
            callbacks=[callback_manager] if callback_manager is not None else None,
            **model_kwargs,
        )

    @classmethod
    def from_config_dict(
            cls,
            config: dict,
            callback_manager: BaseCallbackHandler = None
        ) -> "OpenAILikeLLM":
        return cls(
            model_name=config.get('model_name') or config.get('model'),
            api_base=config.get('api_base'),
            api_key=config.get('api_key', "fake"),
            callback_manager=callback_manager,
            **(config.get('model_kwargs') or {}),
        )

    def get_llm(self) -> Any:
        return self.llm

    def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> LLMCompletion:
        """Generate a completion for the joined prompt.

        Stop sequences are resolved in the following order: explicit ``stop``,
        per-call ``stop_list``, then the instance default stop list.
        """
        run_kwargs = dict(kwargs)
        explicit_stop = run_kwargs.pop("stop", None)
        alt_stop_list = run_kwargs.pop("stop_list", None)
        final_stop = explicit_stop or alt_stop_list or self.default_stop_list

        prompt = "\n\n".join(part for part in (system_prompt, user_prompt) if part)
        response = self.llm.generate([prompt], stop=final_stop, **run_kwargs)

        text = response.generations[0][0].text
        usage = (response.llm_output or {}).get("token_usage")
        return LLMCompletion(answer_text=text, tokens_used=_total_tokens(usage))


# ----------------- Factory helpers -----------------

def _get_llm_kind(cfg: Mapping[str, Any]) -> str:
    """Extract the LLM kind/type/provider discriminator from a config mapping.

    Returns
    -------
    str
        The first non-empty discriminator value found, or an empty string if none
        is present.
    """
    for key in ("kind", "type", "provider", "backend", "impl"):
        val = cfg.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def _normalize_llm_kind(kind: str) -> str:
    """Normalise an LLM kind/type string to a stable registry key.

    Parameters
    ----------
    kind : str
        Provider/type discriminator value.

    Returns
    -------
    str
        Normalised registry key (e.g., ``"OpenAIChatLike"`` -> ``"openai_chat"``).

    Notes
    -----
    The normalisation process:
    - converts CamelCase to snake_case
    - replaces whitespace and hyphens with underscores
    - collapses repeated underscores
    - applies a small set of provider-specific aliases
    """
    k = kind.strip()
    if not k:
        return ""

    out: list[str] = []
    prev = ""
    for ch in k:
        if prev and prev.islower() and ch.isupper():
            out.append("_")
        out.append(ch)
        prev = ch

    k2 = "".join(out)
    k2 = k2.replace("-", "_").replace(" ", "_")

    while "__" in k2:
        k2 = k2.replace("__", "_")

    k2 = k2.lower()

    k2 = k2.replace("openailike", "openai_like")
    k2 = k2.replace("open_ailike", "openai_like")
    k2 = k2.replace("open_ai_like", "openai_like")
    k2 = k2.replace("chatopenai", "openai_chat")
    k2 = k2.replace("chat_openai", "openai_chat")
    k2 = k2.replace("openai_chatlike", "openai_chat")
    k2 = k2.replace("open_ai_chatlike", "openai_chat")
    k2 = k2.replace("openai_chat_like", "openai_chat")
    k2 = k2.replace("open_aichat_like", "openai_chat")
    k2 = k2.replace("open_ai_chat_like", "openai_chat")

    return k2


def create_llm(config: Mapping[str, Any], callback_manager: Optional[BaseCallbackHandler] = None) -> BaseLLM:
    """Create an LLM implementation from a configuration mapping.

    This is the preferred entry point for wiring LLMs (used by the application
    container). The concrete implementation is selected by a discriminator field
    in the configuration (one of: ``kind``, ``type``, ``provider``, ``backend``,
    or ``impl``).

    Parameters
    ----------
    config : Mapping[str, Any]
        Configuration mapping used to construct the LLM.
    callback_manager : BaseCallbackHandler, optional
        Optional callback handler for logging/telemetry/streaming.

    Returns
    -------
    BaseLLM
        An initialised LLM implementation.

    Raises
    ------
    TypeError
        If ``config`` is not a mapping.
    ValueError
        If the discriminator field is missing, or if the discriminator selects
        an unsupported implementation.
    """

    if not isinstance(config, Mapping):
        raise TypeError(f"create_llm expected a mapping/dict, got {type(config)}")

    kind_raw = _get_llm_kind(config)
    kind = _normalize_llm_kind(kind_raw)

    if not kind:
        raise ValueError(
            "LLM config is missing a discriminator field (type/kind/provider/etc.). "
            "Add e.g. type: OpenAIChatLike or type: OpenAILike."
        )

    registry: dict[str, type[BaseLLM]] = {
        "openai_like": OpenAILikeLLM,
        "openai": OpenAILikeLLM,
        "openai_chat": OpenAIChatLikeLLM,
        "groq": OpenAIChatLikeLLM,
    }

    cls = registry.get(kind)
    if cls is None:
        raise ValueError(
            f"Unknown LLM kind '{kind_raw}' (normalized to '{kind}'). Supported kinds: {sorted(registry.keys())}."
        )

    return cls.from_config_dict(dict(config), callback_manager=callback_manager)


__all__ = [
    "BaseLLM",
    "OpenAIChatLikeLLM",
    "OpenAILikeLLM",
    "create_llm",
]
