"""askmypdf.retrieval.embedder

Embedding interfaces and factories for the retrieval layer.

This module defines a small provider-agnostic interface for producing vector
embeddings from text, along with concrete implementations backed by
LlamaIndex embedding wrappers. A factory function is provided to construct
an embedder implementation from configuration.

The public calls :meth:`BaseEmbedder.embed` and :meth:`BaseEmbedder.embed_query`
never raise: any provider failure (network, quota, authentication, model
loading) is logged and reported as ``None`` so callers can skip a page or fall
back to lexical retrieval.

Classes
-------
BaseEmbedder
    Abstract interface specifying the API used by the retrieval pipeline.
HuggingFaceEmbedder
    Embedder backed by a local Hugging Face SentenceTransformer via LlamaIndex.
OpenAILikeEmbedder
    Embedder backed by an OpenAI-compatible HTTP API via LlamaIndex.

Functions
---------
normalize_text
    Collapse whitespace and truncate text before embedding.
create_embedder
    Create an embedder implementation from a configuration mapping.
"""

import logging
import re
from abc import ABC, abstractmethod
from langchain_core.callbacks import BaseCallbackHandler
from llama_index.core.base.embeddings.base import BaseEmbedding as LlamaIndexBaseEmbedding
from typing import Any, Dict, Mapping, Optional
import yaml

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return bool(value)


def normalize_text(text: str, max_chars: int) -> str:
    """Collapse every whitespace run to one space, trim, and truncate.

    Parameters
    ----------
    text : str
        Raw input text.
    max_chars : int
        Maximum number of characters kept after normalisation.

    Returns
    -------
    str
        Normalised text, possibly empty.
    """
    return _WHITESPACE.sub(" ", text or "").strip()[:max_chars]


class BaseEmbedder(ABC):
    """Abstract interface for text embedding.

    Concrete implementations wrap a provider-specific embedder and expose a small,
    consistent API used by the vector index.

    Attributes
    ----------
    max_input_chars : int
        Input budget applied after whitespace normalisation.
    """

    max_input_chars: int = 20000

    @abstractmethod
    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        """
        Return the LlamaIndex embedding instance.

        Returns
        -------
        LlamaIndexBaseEmbedding
            The underlying LlamaIndex embedding.
        """
        pass

    @classmethod
    @abstractmethod
    def from_config(
            cls,
            config_path: str,
            callback_manager: BaseCallbackHandler = None
        ) -> "BaseEmbedder":
        """Create an embedder from a YAML configuration file.

        Parameters
        ----------
        config_path : str
            Path to the YAML configuration file.
        callback_manager : BaseCallbackHandler, optional
            Optional callback handler for logging/telemetry/streaming.

        Returns
        -------
        BaseEmbedder
            An initialised embedder implementation.
        """
        pass

    @classmethod
    @abstractmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
            callback_manager: BaseCallbackHandler = None
        ) -> "BaseEmbedder":
        """Create an embedder from a configuration mapping.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration mapping.
        callback_manager : BaseCallbackHandler, optional
            Optional callback handler for logging/telemetry/streaming.

        Returns
        -------
        BaseEmbedder
            An initialised embedder implementation.

        Raises
        ------
        KeyError
            If required configuration keys are missing.
        """
        pass

    def _embed_text(self, text: str) -> list[float]:
        return self.get_embedder().get_text_embedding(text)

    def _embed_query_text(self, text: str) -> list[float]:
        return self.get_embedder().get_query_embedding(text)

    def _safe_embed(self, text: str, fn) -> Optional[list[float]]:
        clean = normalize_text(text, self.max_input_chars)
        if not clean:
            return None
        try:
            vector = fn(clean)
        except Exception as exc:
            logger.warning("Embedding request failed (%s): %s", type(self).__name__, exc)
            return None
        if not vector:
            return None
        return [float(v) for v in vector]

    def embed(self, text: str) -> Optional[list[float]]:
        """Embed a passage of document text.

        Parameters
        ----------
        text : str
            Text to embed. It is normalised and truncated to
            :attr:`max_input_chars` first.

        Returns
        -------
        list[float] or None
            Embedding vector, or ``None`` if the input was empty after
            normalisation or the provider failed.
        """
        return self._safe_embed(text, self._embed_text)

    def embed_query(self, query: str) -> Optional[list[float]]:
        """Embed a question using the provider's query entry point.

        Behaves exactly like :meth:`embed`, including never raising.
        """
        return self._safe_embed(query, self._embed_query_text)


class HuggingFaceEmbedder(BaseEmbedder):
    """Embedder backed by a Hugging Face SentenceTransformer via LlamaIndex.

    This implementation wraps :class:`llama_index.embeddings.huggingface.HuggingFaceEmbedding`.
    The model is loaded on first use, so constructing the embedder is cheap and a
    model that cannot be loaded surfaces as a failed (``None``) embedding.

    Parameters
    ----------
    model_name : str
        Name or path of the embedding model.
    device : str
        Device identifier (e.g., ``"cuda"``, ``"cpu"``, ``"mps"``).
    trust_remote_code : bool, optional
        Whether to allow custom model code from the Hugging Face Hub.
    callback_manager : BaseCallbackHandler, optional
        Optional callback handler for logging/telemetry/streaming.
    model_kwargs : dict[str, Any] or None, optional
        Additional keyword arguments forwarded to the underlying embedder.
    max_input_chars : int, optional
        Input budget for the local model. Defaults to 512 characters.
    """

    def __init__(
            self,
            model_name: str,
            *,
            device: str = "cpu",
            trust_remote_code: bool = False,
            callback_manager: BaseCallbackHandler = None,
            model_kwargs: dict[str, Any] = None,
            max_input_chars: int = 512,
        ):
        self.model_name = model_name
        self.device = device
        self.trust_remote_code = trust_remote_code
        self.callback_manager = callback_manager
        self.model_kwargs = model_kwargs or {}
        self.max_input_chars = int(max_input_chars)
        self.embedder = None

    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        """Return the underlying LlamaIndex embedding object, loading it if needed.

        Returns
        -------
        LlamaIndexBaseEmbedding
            Wrapped LlamaIndex embedding instance.
        """
        if self.embedder is None:
            from llama_index.embeddings.huggingface import HuggingFaceEmbedding

            logger.info("Loading local embedding model %s on %s", self.model_name, self.device)
            self.embedder = HuggingFaceEmbedding(
                model_name=self.model_name,
                trust_remote_code=self.trust_remote_code,
                device=self.device,
                callback_manager=self.callback_manager,
                model_kwargs=self.model_kwargs,
            )
        return self.embedder

    @classmethod
    def from_config(
            cls,
            config_path: str,
            callback_manager: BaseCallbackHandler = None
        ) -> "HuggingFaceEmbedder":
        """Create a Hugging Face embedder from YAML configuration.

        Notes
        -----
        The YAML is expected to contain a ``model_name`` key, plus optional
        ``device``, ``trust_remote_code``, ``model_kwargs`` and
        ``max_input_chars``.
        """
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f)
        return cls.from_config_dict(cfg, callback_manager)

    @classmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
            callback_manager: BaseCallbackHandler = None
        ) -> "HuggingFaceEmbedder":
        """Create a Hugging Face embedder from a configuration mapping.

        Raises
        ------
        KeyError
            If ``model_name`` is missing.
        """
        return cls(
            model_name=config["model_name"],
            device=config.get("device", "cpu"),
            trust_remote_code=_as_bool(config.get("trust_remote_code"), False),
            callback_manager=callback_manager,
            model_kwargs=config.get("model_kwargs", {}),
            max_input_chars=int(config.get("max_input_chars", 512)),
        )


class OpenAILikeEmbedder(BaseEmbedder):
    """Embedder backed by an OpenAI-compatible embedding API via LlamaIndex.

    This implementation wraps :class:`llama_index.embeddings.openai_like.OpenAILikeEmbedding`.
    Retries are disabled by default: a failed page is skipped and a failed query
    falls back to lexical retrieval instead.

    Parameters
    ----------
    model_name : str
        Model identifier for the embedding endpoint.
    api_base : str
        Base URL for the OpenAI-compatible embedding API endpoint.
    api_key : str or None, optional
        API key for the endpoint.
    callback_manager : BaseCallbackHandler, optional
        Optional callback handler for logging/telemetry/streaming.
    model_kwargs : dict[str, Any] or None, optional
        Additional keyword arguments forwarded to the underlying embedder.
    max_input_chars : int, optional
        Input budget for the remote API. Defaults to 20000 characters.
    """

    def __init__(
            self,
            model_name: str,
            *,
            api_base: str,
            api_key: str = None,
            callback_manager: BaseCallbackHandler = None,
            model_kwargs: dict[str, Any] = None,
            timeout: float = 60.0,
            max_retries: int = 0,
            max_input_chars: int = 20000,
        ):
        from llama_index.embeddings.openai_like import OpenAILikeEmbedding

        self.max_input_chars = int(max_input_chars)
        self.embedder = OpenAILikeEmbedding(
            model_name=model_name,
            api_base=api_base,
            callback_manager=callback_manager,
            additional_kwargs=model_kwargs or {},
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            embed_batch_size=1,
        )

    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        """Return the underlying LlamaIndex embedding object."""
        return self.embedder

    @classmethod
    def from_config(
            cls,
            config_path: str,
            callback_manager: BaseCallbackHandler = None
        ) -> "OpenAILikeEmbedder":
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f)
        return cls.from_config_dict(cfg, callback_manager)

    @classmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
            callback_manager: BaseCallbackHandler = None
        ) -> "OpenAILikeEmbedder":
        """Create an OpenAI-compatible embedder from a configuration mapping.

        Raises
        ------
        KeyError
            If required keys (``model_name`` or ``api_base``) are missing.
        """
        return cls(
            model_name=config["model_name"],
            api_base=config["api_base"],
            api_key=config.get("api_key"),
            callback_manager=callback_manager,
            model_kwargs=config.get("model_kwargs", {}),
            timeout=float(config.get("timeout", config.get("request_timeout", 60.0))),
            max_retries=int(config.get("max_retries", 0)),
            max_input_chars=int(config.get("max_input_chars", 20000)),
        )


# ----------------- Factory helpers -----------------

def _get_embedder_kind(cfg: Mapping[str, Any]) -> str:
    """Extract the embedder kind/type/provider discriminator from a config mapping.

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


def _normalize_kind(kind: str) -> str:
    """Normalise a kind/type string to a stable registry key.

    Parameters
    ----------
    kind : str
        Provider/type discriminator value.

    Returns
    -------
    str
        Normalised registry key (e.g., ``"OpenAILike"`` -> ``"openai_like"``).

    Notes
    -----
    CamelCase becomes snake_case, whitespace and hyphens become underscores,
    repeated underscores collapse, and ``openai`` spellings are unified.
    """
    k = kind.strip()
    if not k:
        return ""

    # Insert underscores between camel-case boundaries.
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
    k2 = k2.replace("hugging_face", "huggingface")

    return k2


def create_embedder(
    config: Mapping[str, Any],
    callback_manager: Optional[BaseCallbackHandler] = None,
) -> BaseEmbedder:
    """Create an embedder implementation from a configuration mapping.

    This is the preferred entry point for wiring embedders (used by the
    application container). Exactly one implementation is selected at startup
    by a discriminator field in the configuration (one of: ``kind``, ``type``,
    ``provider``, ``backend``, or ``impl``).

    Parameters
    ----------
    config : Mapping[str, Any]
        Configuration mapping used to construct the embedder.
    callback_manager : BaseCallbackHandler, optional
        Optional callback handler for logging/telemetry/streaming.

    Returns
    -------
    BaseEmbedder
        An initialised embedder implementation.

    Raises
    ------
    TypeError
        If ``config`` is not a mapping.
    ValueError
        If the discriminator selects an unsupported implementation.

    Notes
    -----
    If no discriminator is provided, the default implementation is
    :class:`~askmypdf.retrieval.embedder.HuggingFaceEmbedder`.
    """
    if not isinstance(config, Mapping):
        raise TypeError(f"create_embedder expected a mapping/dict, got {type(config)}")

    kind_raw = _get_embedder_kind(config)
    kind = _normalize_kind(kind_raw)

    registry: dict[str, type[BaseEmbedder]] = {
        "huggingface": HuggingFaceEmbedder,
        "hf": HuggingFaceEmbedder,
        "local": HuggingFaceEmbedder,
        "openai_like": OpenAILikeEmbedder,
        "openai": OpenAILikeEmbedder,
        "remote": OpenAILikeEmbedder,
    }

    cls = registry.get(kind) if kind else HuggingFaceEmbedder

    if cls is None:
        raise ValueError(
            f"Unknown embedder kind '{kind_raw}' (normalized to '{kind}'). "
            f"Supported kinds: {sorted(registry.keys())}."
        )

    logger.info("Using %s for embeddings", cls.__name__)
    return cls.from_config_dict(dict(config), callback_manager=callback_manager)


__all__ = [
    "BaseEmbedder",
    "HuggingFaceEmbedder",
    "OpenAILikeEmbedder",
    "normalize_text",
    "create_embedder",
]
