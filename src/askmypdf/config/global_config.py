"""askmypdf.config.global_config

Global configuration loader and accessors.

This module defines a lightweight wrapper around a raw YAML configuration
dictionary, providing validated, cached access to the configuration sections
used across the question-answering stack.

Environment variables of the form ``${VAR}`` are expanded recursively in all
string values at load time.

Classes
-------
GlobalConfig
    Loader and accessor for global project configuration.
"""

import os
import yaml
from pathlib import Path
from functools import cached_property
from typing import Any

DEFAULT_EMBEDDER = {
    "type": "huggingface",
    "model_name": "sentence-transformers/all-MiniLM-L6-v2",
    "device": "cpu",
}

DEFAULT_VECTOR_STORE = {
    "type": "json",
    "persist_dir": "data/vectors",
    "request_delay_seconds": 0.2,
}

DEFAULT_RETRIEVAL = {
    "top_k": 3,
    "vector_context": "excerpt",
}

DEFAULT_INGESTION = {
    "max_attempts": 3,
    "base_delay_seconds": 1.0,
    "workers": 2,
}

DEFAULT_STORAGE = {
    "upload_dir": "data/uploads",
    "max_upload_bytes": 10 * 1024 * 1024,
}

DEFAULT_DATABASE = {
    "url": "sqlite:///data/askmypdf.db",
    "echo": False,
}

DEFAULT_CHAT = {
    "answer_prompt": "document_qa",
    "suggestion_prompt": "question_suggestions",
}

DEFAULT_PROMPTS = "pkg:askmypdf.prompts:default.json"


def _expand_env(obj):
    """Recursively expand environment variables in a nested structure.

    This function walks nested dictionaries and lists and applies
    :func:`os.path.expandvars` to any string values, expanding patterns of the
    form ``${VAR}`` using the current process environment.

    Parameters
    ----------
    obj : Any
        Object to expand. Supported types are dictionaries, lists, and strings.
        Other types are returned unchanged.

    Returns
    -------
    Any
        A structure of the same shape as ``obj`` with environment variables
        expanded in all string values.
    """
    if isinstance(obj, dict):
        return {k: _expand_env(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env(v) for v in obj]
    if isinstance(obj, str):
        return os.path.expandvars(obj)
    return obj


def _section(raw: dict, name: str, defaults: dict) -> dict:
    value = raw.get(name)
    if value is None:
        return dict(defaults)
    if not isinstance(value, dict):
        raise TypeError(f"'{name}' must be a mapping, got {type(value)}.")
    return {**defaults, **value}


def _positive_int(section: dict, key: str, section_name: str) -> int:
    try:
        value = int(section[key])
    except (TypeError, ValueError):
        raise TypeError(f"'{section_name}.{key}' must be an integer.") from None
    if value < 1:
        raise ValueError(f"'{section_name}.{key}' must be >= 1, got {value}.")
    return value


def _non_negative_float(section: dict, key: str, section_name: str) -> float:
    try:
        value = float(section[key])
    except (TypeError, ValueError):
        raise TypeError(f"'{section_name}.{key}' must be a number.") from None
    if value < 0:
        raise ValueError(f"'{section_name}.{key}' must be >= 0, got {value}.")
    return value


class GlobalConfig:
    """Loader and accessor for global project configuration.

    This class wraps a raw configuration dictionary (typically loaded from YAML)
    and exposes validated, cached accessors for each configuration section.
    Every section except ``llm`` has defaults, so a minimal file only needs an
    ``llm`` section.

    Parameters
    ----------
    raw : dict
        Raw configuration data as loaded from a YAML file.
    config_path : Path or None, optional
        Absolute path of the loaded file, used to resolve relative paths.
    """

    def __init__(
            self,
            raw: dict | None,
            config_path: Path | None = None,
        ):
        self.raw = raw or {}
        # Relative paths (persist dirs, uploads, sqlite files, prompt files)
        # resolve against the config file directory rather than the CWD.
        self.config_path = config_path

    @classmethod
    def load(
            cls,
            path: str | Path,
        ) -> "GlobalConfig":
        """Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        GlobalConfig
            An instance initialised with the loaded and environment-expanded data.

        Notes
        -----
        All string values in the loaded YAML are processed with recursive
        environment-variable expansion (``${VAR}``) via :func:`os.path.expandvars`.
        """
        cfg_path = Path(path).expanduser().resolve()
        with cfg_path.open("r") as f:
            data = yaml.safe_load(f)
        data = _expand_env(data)
        return cls(data, config_path=cfg_path)

    @property
    def base_dir(self) -> Path | None:
        """Directory of the loaded config file, or ``None`` for in-memory configs."""
        if self.config_path is None:
            return None
        return Path(self.config_path).expanduser().resolve().parent

    def resolve_path(self, value: str | Path) -> Path:
        """Resolve ``value`` against :attr:`base_dir` when it is relative."""
        p = Path(str(value)).expanduser()
        if not p.is_absolute() and self.base_dir is not None:
            p = self.base_dir / p
        return p.resolve()

    @cached_property
    def llm(self) -> dict:
        """Return the answer-generation LLM configuration section.

        Returns
        -------
        dict
            The ``llm`` section of the configuration.

        Raises
        ------
        KeyError
            If ``llm`` is missing from the configuration.
        """
        section = self.raw.get("llm")
        if section is None:
            raise KeyError("Missing 'llm' in configuration.")
        if not isinstance(section, dict):
            raise TypeError(f"'llm' must be a mapping, got {type(section)}.")
        return section

    @cached_property
    def embedder(self) -> dict:
        """Return the embedder configuration section.

        Returns
        -------
        dict
            The ``embedder`` section, defaulting to the local MiniLM model.
        """
        section = self.raw.get("embedder")
        if section is None:
            return dict(DEFAULT_EMBEDDER)
        if not isinstance(section, dict):
            raise TypeError(f"'embedder' must be a mapping, got {type(section)}.")
        return section

    @cached_property
    def vector_store(self) -> dict:
        """Return the vector store configuration section.

        Returns
        -------
        dict
            The ``vector_store`` section merged over defaults, with
            ``persist_dir`` resolved to an absolute path and
            ``request_delay_seconds`` validated.
        """
        section = _section(self.raw, "vector_store", DEFAULT_VECTOR_STORE)
        section["persist_dir"] = str(self.resolve_path(section["persist_dir"]))
        section["request_delay_seconds"] = _non_negative_float(
            section, "request_delay_seconds", "vector_store"
        )
        return section

    @cached_property
    def retrieval(self) -> dict:
        """Return the retrieval configuration section.

        Returns
        -------
        dict
            ``top_k`` (int >= 1) and ``vector_context`` (``"excerpt"`` or
            ``"full_text"``).

        Raises
        ------
        ValueError
            If ``vector_context`` names an unknown field or ``top_k`` < 1.
        """
        section = _section(self.raw, "retrieval", DEFAULT_RETRIEVAL)
        section["top_k"] = _positive_int(section, "top_k", "retrieval")
        if section["vector_context"] not in {"excerpt", "full_text"}:
            raise ValueError(
                "'retrieval.vector_context' must be 'excerpt' or 'full_text', "
                f"got {section['vector_context']!r}."
            )
        return section

    @cached_property
    def ingestion(self) -> dict:
        """Return the background ingestion configuration section."""
        section = _section(self.raw, "ingestion", DEFAULT_INGESTION)
        section["max_attempts"] = _positive_int(section, "max_attempts", "ingestion")
        section["workers"] = _positive_int(section, "workers", "ingestion")
        section["base_delay_seconds"] = _non_negative_float(
            section, "base_delay_seconds", "ingestion"
        )
        return section

    @cached_property
    def storage(self) -> dict:
        """Return the upload storage section with ``upload_dir`` resolved."""
        section = _section(self.raw, "storage", DEFAULT_STORAGE)
        section["upload_dir"] = str(self.resolve_path(section["upload_dir"]))
        section["max_upload_bytes"] = _positive_int(section, "max_upload_bytes", "storage")
        return section

    @cached_property
    def database(self) -> dict:
        """Return the database configuration section.

        Returns
        -------
        dict
            ``url`` (SQLAlchemy URL) and ``echo``. A relative SQLite file path
            is resolved against the config file directory.
        """
        section = _section(self.raw, "database", DEFAULT_DATABASE)
        url = str(section["url"])
        prefix = "sqlite:///"
        if url.startswith(prefix) and url != "sqlite:///:memory:":
            db_file = url[len(prefix):]
            if db_file and not db_file.startswith("/"):
                url = prefix + str(self.resolve_path(db_file))
        section["url"] = url
        return section

    @cached_property
    def prompts(self) -> Any:
        """Return the prompts configuration entry.

        Returns
        -------
        str or list[str]
            A single prompt source or a list of sources. Defaults to the
            templates packaged with :mod:`askmypdf.prompts`.

        Notes
        -----
        Each source may be ``pkg:<package>:<resource>``, ``file:<path>`` or a
        plain path. See :meth:`askmypdf.generation.prompt_builder.PromptBuilder.register_from_source`.
        """
        return self.raw.get("prompts") or DEFAULT_PROMPTS

    @cached_property
    def chat(self) -> dict:
        """Return the chat section naming the answer and suggestion prompt templates."""
        return _section(self.raw, "chat", DEFAULT_CHAT)

    @cached_property
    def logging(self) -> dict:
        """Return the logging section (``level`` and ``format``), or an empty dict."""
        section = self.raw.get("logging") or {}
        if not isinstance(section, dict):
            raise TypeError(f"'logging' must be a mapping, got {type(section)}.")
        return section
