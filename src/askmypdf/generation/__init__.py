"""askmypdf.generation

LLM clients and prompt templates used to turn retrieved context into answers.

Modules
-------
llm_interface
    Provider-agnostic LLM interface and factory.
prompt_builder
    Named Jinja2 prompt templates.
"""
