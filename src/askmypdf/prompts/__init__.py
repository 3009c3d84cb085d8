"""Packaged prompt templates, loaded with ``pkg:askmypdf.prompts:default.json``."""
