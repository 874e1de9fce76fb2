"""Docs AI search backend — LLM proxy for documentation search."""
