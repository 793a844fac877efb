"""Ollama client wrapper used by the LLM-backed scorer."""

from insurance_mesh.ollama.client import OllamaClient

__all__ = ["OllamaClient"]
