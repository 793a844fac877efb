"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient used by
the LLM-backed scorer. The client is created once at gateway startup and
reused for every resolution.
"""

import json
import logging
from typing import Any

import ollama

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async client for the Ollama chat API.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def chat_json(
        self,
        model: str,
        messages: list[dict[str, Any]],
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run a non-streaming chat request constrained to JSON output.

        Args:
            model: The model name to use
            messages: List of message dicts in Ollama format
            options: Optional model parameters (temperature, etc.)

        Returns:
            dict: The decoded JSON object from the assistant message. An empty
                  dict is returned when the model produced no valid object.

        Raises:
            Exception: If the Ollama API request fails
        """
        try:
            response = await self._client.chat(
                model=model,
                messages=messages,
                stream=False,
                format="json",
                options=options,
            )
        except Exception as e:
            logger.error(f"Ollama chat request failed: {e}")
            raise

        if hasattr(response, "model_dump"):
            response = response.model_dump()
        content = (response.get("message") or {}).get("content") or ""

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning(f"Model {model} returned invalid JSON: {content[:200]!r}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Model {model} returned a non-object JSON value")
            return {}
        return data

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient manages its own httpx client, so there is nothing
        to release explicitly.
        """
        logger.debug("OllamaClient closed")
