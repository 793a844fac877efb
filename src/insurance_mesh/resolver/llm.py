"""LLM-backed scorer that asks a local Ollama model to rate and extract.

One chat request per (text, action) pair returns both the match score and the
argument map; the arguments are held briefly so the resolver's follow-up
extract() call does not hit the model a second time.
"""

import json
import logging
from collections import OrderedDict
from typing import Any

from insurance_mesh.actions.types import ActionDescriptor
from insurance_mesh.ollama.client import OllamaClient

logger = logging.getLogger(__name__)

_PENDING_LIMIT = 256

SYSTEM_PROMPT = (
    "You route insurance requests to service actions. Given a user request and "
    "one action schema, reply with a JSON object of the form "
    '{"score": <number between 0 and 1>, "arguments": {<parameter>: <value>}}. '
    "The score is how likely the request asks for this action. Only include "
    "arguments whose values appear in the request; never invent values."
)


class OllamaScorer:
    """Scorer delegating similarity and extraction to an Ollama model.

    Attributes:
        client: The shared OllamaClient
        model: Model name used for every request
    """

    def __init__(self, client: OllamaClient, model: str) -> None:
        self.client = client
        self.model = model
        self._pending: OrderedDict[tuple[str, str], dict[str, Any]] = OrderedDict()

    async def score(self, text: str, descriptor: ActionDescriptor) -> float:
        data = await self._ask(text, descriptor)
        self._remember((text, descriptor.name), data.get("arguments"))
        try:
            value = float(data.get("score", 0.0))
        except (TypeError, ValueError):
            logger.warning(f"Unusable score from {self.model} for {descriptor.name}")
            return 0.0
        return min(max(value, 0.0), 1.0)

    async def extract(self, text: str, descriptor: ActionDescriptor) -> dict[str, Any]:
        arguments = self._pending.pop((text, descriptor.name), None)
        if arguments is None:
            data = await self._ask(text, descriptor)
            arguments = data.get("arguments")
        if not isinstance(arguments, dict):
            return {}
        return {k: v for k, v in arguments.items() if descriptor.parameter(k) is not None}

    async def _ask(self, text: str, descriptor: ActionDescriptor) -> dict[str, Any]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f"Action schema:\n{json.dumps(descriptor.to_dict(), indent=2)}\n\n"
                    f"Request:\n{text}"
                ),
            },
        ]
        logger.debug(f"Asking {self.model} to score {descriptor.name}")
        return await self.client.chat_json(self.model, messages, options={"temperature": 0})

    def _remember(self, key: tuple[str, str], arguments: Any) -> None:
        if not isinstance(arguments, dict):
            return
        self._pending[key] = arguments
        while len(self._pending) > _PENDING_LIMIT:
            self._pending.popitem(last=False)
