"""In-process agent handle wrapping an ActionRegistry."""

import logging
from typing import Any

from insurance_mesh.actions.registry import ActionRegistry
from insurance_mesh.actions.types import ActionDescriptor
from insurance_mesh.errors import ActionFailedError, MeshError

logger = logging.getLogger(__name__)


class LocalAgent:
    """Agent handle for a registry living in the same process.

    Used to embed domain services directly in the gateway and in tests.
    Handler exceptions that are not mesh errors are wrapped in
    ActionFailedError so the pipeline sees one error taxonomy.
    """

    def __init__(self, agent_id: str, registry: ActionRegistry) -> None:
        self._agent_id = agent_id
        self.registry = registry

    @property
    def agent_id(self) -> str:
        return self._agent_id

    async def describe(self, refresh: bool = False) -> tuple[ActionDescriptor, ...]:
        return self.registry.describe()

    async def invoke(self, action: str, arguments: dict[str, Any]) -> Any:
        try:
            return self.registry.invoke(action, arguments)
        except MeshError:
            raise
        except Exception as e:
            logger.error(f"Action {self._agent_id}.{action} failed: {e}")
            raise ActionFailedError(
                f"Action '{action}' failed: {e}",
                {"agent_id": self._agent_id, "action": action},
            ) from e

    def invalidate(self) -> None:
        """Nothing is cached for in-process registries."""

    async def close(self) -> None:
        """Nothing to release for in-process registries."""

    def __repr__(self) -> str:
        return f"LocalAgent({self._agent_id!r}, actions={len(self.registry)})"
