"""Agent handle protocol shared by local and remote agents."""

from typing import Any, Protocol, runtime_checkable

from insurance_mesh.actions.types import ActionDescriptor


@runtime_checkable
class AgentHandle(Protocol):
    """A registry the catalog can describe and invoke.

    Implementations translate transport failures into AgentUnreachableError
    and surface the registry's own UnknownActionError / ArgumentError
    unchanged, so callers can retry the former and not the latter.
    """

    @property
    def agent_id(self) -> str: ...

    async def describe(self, refresh: bool = False) -> tuple[ActionDescriptor, ...]: ...

    async def invoke(self, action: str, arguments: dict[str, Any]) -> Any: ...

    def invalidate(self) -> None: ...

    async def close(self) -> None: ...
