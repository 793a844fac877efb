"""Remote agent handle talking to a domain service over HTTP.

This module provides HttpAgent, which wraps an httpx.AsyncClient and exposes
the same describe/invoke contract as an in-process registry. Transport
failures become AgentUnreachableError; the remote registry's own semantic
errors are re-raised as their local equivalents.
"""

import logging
import time
from typing import Any

import httpx

from insurance_mesh.actions.types import ActionDescriptor
from insurance_mesh.errors import (
    ActionFailedError,
    AgentUnreachableError,
    ArgumentError,
    MeshError,
    UnknownActionError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
UNREACHABLE_STATUS_CODES = {502, 503, 504}


def endpoint_identity(endpoint: str) -> str:
    """Derive a ``host:port`` identity from an endpoint URL."""
    url = httpx.URL(endpoint)
    port = url.port or (443 if url.scheme == "https" else 80)
    return f"{url.host}:{port}"


class HttpAgent:
    """Agent handle for a domain service reachable over HTTP.

    The descriptor set is cached after the first describe() call and kept
    until invalidate() is called, or until ``describe_ttl`` seconds have
    passed when a TTL is configured.

    Attributes:
        endpoint: Base URL of the agent service (e.g. "http://localhost:7871/")
        timeout: Per-request timeout in seconds
        describe_ttl: Optional descriptor cache lifetime in seconds
    """

    def __init__(
        self,
        endpoint: str,
        agent_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        describe_ttl: float | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.describe_ttl = describe_ttl
        self._explicit_id = agent_id
        self._remote_id: str | None = None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._descriptors: tuple[ActionDescriptor, ...] | None = None
        self._described_at = 0.0
        logger.info(f"HttpAgent initialized for endpoint: {self.endpoint}")

    @property
    def agent_id(self) -> str:
        return self._explicit_id or self._remote_id or endpoint_identity(self.endpoint)

    def _cache_valid(self) -> bool:
        if self._descriptors is None:
            return False
        if self.describe_ttl is None:
            return True
        return (time.monotonic() - self._described_at) < self.describe_ttl

    async def describe(self, refresh: bool = False) -> tuple[ActionDescriptor, ...]:
        """Fetch the agent's descriptor set, using the cache when valid.

        Args:
            refresh: Bypass the cache and re-pull from the remote service

        Returns:
            tuple[ActionDescriptor, ...]: Descriptors in the remote's registration order

        Raises:
            AgentUnreachableError: If the service cannot be reached or its
                descriptor set cannot be parsed
        """
        if not refresh and self._cache_valid():
            return self._descriptors  # type: ignore[return-value]

        data = await self._request("GET", "/api/v1/agent")
        descriptors, remote_id = self._parse_description(data)
        self._remote_id = remote_id
        self._descriptors = descriptors
        self._described_at = time.monotonic()
        logger.debug(f"Described {self.agent_id}: {len(descriptors)} actions")
        return descriptors

    async def invoke(self, action: str, arguments: dict[str, Any]) -> Any:
        """Invoke an action on the remote registry.

        Raises:
            AgentUnreachableError: On connection failures, timeouts and gateway errors
            UnknownActionError: If the remote registry does not know the action
            ArgumentError: If the remote registry rejected the arguments
            ActionFailedError: If the remote handler failed
        """
        data = await self._request(
            "POST",
            f"/api/v1/actions/{action}/invoke",
            json={"arguments": arguments},
            action=action,
        )
        if not isinstance(data, dict):
            raise ActionFailedError(
                "invalid invoke payload", {"agent_id": self.agent_id, "action": action}
            )
        return data.get("result")

    def _parse_description(
        self, data: Any
    ) -> tuple[tuple[ActionDescriptor, ...], str | None]:
        if not isinstance(data, dict):
            raise AgentUnreachableError(self.agent_id, "invalid handshake payload")
        actions = data.get("actions", [])
        remote_id = data.get("agent")
        try:
            if not isinstance(actions, list):
                raise TypeError("actions must be a list")
            if remote_id is not None and not isinstance(remote_id, str):
                raise TypeError("agent must be a string")
            descriptors = tuple(ActionDescriptor.from_dict(a) for a in actions)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Invalid descriptor set from {self.endpoint}: {e}")
            raise AgentUnreachableError(self.agent_id, "invalid handshake payload") from e

        names = [d.name for d in descriptors]
        if len(set(names)) != len(names):
            raise AgentUnreachableError(self.agent_id, "duplicate action names in handshake")
        return descriptors, remote_id or None

    def invalidate(self) -> None:
        self._descriptors = None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
        logger.debug(f"HttpAgent for {self.endpoint} closed")

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        action: str | None = None,
    ) -> dict[str, Any]:
        url = f"{self.endpoint}{path}"
        try:
            response = await self._client.request(method, url, json=json, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise AgentUnreachableError(self.agent_id, f"timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise AgentUnreachableError(self.agent_id, str(e) or type(e).__name__) from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise AgentUnreachableError(self.agent_id, "response is not valid JSON") from e

        raise self._error_from_response(response, action)

    def _error_from_response(self, response: httpx.Response, action: str | None) -> MeshError:
        if response.status_code in UNREACHABLE_STATUS_CODES:
            return AgentUnreachableError(self.agent_id, f"HTTP {response.status_code}")

        code = None
        message = response.text
        try:
            body = response.json()
            detail = body.get("detail") if isinstance(body, dict) else None
            error = detail.get("error") if isinstance(detail, dict) else None
            if isinstance(error, dict):
                code = error.get("code")
                message = error.get("message", message)
            elif isinstance(detail, list):
                message = "; ".join(
                    str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail
                )
        except ValueError:
            pass

        if code == "unknown_action" or (code is None and response.status_code == 404):
            return UnknownActionError(action or "")
        if code == "argument_error" or (code is None and response.status_code == 422):
            return ArgumentError(message, action=action)
        return ActionFailedError(
            message, {"agent_id": self.agent_id, "action": action, "status": response.status_code}
        )

    def __repr__(self) -> str:
        return f"HttpAgent({self.endpoint!r})"
