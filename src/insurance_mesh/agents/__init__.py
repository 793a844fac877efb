"""Agent handles: local registries and remote domain services.

This package provides the AgentHandle protocol and its two implementations.
The catalog treats both the same way.
"""

from insurance_mesh.agents.base import AgentHandle
from insurance_mesh.agents.local import LocalAgent
from insurance_mesh.agents.remote import HttpAgent, endpoint_identity

__all__ = ["AgentHandle", "HttpAgent", "LocalAgent", "endpoint_identity"]
