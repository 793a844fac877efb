"""Service layer for insurance-mesh.

This package exposes MeshService, the catalog management surface that the
HTTP routers and the CLI call into.
"""

from insurance_mesh.services.mesh import InvocationResult, MeshService

__all__ = ["InvocationResult", "MeshService"]
