"""FastAPI routers for API endpoints.

``agent`` and ``health`` are mounted on domain agent apps; ``mesh`` and
``health`` on the gateway.
"""

from insurance_mesh.routers import agent, health, mesh

__all__ = ["agent", "health", "mesh"]
