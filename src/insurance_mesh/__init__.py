"""insurance-mesh: natural-language gateway over insurance domain agents.

This package provides an action registry for domain services, an agent
catalog aggregating them into one namespace, an intent resolver mapping free
text to action calls, and a pipeline answering compound requests.
"""

__version__ = "0.1.0"

from insurance_mesh.app import create_agent_app, create_app  # noqa: E402

__all__ = ["create_agent_app", "create_app", "__version__"]
