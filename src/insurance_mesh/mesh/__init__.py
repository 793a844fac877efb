"""Agent catalog: the aggregated, qualified action namespace."""

from insurance_mesh.mesh.catalog import AgentCatalog, AgentRecord, CatalogEntry

__all__ = ["AgentCatalog", "AgentRecord", "CatalogEntry"]
