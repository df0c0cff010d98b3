"""
Knowledge graph access.

Components:
- GraphClient / Neo4jGraphClient: parameterised Cypher reads over Bolt
- GraphWriteService / CanonicalConceptHandler: concept upsert contracts
"""

from regintel.graph.client import GraphClient, Neo4jGraphClient
from regintel.graph.concepts import CanonicalConceptHandler, GraphWriteService

__all__ = [
    "CanonicalConceptHandler",
    "GraphClient",
    "GraphWriteService",
    "Neo4jGraphClient",
]
