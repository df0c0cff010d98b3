"""
Resolves graph node ids to display metadata (id, label, type).

Lookup failures are logged and yield an empty list so a graph outage never
blocks a turn.
"""

import logging
from typing import Any, Iterable

from regintel.constants import CONCEPT_PLACEHOLDER
from regintel.graph.client import GraphClient
from regintel.observability.metrics import node_resolution_failures_total
from regintel.schemas.schemas import ResolvedNode

logger = logging.getLogger(__name__)

RESOLVE_NODES_QUERY = """
MATCH (n)
WHERE n.id IN $ids
RETURN n.id AS id,
       coalesce(n.label, n.name, n.title) AS label,
       head(labels(n)) AS type
"""


def _first_string(*values: Any) -> str | None:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


def row_to_node(row: Any) -> ResolvedNode | None:
    """Coerce one result row; rows without an id are dropped."""
    if not isinstance(row, dict) or row.get("id") is None:
        return None
    labels = row.get("labels")
    first_label = labels[0] if isinstance(labels, list) and labels else None
    return ResolvedNode(
        id=str(row["id"]),
        label=_first_string(row.get("label"), row.get("name"), row.get("title")) or "Unknown",
        type=_first_string(row.get("type"), first_label) or CONCEPT_PLACEHOLDER,
    )


class NodeResolver:
    def __init__(self, graph_client: GraphClient):
        self._graph = graph_client

    async def resolve(self, node_ids: Iterable[str]) -> list[ResolvedNode]:
        ids = list(dict.fromkeys(i for i in node_ids if i))
        if not ids:
            return []

        try:
            rows = await self._graph.execute_cypher(RESOLVE_NODES_QUERY, {"ids": ids})
        except Exception as e:
            logger.warning("Failed to resolve %d active nodes: %s", len(ids), e)
            node_resolution_failures_total.inc()
            return []

        if not isinstance(rows, list):
            return []

        nodes = {}
        for row in rows:
            node = row_to_node(row)
            if node is not None and node.id not in nodes:
                nodes[node.id] = node
        # Keep the caller's order; ids missing from the graph are skipped
        return [nodes[i] for i in ids if i in nodes]
