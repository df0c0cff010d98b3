"""
Knowledge graph access over Bolt (Memgraph / Neo4j).

Uses the neo4j async driver directly; every query is parameterised.
"""

import logging
from typing import Any, Protocol

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from regintel.config import Settings, settings
from regintel.errors import GraphError

logger = logging.getLogger(__name__)


class GraphClient(Protocol):
    async def execute_cypher(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        ...


class Neo4jGraphClient:
    """Read-side graph client returning each record as a plain dict."""

    def __init__(
        self,
        uri: str,
        user: str,
        password: str,
        database: str | None = None,
        driver: AsyncDriver | None = None,
    ):
        self._driver = driver or AsyncGraphDatabase.driver(uri, auth=(user, password))
        self._database = database

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "Neo4jGraphClient":
        return cls(
            config.graph_uri,
            config.graph_user,
            config.graph_password,
            database=config.graph_database,
        )

    async def execute_cypher(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(query, params or {})
                return [record.data() async for record in result]
        except (Neo4jError, DriverError) as e:
            logger.warning("Cypher query failed: %s", e)
            raise GraphError(f"Graph query failed: {e}") from e

    async def close(self) -> None:
        await self._driver.close()
