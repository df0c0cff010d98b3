"""Tests for the Bolt graph client against a fake neo4j driver."""

import pytest
from neo4j.exceptions import ServiceUnavailable

from regintel.errors import GraphError
from regintel.graph.client import Neo4jGraphClient


class FakeRecord:
    def __init__(self, data: dict):
        self._data = data

    def data(self) -> dict:
        return dict(self._data)


class FakeResult:
    def __init__(self, rows: list[dict]):
        self._rows = rows

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for row in self._rows:
            yield FakeRecord(row)


class FakeSession:
    def __init__(self, driver: "FakeDriver"):
        self.driver = driver

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def run(self, query, params):
        self.driver.runs.append((query, params))
        if self.driver.error:
            raise self.driver.error
        return FakeResult(self.driver.rows)


class FakeDriver:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.runs = []
        self.databases = []
        self.closed = False

    def session(self, database=None):
        self.databases.append(database)
        return FakeSession(self)

    async def close(self):
        self.closed = True


def _client(driver, database=None) -> Neo4jGraphClient:
    return Neo4jGraphClient("bolt://graph:7687", "memgraph", "secret", database=database, driver=driver)


@pytest.mark.asyncio
class TestNeo4jGraphClient:
    async def test_returns_records_as_dicts(self):
        driver = FakeDriver(rows=[{"id": "rule-1", "label": "VAT", "type": "Rule"}])
        rows = await _client(driver, database="regintel").execute_cypher(
            "MATCH (n) WHERE n.id IN $ids RETURN n.id AS id", {"ids": ["rule-1"]}
        )
        assert rows == [{"id": "rule-1", "label": "VAT", "type": "Rule"}]
        assert driver.runs == [("MATCH (n) WHERE n.id IN $ids RETURN n.id AS id", {"ids": ["rule-1"]})]
        assert driver.databases == ["regintel"]

    async def test_missing_params_default_to_empty(self):
        driver = FakeDriver()
        await _client(driver).execute_cypher("RETURN 1")
        assert driver.runs == [("RETURN 1", {})]

    async def test_driver_errors_become_graph_errors(self):
        driver = FakeDriver(error=ServiceUnavailable("graph down"))
        with pytest.raises(GraphError, match="graph down"):
            await _client(driver).execute_cypher("RETURN 1")

    async def test_close_closes_driver(self):
        driver = FakeDriver()
        await _client(driver).close()
        assert driver.closed
