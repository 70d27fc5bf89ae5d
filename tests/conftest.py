"""Pytest configuration and fixtures for soccer ledger tests."""

import copy
import itertools
import os
import re

import pytest

# Set up test environment
os.environ.setdefault("NEO4J_URI", "bolt://localhost:7687")
os.environ.setdefault("NEO4J_USER", "neo4j")
os.environ.setdefault("NEO4J_PASSWORD", "password")
os.environ.setdefault("SOCCER_LEDGER_STORE", "memory")

from soccer_ledger.data_loader import get_sample_data
from soccer_ledger.database import CLEAR_LEDGER
from soccer_ledger.ledger import Ledger
from soccer_ledger.store import InMemoryStore


MERGE_RE = re.compile(r"MERGE \(\w+:(\w+) \{(\w+): \$(\w+)\}\)")
DELETE_RE = re.compile(r"MATCH \(\w+:(\w+) \{(\w+): \$(\w+)\}\) DETACH DELETE")
FETCH_RE = re.compile(r"MATCH \(\w+:(\w+)\)\s+RETURN")


class MockNeo4jDatabase:
    """Mock Neo4j database that interprets the loader's Cypher in memory."""

    def __init__(self):
        self.nodes = {"Action": {}, "Player": {}, "Team": {}, "Match": {}}
        self.transactions = 0
        self.last_transaction = []
        self.fail_on = None
        self._connected = False

    def connect(self):
        self._connected = True

    def close(self):
        self._connected = False

    def _apply(self, nodes, query, params):
        if self.fail_on and self.fail_on in query:
            raise RuntimeError("simulated write failure")

        text = query.strip()
        if text == CLEAR_LEDGER:
            for table in nodes.values():
                table.clear()
            return

        merge = MERGE_RE.search(text)
        if merge:
            label, _, param = merge.groups()
            nodes[label][params[param]] = dict(params)
            return

        delete = DELETE_RE.search(text)
        if delete:
            label, _, param = delete.groups()
            nodes[label].pop(params[param], None)
            return

        if text.startswith("CREATE"):
            return

        raise ValueError(f"Unsupported mock query: {text[:60]}")

    def execute_query(self, query: str, parameters: dict = None) -> list:
        """Execute a mock read query against in-memory nodes."""
        fetch = FETCH_RE.search(query)
        if not fetch:
            return []
        return [dict(row) for row in self.nodes[fetch.group(1)].values()]

    def execute_write(self, query: str, parameters: dict = None) -> None:
        self._apply(self.nodes, query, parameters or {})

    def execute_transaction(self, statements) -> None:
        statements = list(statements)
        staged = copy.deepcopy(self.nodes)
        self.last_transaction = [query for query, _ in statements]
        for query, parameters in statements:
            self._apply(staged, query, parameters)
        self.nodes = staged
        self.transactions += 1

    def create_constraints(self) -> None:
        pass

    def create_indexes(self) -> None:
        pass


@pytest.fixture
def mock_db():
    """Provide a mock database for testing."""
    return MockNeo4jDatabase()


@pytest.fixture
def id_factory():
    """Deterministic action ids starting at 1000."""
    counter = itertools.count(1000)
    return lambda: next(counter)


@pytest.fixture
def sample_records():
    return get_sample_data()


@pytest.fixture
def ledger(id_factory):
    """Empty in-memory ledger."""
    return Ledger(InMemoryStore(), id_factory=id_factory)


@pytest.fixture
def sample_ledger(sample_records, id_factory):
    """Ledger pre-populated with sample data."""
    return Ledger(InMemoryStore(sample_records), id_factory=id_factory)
