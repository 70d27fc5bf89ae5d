"""Neo4j database connection and operations for the soccer ledger."""

import os
from contextlib import contextmanager
from typing import Any, Generator, Iterable, Optional

from neo4j import GraphDatabase, Driver, Session


Statement = tuple[str, dict[str, Any]]

CLEAR_LEDGER = "MATCH (n) WHERE n:Action OR n:Player OR n:Team OR n:Match DETACH DELETE n"


class Neo4jDatabase:
    """Neo4j database connection manager."""

    def __init__(
        self,
        uri: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.uri = uri or os.getenv("NEO4J_URI", "bolt://localhost:7687")
        self.user = user or os.getenv("NEO4J_USER", "neo4j")
        self.password = password or os.getenv("NEO4J_PASSWORD", "password")
        self._driver: Optional[Driver] = None

    def connect(self) -> None:
        """Establish connection to Neo4j database."""
        if self._driver is None:
            self._driver = GraphDatabase.driver(
                self.uri,
                auth=(self.user, self.password),
            )

    def close(self) -> None:
        """Close database connection."""
        if self._driver:
            self._driver.close()
            self._driver = None

    @property
    def driver(self) -> Driver:
        """Get the database driver, connecting if necessary."""
        if self._driver is None:
            self.connect()
        return self._driver  # type: ignore

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Create a database session context manager."""
        session = self.driver.session()
        try:
            yield session
        finally:
            session.close()

    def execute_query(
        self, query: str, parameters: Optional[dict[str, Any]] = None
    ) -> list[dict[str, Any]]:
        """Execute a Cypher query and return results."""
        with self.session() as session:
            result = session.run(query, parameters or {})
            return [dict(record) for record in result]

    def execute_write(
        self, query: str, parameters: Optional[dict[str, Any]] = None
    ) -> None:
        """Execute a write query."""
        with self.session() as session:
            session.run(query, parameters or {})

    def execute_transaction(self, statements: Iterable[Statement]) -> None:
        """Run several write statements in one transaction; all or nothing."""
        statements = list(statements)

        def work(tx) -> None:
            for query, parameters in statements:
                tx.run(query, parameters).consume()

        with self.session() as session:
            session.execute_write(work)

    def clear_database(self) -> None:
        """Clear all ledger nodes from the database."""
        self.execute_write(CLEAR_LEDGER)

    def create_constraints(self) -> None:
        """Create uniqueness constraints for node types."""
        constraints = [
            "CREATE CONSTRAINT action_id IF NOT EXISTS FOR (a:Action) REQUIRE a.action_id IS UNIQUE",
            "CREATE CONSTRAINT player_id IF NOT EXISTS FOR (p:Player) REQUIRE p.id IS UNIQUE",
            "CREATE CONSTRAINT team_id IF NOT EXISTS FOR (t:Team) REQUIRE t.id IS UNIQUE",
            "CREATE CONSTRAINT match_id IF NOT EXISTS FOR (m:Match) REQUIRE m.id IS UNIQUE",
        ]
        for constraint in constraints:
            self.execute_write(constraint)

    def create_indexes(self) -> None:
        """Create indexes for commonly filtered properties."""
        indexes = [
            "CREATE INDEX action_timestamp IF NOT EXISTS FOR (a:Action) ON (a.timestamp)",
            "CREATE INDEX action_player IF NOT EXISTS FOR (a:Action) ON (a.player_id)",
            "CREATE INDEX action_match IF NOT EXISTS FOR (a:Action) ON (a.match_id)",
            "CREATE INDEX team_name IF NOT EXISTS FOR (t:Team) ON (t.name)",
        ]
        for index in indexes:
            self.execute_write(index)
