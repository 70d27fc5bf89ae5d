"""Persistence backends for the ledger.

The ledger only needs to read every record once, write single records, and
swap in a complete replacement set. ``InMemoryStore`` keeps everything in
process; ``Neo4jStore`` writes through to a Neo4j database.
"""

import logging
import os
import threading
from typing import Optional, Protocol, Union

from .data_loader import DataLoader
from .database import Neo4jDatabase
from .models import Action, LedgerRecords, Match, Player, Team


logger = logging.getLogger(__name__)

Entity = Union[Action, Player, Team, Match]

_LABELS = {Action: "Action", Player: "Player", Team: "Team", Match: "Match"}


class LedgerStore(Protocol):
    def fetch_all(self) -> LedgerRecords: ...

    def save(self, entity: Entity) -> None: ...

    def delete(self, entity: Entity) -> None: ...

    def replace_all(self, records: LedgerRecords) -> None: ...


class InMemoryStore:
    """Store that keeps records in dictionaries keyed by id."""

    def __init__(self, records: Optional[LedgerRecords] = None):
        self._lock = threading.Lock()
        self._tables: dict[str, dict] = {}
        self._install(records or LedgerRecords())

    def _install(self, records: LedgerRecords) -> None:
        self._tables = {
            "Action": {a.id: a for a in records.actions},
            "Player": {p.id: p for p in records.players},
            "Team": {t.id: t for t in records.teams},
            "Match": {m.id: m for m in records.matches},
        }

    def fetch_all(self) -> LedgerRecords:
        with self._lock:
            return LedgerRecords(
                actions=tuple(self._tables["Action"].values()),
                players=tuple(self._tables["Player"].values()),
                teams=tuple(self._tables["Team"].values()),
                matches=tuple(self._tables["Match"].values()),
            )

    def save(self, entity: Entity) -> None:
        with self._lock:
            self._tables[_LABELS[type(entity)]][entity.id] = entity

    def delete(self, entity: Entity) -> None:
        with self._lock:
            self._tables[_LABELS[type(entity)]].pop(entity.id, None)

    def replace_all(self, records: LedgerRecords) -> None:
        with self._lock:
            self._install(records)


class Neo4jStore:
    """Store backed by Neo4j through ``DataLoader``."""

    def __init__(self, db: Optional[Neo4jDatabase] = None):
        self.db = db or Neo4jDatabase()
        self.loader = DataLoader(self.db)

    def fetch_all(self) -> LedgerRecords:
        records = self.loader.fetch_all()
        logger.info(
            "Loaded %d actions, %d players, %d teams, %d matches from Neo4j",
            len(records.actions), len(records.players), len(records.teams), len(records.matches),
        )
        return records

    def save(self, entity: Entity) -> None:
        if isinstance(entity, Action):
            self.loader.load_action(entity)
        elif isinstance(entity, Player):
            self.loader.load_player(entity)
        elif isinstance(entity, Team):
            self.loader.load_team(entity)
        elif isinstance(entity, Match):
            self.loader.load_match(entity)
        else:
            raise TypeError(f"Cannot store {type(entity).__name__}")

    def delete(self, entity: Entity) -> None:
        self.loader.delete(_LABELS[type(entity)], entity.id)

    def replace_all(self, records: LedgerRecords) -> None:
        self.loader.replace_all(records)
        logger.info("Replaced Neo4j ledger with %d actions", len(records.actions))


def store_from_env() -> LedgerStore:
    """Pick a store from SOCCER_LEDGER_STORE ("memory" or "neo4j")."""
    kind = os.getenv("SOCCER_LEDGER_STORE", "memory").lower()
    if kind == "neo4j":
        db = Neo4jDatabase()
        db.connect()
        db.create_constraints()
        db.create_indexes()
        return Neo4jStore(db)
    if kind != "memory":
        raise ValueError(f"Unknown SOCCER_LEDGER_STORE '{kind}'")
    return InMemoryStore()
