"""Ledger facade: the single entry point for recording, querying and backups.

Every mutation is applied under one write lock, persisted to the store, and
then published as a new immutable ``LedgerSnapshot``. Readers take the
current snapshot reference and never see a half-applied change.
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Optional, Union

from . import backup, filters
from .filters import MATCH_ALL, ActionFilter
from .models import (
    DEFAULT_TEAM_COLOR,
    SCORE_NOT_RECORDED,
    Action,
    ActionType,
    LedgerRecords,
    Match,
    Player,
    Team,
    generate_action_id,
    generate_entity_id,
)
from .playtime import calculate_play_time
from .store import InMemoryStore, LedgerStore


@dataclass(frozen=True)
class LedgerSnapshot:
    actions: tuple[Action, ...] = ()
    players: tuple[Player, ...] = ()
    teams: tuple[Team, ...] = ()
    matches: tuple[Match, ...] = ()

    @classmethod
    def from_records(cls, records: LedgerRecords) -> "LedgerSnapshot":
        return cls(
            actions=tuple(records.actions),
            players=tuple(sorted(records.players, key=lambda p: p.name)),
            teams=tuple(sorted(records.teams, key=lambda t: t.name)),
            matches=tuple(records.matches),
        )

    def records(self) -> LedgerRecords:
        return LedgerRecords(self.actions, self.players, self.teams, self.matches)


def _find(items, entity_id):
    return next((item for item in items if item.id == entity_id), None)


def _without(items, entity_id):
    return tuple(item for item in items if item.id != entity_id)


def _upsert(items, entity, key=None):
    updated = _without(items, entity.id) + (entity,)
    return tuple(sorted(updated, key=key)) if key else updated


class Ledger:
    """Action ledger with copy-on-write snapshots."""

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        id_factory: Callable[[], int] = generate_action_id,
    ):
        self.store = store if store is not None else InMemoryStore()
        self._next_id = id_factory
        self._write_lock = threading.Lock()
        self._snapshot = LedgerSnapshot.from_records(self.store.fetch_all())

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    def _publish(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot

    # ========================================================================
    # Actions
    # ========================================================================

    def ingest(self, action: Action) -> Action:
        """Store ``action`` under a freshly assigned id and return the stored copy."""
        if action.count < 0:
            raise ValueError(f"Action count must be non-negative, got {action.count}")
        with self._write_lock:
            stored = replace(action, id=self._next_id())
            self.store.save(stored)
            self._publish(replace(self._snapshot, actions=self._snapshot.actions + (stored,)))
        return stored

    def record(
        self,
        count: int,
        kind: Union[ActionType, str],
        is_match: bool,
        when: Optional[datetime] = None,
        opponent: str = "",
        player_id: str = "",
        team_id: str = "",
        match_id: str = "",
    ) -> Action:
        """Build an action from raw input and ingest it."""
        action = Action.create(
            count, ActionType.parse(kind), is_match, when=when, opponent=opponent,
            player_id=player_id, team_id=team_id, match_id=match_id, action_id=0,
        )
        return self.ingest(action)

    def remove(self, action_id: int) -> Action:
        """Hard-delete an action; raises KeyError when it does not exist."""
        with self._write_lock:
            action = _find(self._snapshot.actions, action_id)
            if action is None:
                raise KeyError(f"Action {action_id} not found")
            self.store.delete(action)
            self._publish(replace(self._snapshot, actions=_without(self._snapshot.actions, action_id)))
        return action

    def update_action(self, action: Action) -> Action:
        """Replace the stored action that has the same id."""
        with self._write_lock:
            if _find(self._snapshot.actions, action.id) is None:
                raise KeyError(f"Action {action.id} not found")
            self.store.save(action)
            self._publish(replace(self._snapshot, actions=_upsert(self._snapshot.actions, action)))
        return action

    def assign_player_team(self, action_id: int, player_id: str, team_id: str) -> Action:
        """Attach a player and team to an existing (usually legacy) action."""
        action = self.find_action(action_id)
        if action is None:
            raise KeyError(f"Action {action_id} not found")
        return self.update_action(replace(action, player_id=player_id, team_id=team_id))

    def find_action(self, action_id: int) -> Optional[Action]:
        return _find(self._snapshot.actions, action_id)

    # ========================================================================
    # Queries
    # ========================================================================

    def query_display(self, action_filter: ActionFilter = MATCH_ALL) -> list[Action]:
        return filters.query_display(self._snapshot.actions, action_filter)

    def query_chart(self, action_filter: ActionFilter = MATCH_ALL) -> list[Action]:
        return filters.query_chart(self._snapshot.actions, action_filter)

    def total(self, action_filter: ActionFilter = MATCH_ALL) -> Optional[int]:
        return filters.total(self._snapshot.actions, action_filter)

    def distinct_opponents(self) -> list[str]:
        return filters.distinct_opponents(self._snapshot.actions)

    def legacy_actions(self) -> list[Action]:
        return filters.legacy_actions(self._snapshot.actions)

    def play_time(self, player_id: str, match_id: Optional[str] = None) -> Optional[int]:
        return calculate_play_time(self._snapshot.actions, player_id, match_id)

    # ========================================================================
    # Players, teams and matches
    # ========================================================================

    def add_player(self, name: str, birthdate: str = "", number: int = 0, teams=()) -> Player:
        return self.save_player(Player(generate_entity_id(), name, birthdate, number, tuple(teams)))

    def save_player(self, player: Player) -> Player:
        with self._write_lock:
            self.store.save(player)
            players = _upsert(self._snapshot.players, player, key=lambda p: p.name)
            self._publish(replace(self._snapshot, players=players))
        return player

    def remove_player(self, player_id: str) -> Player:
        with self._write_lock:
            player = _find(self._snapshot.players, player_id)
            if player is None:
                raise KeyError(f"Player {player_id} not found")
            self.store.delete(player)
            self._publish(replace(self._snapshot, players=_without(self._snapshot.players, player_id)))
        return player

    def find_player(self, player_id: str) -> Optional[Player]:
        return _find(self._snapshot.players, player_id)

    def add_team(
        self, name: str, color: str = DEFAULT_TEAM_COLOR, league: str = "", season: str = ""
    ) -> Team:
        return self.save_team(Team(generate_entity_id(), name, color, league, season))

    def save_team(self, team: Team) -> Team:
        with self._write_lock:
            self.store.save(team)
            teams = _upsert(self._snapshot.teams, team, key=lambda t: t.name)
            self._publish(replace(self._snapshot, teams=teams))
        return team

    def remove_team(self, team_id: str) -> Team:
        with self._write_lock:
            team = _find(self._snapshot.teams, team_id)
            if team is None:
                raise KeyError(f"Team {team_id} not found")
            self.store.delete(team)
            self._publish(replace(self._snapshot, teams=_without(self._snapshot.teams, team_id)))
        return team

    def find_team(self, team_id: str) -> Optional[Team]:
        return _find(self._snapshot.teams, team_id)

    def add_match(
        self,
        date: str,
        player_team_id: str = "",
        opponent_team_id: str = "",
        league: str = "",
        player_score: int = SCORE_NOT_RECORDED,
        opponent_score: int = SCORE_NOT_RECORDED,
        is_home_match: bool = True,
    ) -> Match:
        match = Match(
            generate_entity_id(), date, player_team_id, opponent_team_id,
            league, player_score, opponent_score, is_home_match,
        )
        return self.save_match(match)

    def save_match(self, match: Match) -> Match:
        with self._write_lock:
            self.store.save(match)
            self._publish(replace(self._snapshot, matches=_upsert(self._snapshot.matches, match)))
        return match

    def remove_match(self, match_id: str) -> Match:
        with self._write_lock:
            match = _find(self._snapshot.matches, match_id)
            if match is None:
                raise KeyError(f"Match {match_id} not found")
            self.store.delete(match)
            self._publish(replace(self._snapshot, matches=_without(self._snapshot.matches, match_id)))
        return match

    def find_match(self, match_id: str) -> Optional[Match]:
        return _find(self._snapshot.matches, match_id)

    # ========================================================================
    # Legacy migration
    # ========================================================================

    def migrate_legacy_matches(self) -> int:
        """Link match actions that have no match to a found-or-created Match.

        The opponent text becomes (or finds) a Team by exact name; the match is
        found by date, player team and opponent team. Actions without an
        opponent are left alone. Returns the number of actions linked.
        """
        with self._write_lock:
            snap = self._snapshot
            teams = list(snap.teams)
            matches = list(snap.matches)
            actions = []
            linked = 0

            for action in snap.actions:
                if not action.is_match or action.match_id.strip() or not action.opponent.strip():
                    actions.append(action)
                    continue

                opponent = next((t for t in teams if t.name == action.opponent), None)
                if opponent is None:
                    opponent = Team(generate_entity_id(), action.opponent)
                    teams.append(opponent)

                match_date = action.local_datetime().date().isoformat()
                match = next(
                    (m for m in matches
                     if m.date == match_date
                     and m.player_team_id == action.team_id
                     and m.opponent_team_id == opponent.id),
                    None,
                )
                if match is None:
                    match = Match(generate_entity_id(), match_date, action.team_id, opponent.id)
                    matches.append(match)

                actions.append(replace(action, match_id=match.id))
                linked += 1

            if linked:
                migrated = LedgerSnapshot(
                    actions=tuple(actions),
                    players=snap.players,
                    teams=tuple(sorted(teams, key=lambda t: t.name)),
                    matches=tuple(matches),
                )
                self.store.replace_all(migrated.records())
                self._publish(migrated)
        return linked

    # ========================================================================
    # Backup
    # ========================================================================

    def export_backup(self, export_date: Optional[datetime] = None) -> dict[str, Any]:
        snap = self._snapshot
        return backup.export_backup(snap.actions, snap.players, snap.teams, snap.matches, export_date)

    def export_json(self, export_date: Optional[datetime] = None) -> str:
        return backup.to_json(self.export_backup(export_date))

    def import_backup(self, payload: Union[dict[str, Any], str, bytes]) -> LedgerSnapshot:
        """Replace the whole ledger with the contents of a backup.

        The document is fully decoded before anything is touched; a decode or
        store failure leaves the current ledger in place.
        """
        document = payload if isinstance(payload, dict) else backup.from_json(payload)
        with self._write_lock:
            records = backup.import_backup(document, self._next_id)
            imported = LedgerSnapshot.from_records(records)
            self.store.replace_all(imported.records())
            self._publish(imported)
        return imported
