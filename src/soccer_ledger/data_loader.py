"""Read and write ledger entities in Neo4j."""

from typing import Any

from .database import CLEAR_LEDGER, Neo4jDatabase, Statement
from .models import (
    DEFAULT_TEAM_COLOR,
    SCORE_NOT_RECORDED,
    Action,
    ActionType,
    LedgerRecords,
    Match,
    Player,
    Team,
)


class DataLoader:
    """Load ledger data into Neo4j and read it back."""

    def __init__(self, db: Neo4jDatabase):
        self.db = db

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    @staticmethod
    def action_statement(action: Action) -> Statement:
        query = """
        MERGE (a:Action {action_id: $action_id})
        SET a.timestamp = $timestamp,
            a.count = $count,
            a.kind = $kind,
            a.is_match = $is_match,
            a.opponent = $opponent,
            a.player_id = $player_id,
            a.team_id = $team_id,
            a.match_id = $match_id
        """
        return query, {
            "action_id": action.id,
            "timestamp": action.timestamp,
            "count": action.count,
            "kind": action.kind.value,
            "is_match": action.is_match,
            "opponent": action.opponent,
            "player_id": action.player_id,
            "team_id": action.team_id,
            "match_id": action.match_id,
        }

    @staticmethod
    def player_statement(player: Player) -> Statement:
        query = """
        MERGE (p:Player {id: $id})
        SET p.name = $name,
            p.birthdate = $birthdate,
            p.number = $number,
            p.teams = $teams
        """
        return query, {
            "id": player.id,
            "name": player.name,
            "birthdate": player.birthdate,
            "number": player.number,
            "teams": list(player.teams),
        }

    @staticmethod
    def team_statement(team: Team) -> Statement:
        query = """
        MERGE (t:Team {id: $id})
        SET t.name = $name,
            t.color = $color,
            t.league = $league,
            t.season = $season
        """
        return query, {
            "id": team.id,
            "name": team.name,
            "color": team.color,
            "league": team.league,
            "season": team.season,
        }

    @staticmethod
    def match_statement(match: Match) -> Statement:
        query = """
        MERGE (m:Match {id: $id})
        SET m.date = $date,
            m.player_team_id = $player_team_id,
            m.opponent_team_id = $opponent_team_id,
            m.league = $league,
            m.player_score = $player_score,
            m.opponent_score = $opponent_score,
            m.is_home_match = $is_home_match
        """
        return query, {
            "id": match.id,
            "date": match.date,
            "player_team_id": match.player_team_id,
            "opponent_team_id": match.opponent_team_id,
            "league": match.league,
            "player_score": match.player_score,
            "opponent_score": match.opponent_score,
            "is_home_match": match.is_home_match,
        }

    @staticmethod
    def delete_statement(label: str, entity_id: Any) -> Statement:
        key = "action_id" if label == "Action" else "id"
        return f"MATCH (n:{label} {{{key}: $entity_id}}) DETACH DELETE n", {"entity_id": entity_id}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def load_action(self, action: Action) -> None:
        """Insert or overwrite an action."""
        self.db.execute_write(*self.action_statement(action))

    def load_player(self, player: Player) -> None:
        """Insert or overwrite a player."""
        self.db.execute_write(*self.player_statement(player))

    def load_team(self, team: Team) -> None:
        """Insert or overwrite a team."""
        self.db.execute_write(*self.team_statement(team))

    def load_match(self, match: Match) -> None:
        """Insert or overwrite a match."""
        self.db.execute_write(*self.match_statement(match))

    def delete(self, label: str, entity_id: Any) -> None:
        self.db.execute_write(*self.delete_statement(label, entity_id))

    def replace_all(self, records: LedgerRecords) -> None:
        """Swap the stored ledger for ``records`` in a single transaction."""
        statements: list[Statement] = [(CLEAR_LEDGER, {})]
        statements += [self.team_statement(t) for t in records.teams]
        statements += [self.player_statement(p) for p in records.players]
        statements += [self.match_statement(m) for m in records.matches]
        statements += [self.action_statement(a) for a in records.actions]
        self.db.execute_transaction(statements)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_actions(self) -> list[Action]:
        rows = self.db.execute_query(
            """
            MATCH (a:Action)
            RETURN a.action_id as action_id, a.timestamp as timestamp, a.count as count,
                   a.kind as kind, a.is_match as is_match, a.opponent as opponent,
                   a.player_id as player_id, a.team_id as team_id, a.match_id as match_id
            ORDER BY a.timestamp DESC, a.action_id ASC
            """
        )
        return [
            Action(
                id=row["action_id"],
                timestamp=row["timestamp"] or "",
                count=row["count"] or 0,
                kind=ActionType.parse(row["kind"]),
                is_match=bool(row["is_match"]),
                opponent=row["opponent"] or "",
                player_id=row["player_id"] or "",
                team_id=row["team_id"] or "",
                match_id=row["match_id"] or "",
            )
            for row in rows
        ]

    def fetch_players(self) -> list[Player]:
        rows = self.db.execute_query(
            """
            MATCH (p:Player)
            RETURN p.id as id, p.name as name, p.birthdate as birthdate,
                   p.number as number, p.teams as teams
            ORDER BY p.name
            """
        )
        return [
            Player(
                id=row["id"],
                name=row["name"] or "",
                birthdate=row["birthdate"] or "",
                number=row["number"] or 0,
                teams=tuple(row["teams"] or ()),
            )
            for row in rows
        ]

    def fetch_teams(self) -> list[Team]:
        rows = self.db.execute_query(
            """
            MATCH (t:Team)
            RETURN t.id as id, t.name as name, t.color as color,
                   t.league as league, t.season as season
            ORDER BY t.name
            """
        )
        return [
            Team(
                id=row["id"],
                name=row["name"] or "",
                color=row["color"] or DEFAULT_TEAM_COLOR,
                league=row["league"] or "",
                season=row["season"] or "",
            )
            for row in rows
        ]

    def fetch_matches(self) -> list[Match]:
        rows = self.db.execute_query(
            """
            MATCH (m:Match)
            RETURN m.id as id, m.date as date, m.player_team_id as player_team_id,
                   m.opponent_team_id as opponent_team_id, m.league as league,
                   m.player_score as player_score, m.opponent_score as opponent_score,
                   m.is_home_match as is_home_match
            ORDER BY m.date DESC
            """
        )
        return [
            Match(
                id=row["id"],
                date=row["date"] or "",
                player_team_id=row["player_team_id"] or "",
                opponent_team_id=row["opponent_team_id"] or "",
                league=row["league"] or "",
                player_score=_score(row["player_score"]),
                opponent_score=_score(row["opponent_score"]),
                is_home_match=row["is_home_match"] is not False,
            )
            for row in rows
        ]

    def fetch_all(self) -> LedgerRecords:
        return LedgerRecords(
            actions=tuple(self.fetch_actions()),
            players=tuple(self.fetch_players()),
            teams=tuple(self.fetch_teams()),
            matches=tuple(self.fetch_matches()),
        )


def _score(value: Any) -> int:
    return SCORE_NOT_RECORDED if value is None else int(value)


def get_sample_data() -> LedgerRecords:
    """Get a small sample ledger for demo purposes."""
    teams = (
        Team("T001", "Riverside U12", "#FF5722", "City Youth League", "2024-2025"),
        Team("T002", "Riverside U12 Futsal", DEFAULT_TEAM_COLOR, "Indoor Cup", ""),
        Team("T101", "Eagles"),
        Team("T102", "Harbor FC"),
    )

    players = (
        Player("P001", "Alex Morgan", "2013-03-14", 10, ("T001", "T002")),
        Player("P002", "Sam Rivera", "2012-11-02", 7, ("T001",)),
    )

    matches = (
        Match("M001", "2025-03-08", "T001", "T101", "City Youth League", 3, 1, True),
        Match("M002", "2025-03-15", "T001", "T102", "City Youth League", 2, 2, False),
        Match("M003", "2025-03-22", "T001", "T101", "City Youth League"),
    )

    actions = (
        # Match M001 vs Eagles
        Action(1, "2025-03-08T10:00:00", 0, ActionType.PLAYER_IN, True, "Eagles", "P001", "T001", "M001"),
        Action(2, "2025-03-08T10:12:00", 1, ActionType.GOAL, True, "Eagles", "P001", "T001", "M001"),
        Action(3, "2025-03-08T10:25:00", 2, ActionType.OFFENSIVE_ACTION, True, "Eagles", "P001", "T001", "M001"),
        Action(4, "2025-03-08T10:40:00", 0, ActionType.PLAYER_OUT, True, "Eagles", "P001", "T001", "M001"),
        Action(5, "2025-03-08T10:05:00", 1, ActionType.ASSIST, True, "Eagles", "P002", "T001", "M001"),
        # Match M002 at Harbor FC
        Action(6, "2025-03-15T09:30:00", 0, ActionType.PLAYER_IN, True, "Harbor FC", "P001", "T001", "M002"),
        Action(7, "2025-03-15T09:48:00", 3, ActionType.DUEL_WIN, True, "Harbor FC", "P001", "T001", "M002"),
        Action(8, "2025-03-15T10:00:00", 0, ActionType.PLAYER_OUT, True, "Harbor FC", "P001", "T001", "M002"),
        # Training
        Action(9, "2025-03-18T17:00:00", 4, ActionType.OFFENSIVE_ACTION, False, "", "P001", "T001", ""),
        Action(10, "2025-03-19T17:00:00", 2, ActionType.GOAL, False, "", "P002", "T001", ""),
        # Legacy entries recorded before player tracking
        Action(11, "2024-10-05T11:00:00", 1, ActionType.GOAL, True, "Eagles"),
        Action(12, "2024-10-12T11:00:00", 5, ActionType.OFFENSIVE_ACTION, True, "Lakeside"),
        Action(13, "2024-10-14T18:00:00", 3, ActionType.OFFENSIVE_ACTION, False),
    )

    return LedgerRecords(actions, players, teams, matches)


def load_sample_data(db: Neo4jDatabase) -> None:
    """Load the sample ledger into the database, replacing what is there."""
    db.create_constraints()
    db.create_indexes()
    DataLoader(db).replace_all(get_sample_data())
