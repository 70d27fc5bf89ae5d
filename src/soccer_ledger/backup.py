"""Versioned backup documents for the whole ledger.

A backup is a JSON object with an integer ``version``. Exports always use
``CURRENT_VERSION``; imports accept every version from 1 up to it and are
upgraded in memory by a chain of pure steps before any entity is built::

    v1 -> v2     same shape, version bump only
    v2 -> v3     playerId/teamId on actions, top-level players and teams
    v3 -> v4     matchId on actions, top-level matches

Adding a version means appending one step to ``UPGRADES``.
"""

import copy
import json
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Union

from .filters import query_display
from .models import (
    DEFAULT_TEAM_COLOR,
    SCORE_NOT_RECORDED,
    Action,
    ActionType,
    LedgerRecords,
    Match,
    Player,
    Team,
    format_timestamp,
    generate_action_id,
)


CURRENT_VERSION = 4
OLDEST_VERSION = 1

COLLECTIONS = ("players", "teams", "matches")
# First version whose documents carry each collection.
COLLECTION_SINCE = {"players": 3, "teams": 3, "matches": 4}
ACTION_LINKS = ("playerId", "teamId", "matchId")


class BackupError(ValueError):
    """Base class for backup decode failures."""


class UnsupportedBackupVersion(BackupError):
    """The document's version is unknown or newer than this codec."""


class MalformedBackup(BackupError):
    """The document text or structure cannot be decoded."""


# ============================================================================
# Upgrade chain
# ============================================================================


def _upgrade_v1_to_v2(document: dict[str, Any]) -> dict[str, Any]:
    return document


def _upgrade_v2_to_v3(document: dict[str, Any]) -> dict[str, Any]:
    for record in document["actions"]:
        record.setdefault("playerId", "")
        record.setdefault("teamId", "")
    document.setdefault("players", [])
    document.setdefault("teams", [])
    return document


def _upgrade_v3_to_v4(document: dict[str, Any]) -> dict[str, Any]:
    for record in document["actions"]:
        record.setdefault("matchId", "")
    document.setdefault("matches", [])
    return document


UPGRADES: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _upgrade_v1_to_v2,
    2: _upgrade_v2_to_v3,
    3: _upgrade_v3_to_v4,
}


def document_version(document: dict[str, Any]) -> int:
    """Read the version field; a document without one is version 1."""
    version = document.get("version", OLDEST_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise UnsupportedBackupVersion(f"Backup version must be an integer, got {version!r}")
    if version < OLDEST_VERSION or version > CURRENT_VERSION:
        raise UnsupportedBackupVersion(
            f"Backup version {version} is not supported "
            f"(expected {OLDEST_VERSION} to {CURRENT_VERSION})"
        )
    return version


def migrate(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` upgraded to ``CURRENT_VERSION``."""
    if not isinstance(document, dict):
        raise MalformedBackup("Backup document must be a JSON object")
    version = document_version(document)

    upgraded = copy.deepcopy(document)
    upgraded.setdefault("exportDate", "")
    upgraded["actions"] = _records(upgraded, "actions")
    for collection in COLLECTIONS:
        if version < COLLECTION_SINCE[collection]:
            # Older documents never defined this key; ignore whatever is there.
            upgraded.pop(collection, None)
        elif collection in upgraded:
            upgraded[collection] = _records(upgraded, collection)

    while version < CURRENT_VERSION:
        upgraded = UPGRADES[version](upgraded)
        version += 1
    upgraded["version"] = version

    # A current-version document may still omit optional collections.
    for collection in COLLECTIONS:
        upgraded.setdefault(collection, [])
    for record in upgraded["actions"]:
        for key in ACTION_LINKS:
            record.setdefault(key, "")
    return upgraded


def _records(document: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = document.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(r, dict) for r in value):
        raise MalformedBackup(f"'{key}' must be a list of objects")
    return value


# ============================================================================
# Field helpers
# ============================================================================


def _text(record: dict[str, Any], key: str, default: str = "") -> str:
    value = record.get(key)
    return default if value is None else str(value)


def _integer(record: dict[str, Any], key: str, default: int) -> int:
    value = record.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedBackup(f"'{key}' must be an integer, got {value!r}") from e


def _flag(record: dict[str, Any], key: str, default: bool) -> bool:
    value = record.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise MalformedBackup(f"'{key}' must be true or false, got {value!r}")
    return value


# ============================================================================
# Encode
# ============================================================================


def action_to_record(action: Action) -> dict[str, Any]:
    # "match" is the external name of is_match.
    return {
        "dateTime": action.timestamp,
        "actionCount": action.count,
        "actionType": action.kind.value,
        "match": action.is_match,
        "opponent": action.opponent,
        "playerId": action.player_id,
        "teamId": action.team_id,
        "matchId": action.match_id,
    }


def player_to_record(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "birthdate": player.birthdate,
        "number": player.number,
        "teams": list(player.teams),
    }


def team_to_record(team: Team) -> dict[str, Any]:
    return {
        "id": team.id,
        "name": team.name,
        "color": team.color,
        "league": team.league,
        "season": team.season,
    }


def match_to_record(match: Match) -> dict[str, Any]:
    return {
        "id": match.id,
        "date": match.date,
        "playerTeamId": match.player_team_id,
        "opponentTeamId": match.opponent_team_id,
        "league": match.league,
        "playerScore": match.player_score,
        "opponentScore": match.opponent_score,
        "isHomeMatch": match.is_home_match,
    }


def export_backup(
    actions: Iterable[Action],
    players: Iterable[Player] = (),
    teams: Iterable[Team] = (),
    matches: Iterable[Match] = (),
    export_date: Optional[datetime] = None,
) -> dict[str, Any]:
    """Build a current-version backup document. Actions are written newest first."""
    return {
        "version": CURRENT_VERSION,
        "exportDate": format_timestamp(export_date or datetime.now()),
        "actions": [action_to_record(a) for a in query_display(actions)],
        "players": [player_to_record(p) for p in players],
        "teams": [team_to_record(t) for t in teams],
        "matches": [match_to_record(m) for m in matches],
    }


# ============================================================================
# Decode
# ============================================================================


def action_from_record(record: dict[str, Any], action_id: int) -> Action:
    return Action(
        id=action_id,
        timestamp=_text(record, "dateTime"),
        count=_integer(record, "actionCount", 0),
        kind=ActionType.parse(record.get("actionType")),
        is_match=_flag(record, "match", False),
        opponent=_text(record, "opponent"),
        player_id=_text(record, "playerId"),
        team_id=_text(record, "teamId"),
        match_id=_text(record, "matchId"),
    )


def player_from_record(record: dict[str, Any]) -> Player:
    teams = record.get("teams") or []
    if not isinstance(teams, list):
        raise MalformedBackup(f"Player 'teams' must be a list, got {teams!r}")
    return Player(
        id=_text(record, "id"),
        name=_text(record, "name"),
        birthdate=_text(record, "birthdate"),
        number=_integer(record, "number", 0),
        teams=tuple(str(t) for t in teams),
    )


def team_from_record(record: dict[str, Any]) -> Team:
    return Team(
        id=_text(record, "id"),
        name=_text(record, "name"),
        color=_text(record, "color", DEFAULT_TEAM_COLOR),
        league=_text(record, "league"),
        season=_text(record, "season"),
    )


def match_from_record(record: dict[str, Any]) -> Match:
    return Match(
        id=_text(record, "id"),
        date=_text(record, "date"),
        player_team_id=_text(record, "playerTeamId"),
        opponent_team_id=_text(record, "opponentTeamId"),
        league=_text(record, "league"),
        player_score=_integer(record, "playerScore", SCORE_NOT_RECORDED),
        opponent_score=_integer(record, "opponentScore", SCORE_NOT_RECORDED),
        is_home_match=_flag(record, "isHomeMatch", True),
    )


def import_backup(
    document: dict[str, Any],
    next_id: Callable[[], int] = generate_action_id,
) -> LedgerRecords:
    """Upgrade ``document`` to the current version and build entities.

    Action ids are not stored in backups; each decoded action receives a
    fresh id from ``next_id``. Raises a BackupError subclass when the
    document cannot be decoded; nothing is returned partially.
    """
    current = migrate(document)
    return LedgerRecords(
        actions=tuple(action_from_record(r, next_id()) for r in current["actions"]),
        players=tuple(player_from_record(r) for r in current["players"]),
        teams=tuple(team_from_record(r) for r in current["teams"]),
        matches=tuple(match_from_record(r) for r in current["matches"]),
    )


def to_json(document: dict[str, Any], indent: Optional[int] = 2) -> str:
    return json.dumps(document, indent=indent, ensure_ascii=False)


def from_json(payload: Union[str, bytes]) -> dict[str, Any]:
    """Parse UTF-8 backup text into a document dict."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        document = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedBackup(f"Backup is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedBackup("Backup document must be a JSON object")
    return document
