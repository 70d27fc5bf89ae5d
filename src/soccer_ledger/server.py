"""MCP Server for the soccer action ledger."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .analysis import chart_series, session_totals
from .backup import BackupError
from .filters import ActionFilter
from .ledger import Ledger
from .models import Action, ActionType, parse_timestamp
from .store import store_from_env


logger = logging.getLogger(__name__)

# Initialize the server
server = FastMCP("soccer-ledger")

# Ledger instance (lazy initialization)
_ledger: Optional[Ledger] = None


def get_ledger() -> Ledger:
    """Get or create the ledger."""
    global _ledger
    if _ledger is None:
        _ledger = Ledger(store_from_env())
    return _ledger


def set_ledger(ledger: Optional[Ledger]) -> None:
    """Install the ledger used by the tools (None resets to lazy creation)."""
    global _ledger
    _ledger = ledger


def _parse_kind(action_type: str) -> ActionType:
    try:
        return ActionType(action_type.strip().upper())
    except ValueError:
        names = ", ".join(kind.value for kind in ActionType)
        raise ValueError(f"Unknown action type '{action_type}'. Use one of: {names}") from None


def _parse_session(session: Optional[str]) -> Optional[bool]:
    if session is None:
        return None
    value = session.strip().lower()
    if value == "match":
        return True
    if value == "training":
        return False
    raise ValueError(f"Unknown session '{session}'. Use 'match' or 'training'")


def build_filter(
    action_type: Optional[str] = None,
    session: Optional[str] = None,
    opponent: Optional[str] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_id: Optional[str] = None,
) -> ActionFilter:
    """Turn tool arguments into an ActionFilter, rejecting unknown values."""
    return ActionFilter(
        kind=_parse_kind(action_type) if action_type else None,
        is_match=_parse_session(session),
        opponent=opponent,
        player_id=player_id,
        team_id=team_id,
        match_id=match_id,
    )


def _format_action(action: Action) -> str:
    session = "Match" if action.is_match else "Training"
    line = f"- [{action.id}] {action.timestamp} {action.kind.display_name()}"
    if not action.is_time_tracking():
        line += f" x{action.count}"
    line += f" ({session}"
    if action.opponent:
        line += f" vs {action.opponent}"
    line += ")"
    if action.is_legacy():
        line += " [legacy]"
    return line + "\n"


# ============================================================================
# Action Tools
# ============================================================================


@server.tool()
async def record_action(
    count: int,
    action_type: str,
    is_match: bool,
    opponent: str = "",
    player_id: str = "",
    team_id: str = "",
    match_id: str = "",
    date_time: Optional[str] = None,
) -> str:
    """Record a new action.

    Args:
        count: Number of actions (ignored for PLAYER_IN / PLAYER_OUT)
        action_type: GOAL, ASSIST, OFFENSIVE_ACTION, DUEL_WIN, PLAYER_IN or PLAYER_OUT
        is_match: True for a match, False for training
        opponent: Opponent name (empty for training)
        player_id: Optional player identifier
        team_id: Optional team identifier
        match_id: Optional match identifier
        date_time: Optional ISO-8601 date/time (default: now)
    """
    try:
        kind = _parse_kind(action_type)
        when = parse_timestamp(date_time) if date_time else None
        action = get_ledger().record(
            count, kind, is_match, when=when, opponent=opponent,
            player_id=player_id, team_id=team_id, match_id=match_id,
        )
    except ValueError as e:
        return f"Could not record action: {e}"

    return f"Recorded {action.kind.display_name()} on {action.formatted_date()} at {action.formatted_time()} (id {action.id})"


@server.tool()
async def delete_action(action_id: int) -> str:
    """Delete an action permanently.

    Args:
        action_id: The action identifier
    """
    try:
        action = get_ledger().remove(action_id)
    except KeyError:
        return f"Action with ID '{action_id}' not found"
    return f"Deleted {action.kind.display_name()} from {action.timestamp}"


@server.tool()
async def list_actions(
    action_type: Optional[str] = None,
    session: Optional[str] = None,
    opponent: Optional[str] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_id: Optional[str] = None,
    limit: int = 20,
) -> str:
    """List recorded actions, newest first.

    Args:
        action_type: Optional action type filter
        session: Optional "match" or "training"
        opponent: Optional exact opponent name
        player_id: Optional player identifier
        team_id: Optional team identifier
        match_id: Optional match identifier
        limit: Maximum number of actions to return (default 20)
    """
    try:
        action_filter = build_filter(action_type, session, opponent, player_id, team_id, match_id)
    except ValueError as e:
        return str(e)

    results = get_ledger().query_display(action_filter)
    if not results:
        return "No actions found"

    output = f"Found {len(results)} action(s):\n\n"
    for action in results[:limit]:
        output += _format_action(action)
    return output


@server.tool()
async def get_total(
    action_type: Optional[str] = None,
    session: Optional[str] = None,
    opponent: Optional[str] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_id: Optional[str] = None,
) -> str:
    """Sum action counts for the given filters.

    Args:
        action_type: Optional action type filter
        session: Optional "match" or "training"
        opponent: Optional exact opponent name
        player_id: Optional player identifier
        team_id: Optional team identifier
        match_id: Optional match identifier
    """
    try:
        action_filter = build_filter(action_type, session, opponent, player_id, team_id, match_id)
    except ValueError as e:
        return str(e)

    result = get_ledger().total(action_filter)
    if result is None:
        return "No data"
    return f"Total: {result}"


@server.tool()
async def get_play_time(player_id: str, match_id: Optional[str] = None) -> str:
    """Get minutes played from PLAYER_IN / PLAYER_OUT markers.

    Args:
        player_id: The player identifier
        match_id: Optional match identifier to restrict to one match
    """
    ledger = get_ledger()
    try:
        minutes = ledger.play_time(player_id, match_id)
    except ValueError as e:
        return f"Could not compute play time: {e}"

    player = ledger.find_player(player_id)
    name = player.display_name() if player else player_id
    if minutes is None:
        return f"No play time recorded for {name}"
    return f"{name} played {minutes} minute(s)"


@server.tool()
async def get_chart(
    action_type: Optional[str] = None,
    session: Optional[str] = None,
    opponent: Optional[str] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_id: Optional[str] = None,
) -> str:
    """Get progress chart points (oldest first) for the given filters.

    Substitution markers are left out of the chart.

    Args:
        action_type: Optional action type filter
        session: Optional "match" or "training"
        opponent: Optional exact opponent name
        player_id: Optional player identifier
        team_id: Optional team identifier
        match_id: Optional match identifier
    """
    try:
        action_filter = build_filter(action_type, session, opponent, player_id, team_id, match_id)
    except ValueError as e:
        return str(e)

    series = chart_series(get_ledger().query_chart(action_filter))
    if series.empty:
        return "No data"

    output = f"Chart with {len(series)} point(s):\n\n"
    for point in series.to_dict("records"):
        output += f"- {point['x']}: {point['label']} = {point['count']}\n"
    return output


@server.tool()
async def get_session_totals(
    action_type: Optional[str] = None,
    session: Optional[str] = None,
    opponent: Optional[str] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    match_id: Optional[str] = None,
) -> str:
    """Sum action counts per day and session for the given filters.

    Args:
        action_type: Optional action type filter
        session: Optional "match" or "training"
        opponent: Optional exact opponent name
        player_id: Optional player identifier
        team_id: Optional team identifier
        match_id: Optional match identifier
    """
    try:
        action_filter = build_filter(action_type, session, opponent, player_id, team_id, match_id)
    except ValueError as e:
        return str(e)

    totals = session_totals(get_ledger().query_chart(action_filter))
    if totals.empty:
        return "No data"

    output = f"Found {len(totals)} session(s):\n\n"
    for row in totals.to_dict("records"):
        label = "Match" if row["is_match"] else "Training"
        if row["opponent"]:
            label += f" vs {row['opponent']}"
        output += f"- {row['date'].isoformat()} {label}: {row['count']}\n"
    return output


@server.tool()
async def list_opponents() -> str:
    """List distinct opponent names in alphabetical order."""
    opponents = get_ledger().distinct_opponents()
    if not opponents:
        return "No opponents recorded"
    return "\n".join(opponents)


# ============================================================================
# Player, Team and Match Tools
# ============================================================================


@server.tool()
async def list_players() -> str:
    """List players with their age and teams."""
    ledger = get_ledger()
    players = ledger.snapshot.players
    if not players:
        return "No players recorded"

    output = f"Found {len(players)} player(s):\n\n"
    for player in players:
        output += f"- **{player.display_name()}** ({player.id})\n"
        if player.birthdate:
            try:
                output += f"  Born: {player.formatted_birthdate()} (age {player.age()})\n"
            except ValueError:
                output += f"  Born: {player.birthdate}\n"
        teams = [ledger.find_team(t) for t in player.teams]
        names = [t.display_name() for t in teams if t is not None]
        if names:
            output += f"  Teams: {', '.join(names)}\n"
    return output


@server.tool()
async def list_matches() -> str:
    """List matches with scores and results."""
    ledger = get_ledger()
    matches = sorted(ledger.snapshot.matches, key=lambda m: m.date, reverse=True)
    if not matches:
        return "No matches recorded"

    output = f"Found {len(matches)} match(es):\n\n"
    for match in matches:
        opponent = ledger.find_team(match.opponent_team_id)
        opponent_name = opponent.name if opponent else "Unknown opponent"
        venue = "home" if match.is_home_match else "away"
        result = match.result()
        output += f"- {match.date} vs {opponent_name} ({venue}): {match.score_display()}"
        if result is not None:
            output += f" {result.display_name()}"
        output += "\n"
    return output


@server.tool()
async def list_legacy_actions() -> str:
    """List actions that have no player assigned yet."""
    actions = get_ledger().legacy_actions()
    if not actions:
        return "No legacy actions"
    output = f"Found {len(actions)} legacy action(s):\n\n"
    for action in actions:
        output += _format_action(action)
    return output


@server.tool()
async def assign_action(action_id: int, player_id: str, team_id: str) -> str:
    """Assign a player and team to an existing action.

    Args:
        action_id: The action identifier
        player_id: Player to assign
        team_id: Team to assign
    """
    try:
        get_ledger().assign_player_team(action_id, player_id, team_id)
    except KeyError:
        return f"Action with ID '{action_id}' not found"
    return f"Action {action_id} assigned to player {player_id}"


@server.tool()
async def migrate_legacy_matches() -> str:
    """Link match actions without a match to matches built from their opponent."""
    try:
        linked = get_ledger().migrate_legacy_matches()
    except ValueError as e:
        return f"Migration failed: {e}"
    return f"Linked {linked} action(s) to matches"


# ============================================================================
# Backup Tools
# ============================================================================


@server.tool()
async def export_backup() -> str:
    """Export the whole ledger as a backup JSON document."""
    text = get_ledger().export_json()
    logger.info("Exported backup (%d bytes)", len(text.encode("utf-8")))
    return text


@server.tool()
async def import_backup(backup_json: str) -> str:
    """Replace the whole ledger with a backup JSON document.

    Args:
        backup_json: Backup document text (any supported version)
    """
    try:
        snapshot = get_ledger().import_backup(backup_json)
    except BackupError as e:
        logger.warning("Backup import rejected: %s", e)
        return f"Import failed: {e}"

    return (
        f"Imported {len(snapshot.actions)} action(s), {len(snapshot.players)} player(s), "
        f"{len(snapshot.teams)} team(s), {len(snapshot.matches)} match(es)"
    )


async def main():
    """Run the MCP server."""
    logging.basicConfig(level=logging.INFO)
    await server.run_stdio_async()


def run() -> None:
    import asyncio
    asyncio.run(main())


if __name__ == "__main__":
    run()
