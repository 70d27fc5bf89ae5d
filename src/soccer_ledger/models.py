"""Data models for the soccer action ledger."""

import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple, Optional, Union


DEFAULT_TEAM_COLOR = "#2196F3"
SCORE_NOT_RECORDED = -1

# Month names are spelled out here so formatting never depends on the host locale.
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class ActionType(str, Enum):
    """Kind of recorded action."""

    GOAL = "GOAL"
    ASSIST = "ASSIST"
    OFFENSIVE_ACTION = "OFFENSIVE_ACTION"
    DUEL_WIN = "DUEL_WIN"
    PLAYER_IN = "PLAYER_IN"
    PLAYER_OUT = "PLAYER_OUT"

    def display_name(self) -> str:
        return _ACTION_DISPLAY_NAMES[self]

    def is_time_tracking(self) -> bool:
        """True for the substitution markers used only for play time."""
        return self in (ActionType.PLAYER_IN, ActionType.PLAYER_OUT)

    @classmethod
    def all(cls) -> list["ActionType"]:
        return list(cls)

    @classmethod
    def scoring(cls) -> list["ActionType"]:
        return [kind for kind in cls if not kind.is_time_tracking()]

    @classmethod
    def default(cls) -> "ActionType":
        return cls.OFFENSIVE_ACTION

    @classmethod
    def parse(cls, value: Union[str, "ActionType", None]) -> "ActionType":
        """Decode stored text into a kind, falling back to the default kind."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.default()


_ACTION_DISPLAY_NAMES = {
    ActionType.GOAL: "Goal",
    ActionType.ASSIST: "Assist",
    ActionType.OFFENSIVE_ACTION: "Offensive Action",
    ActionType.DUEL_WIN: "Duel Win",
    ActionType.PLAYER_IN: "Player In",
    ActionType.PLAYER_OUT: "Player Out",
}


class MatchResult(str, Enum):
    """Result of a match from the player's team perspective."""

    WIN = "WIN"
    LOSS = "LOSS"
    DRAW = "DRAW"

    def display_name(self) -> str:
        return self.value.capitalize()


def format_date(value: date) -> str:
    """Format a date as e.g. 'Dec 18, 2025'."""
    return f"{_MONTHS[value.month - 1]} {value.day:02d}, {value.year}"


def to_local(value: datetime) -> datetime:
    """Convert an offset-aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _fromisoformat(text: str) -> datetime:
    text = text.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_timestamp(text: str) -> datetime:
    """Parse ISO-8601 text (a trailing Z is accepted) into naive local time.

    Raises ValueError when the text is malformed.
    """
    return to_local(_fromisoformat(text))


def format_timestamp(value: datetime) -> str:
    """Render a datetime as local ISO-8601 text with second precision."""
    return to_local(value).replace(microsecond=0).isoformat()


def normalize_timestamp(text: str) -> str:
    """Rewrite text that carries a UTC offset as local time; anything else is returned as is."""
    try:
        value = _fromisoformat(text)
    except ValueError:
        return text
    if value.tzinfo is None:
        return text
    return format_timestamp(value)


_id_lock = threading.Lock()
_last_action_id = 0


def generate_action_id() -> int:
    """Return a millisecond timestamp id, strictly increasing within the process."""
    global _last_action_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_action_id:
            candidate = _last_action_id + 1
        _last_action_id = candidate
        return candidate


def generate_entity_id() -> str:
    """Return a fresh id for a player, team or match."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Action:
    id: int
    timestamp: str
    count: int
    kind: ActionType
    is_match: bool
    opponent: str = ""
    player_id: str = ""
    team_id: str = ""
    match_id: str = ""

    def __post_init__(self):
        # Unknown kind text and malformed timestamps never fail construction.
        object.__setattr__(self, "kind", ActionType.parse(self.kind))
        object.__setattr__(self, "timestamp", normalize_timestamp(self.timestamp))

    @classmethod
    def create(
        cls,
        count: int,
        kind: ActionType,
        is_match: bool,
        when: Optional[datetime] = None,
        opponent: str = "",
        player_id: str = "",
        team_id: str = "",
        match_id: str = "",
        action_id: Optional[int] = None,
    ) -> "Action":
        """Build an action stamped with ``when`` (default: now)."""
        return cls(
            id=action_id if action_id is not None else generate_action_id(),
            timestamp=format_timestamp(when or datetime.now()),
            count=count,
            kind=kind,
            is_match=is_match,
            opponent=opponent,
            player_id=player_id,
            team_id=team_id,
            match_id=match_id,
        )

    def local_datetime(self) -> datetime:
        """Parse the timestamp; raises ValueError when malformed."""
        return parse_timestamp(self.timestamp)

    def formatted_date(self) -> str:
        return format_date(self.local_datetime().date())

    def formatted_time(self) -> str:
        return self.local_datetime().strftime("%H:%M")

    def is_time_tracking(self) -> bool:
        return self.kind.is_time_tracking()

    def is_legacy(self) -> bool:
        """True when the action predates player tracking."""
        return not self.player_id.strip()


@dataclass(frozen=True)
class Player:
    id: str = ""
    name: str = ""
    birthdate: str = ""
    number: int = 0
    teams: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "teams", tuple(self.teams))

    def birthdate_date(self) -> date:
        return date.fromisoformat(self.birthdate)

    def formatted_birthdate(self) -> str:
        return format_date(self.birthdate_date())

    def age(self, today: Optional[date] = None) -> int:
        """Whole calendar years between birthdate and ``today``."""
        born = self.birthdate_date()
        today = today or date.today()
        years = today.year - born.year
        if (today.month, today.day) < (born.month, born.day):
            years -= 1
        return years

    def display_name(self) -> str:
        if self.number > 0:
            return f"{self.name} #{self.number}"
        return self.name


@dataclass(frozen=True)
class Team:
    id: str = ""
    name: str = ""
    color: str = DEFAULT_TEAM_COLOR
    league: str = ""
    season: str = ""

    def display_name(self) -> str:
        if self.season.strip():
            return f"{self.name} ({self.season})"
        return self.name

    def color_rgb(self) -> tuple[int, int, int]:
        """Parse the hex colour, using the default blue when it is malformed."""
        digits = self.color.strip().removeprefix("#")
        try:
            value = int(digits, 16) if len(digits) == 6 else None
        except ValueError:
            value = None
        if value is None:
            value = int(DEFAULT_TEAM_COLOR[1:], 16)
        return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


@dataclass(frozen=True)
class Match:
    id: str = ""
    date: str = ""
    player_team_id: str = ""
    opponent_team_id: str = ""
    league: str = ""
    player_score: int = SCORE_NOT_RECORDED
    opponent_score: int = SCORE_NOT_RECORDED
    is_home_match: bool = True

    def local_date(self) -> date:
        return date.fromisoformat(self.date)

    def formatted_date(self) -> str:
        return format_date(self.local_date())

    def has_scores(self) -> bool:
        return self.player_score >= 0 and self.opponent_score >= 0

    def score_display(self) -> str:
        if self.has_scores():
            return f"{self.player_score}-{self.opponent_score}"
        return "Not recorded"

    def result(self) -> Optional[MatchResult]:
        """Win/loss/draw, or None unless both scores are recorded."""
        if not self.has_scores():
            return None
        if self.player_score > self.opponent_score:
            return MatchResult.WIN
        if self.player_score < self.opponent_score:
            return MatchResult.LOSS
        return MatchResult.DRAW


class LedgerRecords(NamedTuple):
    """Complete set of ledger entities."""

    actions: tuple[Action, ...] = ()
    players: tuple[Player, ...] = ()
    teams: tuple[Team, ...] = ()
    matches: tuple[Match, ...] = ()
