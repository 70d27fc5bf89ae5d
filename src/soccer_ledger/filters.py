"""Filtering and aggregation over an action collection."""

from dataclasses import dataclass, fields
from typing import Iterable, Optional

from .models import Action, ActionType


@dataclass(frozen=True)
class ActionFilter:
    """Set of independent equality predicates; None means "don't care".

    Instances are hashable values so they can key a result cache.
    """

    kind: Optional[ActionType] = None
    is_match: Optional[bool] = None
    opponent: Optional[str] = None
    player_id: Optional[str] = None
    team_id: Optional[str] = None
    match_id: Optional[str] = None

    def __post_init__(self):
        if self.kind is not None:
            object.__setattr__(self, "kind", ActionType.parse(self.kind))

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def matches(self, action: Action) -> bool:
        if self.kind is not None and action.kind != self.kind:
            return False
        if self.is_match is not None and action.is_match != self.is_match:
            return False
        if self.opponent is not None and action.opponent != self.opponent:
            return False
        if self.player_id is not None and action.player_id != self.player_id:
            return False
        if self.team_id is not None and action.team_id != self.team_id:
            return False
        if self.match_id is not None and action.match_id != self.match_id:
            return False
        return True


MATCH_ALL = ActionFilter()


def _select(actions: Iterable[Action], action_filter: ActionFilter) -> list[Action]:
    return [a for a in actions if action_filter.matches(a)]


def query_display(actions: Iterable[Action], action_filter: ActionFilter = MATCH_ALL) -> list[Action]:
    """Matching actions newest first; equal timestamps keep ascending id order."""
    selected = sorted(_select(actions, action_filter), key=lambda a: a.id)
    # Stable sort on timestamp alone so the id tiebreak survives the reversal.
    selected.sort(key=lambda a: a.timestamp, reverse=True)
    return selected


def query_chart(actions: Iterable[Action], action_filter: ActionFilter = MATCH_ALL) -> list[Action]:
    """Matching actions oldest first, ties by ascending id."""
    return sorted(_select(actions, action_filter), key=lambda a: (a.timestamp, a.id))


def total(actions: Iterable[Action], action_filter: ActionFilter = MATCH_ALL) -> Optional[int]:
    """Sum of counts over matching scoring actions.

    Substitution markers never contribute. Returns None both when nothing
    matches and when the matching counts add up to zero.
    """
    result = sum(
        a.count for a in actions
        if action_filter.matches(a) and not a.is_time_tracking()
    )
    return result or None


def distinct_opponents(actions: Iterable[Action]) -> list[str]:
    """Non-empty opponent names in ascending order."""
    return sorted({a.opponent for a in actions if a.opponent})


def legacy_actions(actions: Iterable[Action]) -> list[Action]:
    """Actions with no assigned player, newest first."""
    return query_display(a for a in actions if a.is_legacy())
