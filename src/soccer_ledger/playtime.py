"""Play time derived from PLAYER_IN / PLAYER_OUT markers."""

from datetime import datetime
from typing import Iterable, Optional

from .models import Action, ActionType


def calculate_play_time(
    actions: Iterable[Action],
    player_id: str,
    match_id: Optional[str] = None,
) -> Optional[int]:
    """Total whole minutes played by ``player_id``.

    Markers are re-sorted by timestamp before pairing. While an IN is open,
    further INs are ignored; an OUT without an open IN is ignored, and a
    trailing IN with no OUT adds nothing. Each interval is truncated to whole
    minutes. Returns None when the total is zero, whether or not any pair
    was found.

    Args:
        actions: Any collection of actions; non-marker kinds are skipped.
        player_id: Player whose markers are paired.
        match_id: Restrict pairing to one match when given.
    """
    markers = [
        a for a in actions
        if a.is_time_tracking()
        and a.player_id == player_id
        and (match_id is None or a.match_id == match_id)
    ]
    markers.sort(key=lambda a: (a.local_datetime(), a.id))

    minutes = 0
    opened: Optional[datetime] = None
    for marker in markers:
        at = marker.local_datetime()
        if marker.kind is ActionType.PLAYER_IN:
            if opened is None:
                opened = at
        elif opened is not None:
            minutes += int((at - opened).total_seconds() // 60)
            opened = None

    return minutes or None
