"""Tests for the ledger entity models."""

from datetime import date, datetime

import pytest

from soccer_ledger.models import (
    Action,
    ActionType,
    Match,
    MatchResult,
    Player,
    Team,
    generate_action_id,
)


class TestActionType:
    """Test action kinds and their classification."""

    def test_time_tracking_kinds(self):
        for kind in ActionType:
            expected = kind in (ActionType.PLAYER_IN, ActionType.PLAYER_OUT)
            assert kind.is_time_tracking() is expected

    def test_all_lists_six_kinds(self):
        assert len(ActionType.all()) == 6
        assert ActionType.scoring() == [
            ActionType.GOAL, ActionType.ASSIST, ActionType.OFFENSIVE_ACTION, ActionType.DUEL_WIN,
        ]

    def test_default_is_offensive_action(self):
        assert ActionType.default() is ActionType.OFFENSIVE_ACTION

    @pytest.mark.parametrize("text", ["BICYCLE_KICK", "", None, "goal!"])
    def test_parse_falls_back_to_default(self, text):
        assert ActionType.parse(text) is ActionType.OFFENSIVE_ACTION

    def test_parse_is_case_insensitive(self):
        assert ActionType.parse(" assist ") is ActionType.ASSIST

    def test_display_names(self):
        assert ActionType.GOAL.display_name() == "Goal"
        assert ActionType.OFFENSIVE_ACTION.display_name() == "Offensive Action"
        assert ActionType.DUEL_WIN.display_name() == "Duel Win"
        assert ActionType.PLAYER_OUT.display_name() == "Player Out"


class TestAction:
    """Test action construction and derived accessors."""

    def test_unknown_kind_text_normalizes(self):
        action = Action(1, "2025-12-18T14:30:00", 2, "HEADER", True)
        assert action.kind is ActionType.OFFENSIVE_ACTION

    def test_malformed_timestamp_fails_only_on_access(self):
        action = Action(1, "not a date", 1, ActionType.GOAL, False)
        with pytest.raises(ValueError):
            action.local_datetime()

    def test_formatted_date_and_time(self):
        action = Action(1, "2025-12-08T09:05:00", 1, ActionType.GOAL, True)
        assert action.formatted_date() == "Dec 08, 2025"
        assert action.formatted_time() == "09:05"

    def test_create_uses_second_precision(self):
        action = Action.create(3, ActionType.ASSIST, False, when=datetime(2025, 1, 2, 3, 4, 5, 678))
        assert action.timestamp == "2025-01-02T03:04:05"

    def test_offset_timestamps_are_stored_as_local_time(self):
        aware = datetime.fromisoformat("2025-05-10T14:30:00+00:00")
        expected = aware.astimezone().replace(tzinfo=None).isoformat()
        assert Action(1, "2025-05-10T14:30:00+00:00", 1, ActionType.GOAL, True).timestamp == expected
        assert Action(1, "2025-05-10T14:30:00Z", 1, ActionType.GOAL, True).timestamp == expected
        assert Action.create(1, ActionType.GOAL, True, when=aware).timestamp == expected

    def test_naive_timestamps_are_kept_as_written(self):
        assert Action(1, "2025-05-10T14:30", 1, ActionType.GOAL, True).timestamp == "2025-05-10T14:30"

    def test_legacy_when_player_blank(self):
        assert Action(1, "2025-01-01T00:00:00", 1, ActionType.GOAL, True).is_legacy()
        assert Action(1, "2025-01-01T00:00:00", 1, ActionType.GOAL, True, player_id="  ").is_legacy()
        assert not Action(1, "2025-01-01T00:00:00", 1, ActionType.GOAL, True, player_id="P1").is_legacy()

    def test_action_ids_increase(self):
        ids = [generate_action_id() for _ in range(50)]
        assert ids == sorted(set(ids))


class TestPlayer:
    """Test player accessors."""

    def test_age_before_and_after_birthday(self):
        player = Player("P1", "Alex", "2013-06-15")
        assert player.age(date(2025, 6, 14)) == 11
        assert player.age(date(2025, 6, 15)) == 12

    def test_age_for_leap_day_birthdate(self):
        player = Player("P1", "Alex", "2012-02-29")
        assert player.age(date(2025, 2, 28)) == 12
        assert player.age(date(2025, 3, 1)) == 13

    def test_display_name(self):
        assert Player("P1", "Alex", number=10).display_name() == "Alex #10"
        assert Player("P1", "Alex").display_name() == "Alex"

    def test_formatted_birthdate(self):
        assert Player("P1", "Alex", "2015-12-19").formatted_birthdate() == "Dec 19, 2015"

    def test_teams_are_stored_as_tuple(self):
        player = Player("P1", "Alex", teams=["T1", "T2"])
        assert player.teams == ("T1", "T2")


class TestTeam:
    """Test team accessors."""

    def test_default_color(self):
        assert Team("T1", "Riverside").color == "#2196F3"

    def test_display_name_with_season(self):
        assert Team("T1", "FC United", season="2024-2025").display_name() == "FC United (2024-2025)"
        assert Team("T1", "FC United", season=" ").display_name() == "FC United"

    def test_color_rgb_falls_back_to_default(self):
        assert Team("T1", "A", color="#FF5722").color_rgb() == (0xFF, 0x57, 0x22)
        assert Team("T1", "A", color="purple").color_rgb() == (0x21, 0x96, 0xF3)


class TestMatch:
    """Test match scores and results."""

    def test_defaults(self):
        match = Match("M1", "2025-03-08")
        assert match.player_score == -1
        assert match.opponent_score == -1
        assert match.is_home_match is True
        assert match.result() is None
        assert match.score_display() == "Not recorded"

    def test_one_score_is_not_recorded(self):
        assert Match("M1", "2025-03-08", player_score=2).has_scores() is False

    @pytest.mark.parametrize(
        "player_score, opponent_score, expected",
        [(3, 1, MatchResult.WIN), (0, 2, MatchResult.LOSS), (0, 0, MatchResult.DRAW)],
    )
    def test_result(self, player_score, opponent_score, expected):
        match = Match("M1", "2025-03-08", player_score=player_score, opponent_score=opponent_score)
        assert match.result() is expected
        assert match.score_display() == f"{player_score}-{opponent_score}"

    def test_formatted_date(self):
        assert Match("M1", "2025-12-28").formatted_date() == "Dec 28, 2025"

    def test_result_display_name(self):
        assert MatchResult.WIN.display_name() == "Win"
        assert MatchResult.DRAW.display_name() == "Draw"
