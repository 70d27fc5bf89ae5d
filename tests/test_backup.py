"""Tests for the backup codec and version upgrades."""

import itertools
import json
from datetime import datetime

import pytest

from soccer_ledger.backup import (
    CURRENT_VERSION,
    UPGRADES,
    MalformedBackup,
    UnsupportedBackupVersion,
    export_backup,
    from_json,
    import_backup,
    migrate,
    to_json,
)
from soccer_ledger.models import Action, ActionType, Match, Player, Team


def _without_id(action):
    return (action.timestamp, action.count, action.kind, action.is_match,
            action.opponent, action.player_id, action.team_id, action.match_id)


class TestExport:
    """Test the exported document shape."""

    def test_export_uses_current_version_and_external_names(self):
        action = Action(1, "2025-03-08T10:12:00", 1, ActionType.GOAL, True, "Eagles", "P1", "T1", "M1")
        document = export_backup([action], export_date=datetime(2025, 3, 9, 20, 0, 0))

        assert document["version"] == CURRENT_VERSION == 4
        assert document["exportDate"] == "2025-03-09T20:00:00"
        assert document["actions"] == [{
            "dateTime": "2025-03-08T10:12:00",
            "actionCount": 1,
            "actionType": "GOAL",
            "match": True,
            "opponent": "Eagles",
            "playerId": "P1",
            "teamId": "T1",
            "matchId": "M1",
        }]
        assert "isMatch" not in document["actions"][0]
        assert "id" not in document["actions"][0]

    def test_export_match_record(self):
        match = Match("M1", "2025-03-08", "T1", "T2", "League", 3, 1, False)
        record = export_backup([], matches=[match])["matches"][0]
        assert record == {
            "id": "M1",
            "date": "2025-03-08",
            "playerTeamId": "T1",
            "opponentTeamId": "T2",
            "league": "League",
            "playerScore": 3,
            "opponentScore": 1,
            "isHomeMatch": False,
        }


class TestRoundTrip:
    """Test export followed by import."""

    def test_round_trip_reproduces_every_field(self, sample_records):
        text = to_json(export_backup(*sample_records))
        ids = itertools.count(5000)
        restored = import_backup(from_json(text), lambda: next(ids))

        assert sorted(map(_without_id, restored.actions)) == sorted(map(_without_id, sample_records.actions))
        assert list(restored.players) == list(sample_records.players)
        assert list(restored.teams) == list(sample_records.teams)
        assert list(restored.matches) == list(sample_records.matches)

    def test_round_trip_keeps_empty_and_default_fields(self):
        action = Action(1, "2025-01-01T08:00:00", 0, ActionType.DUEL_WIN, False)
        player = Player("P1", "Alex")
        team = Team("T1", "Riverside")
        match = Match("M1", "2025-01-01")
        restored = import_backup(export_backup([action], [player], [team], [match]), lambda: 1)

        assert restored.actions == (action,)
        assert restored.players == (player,)
        assert restored.teams == (team,)
        assert restored.matches == (match,)

    def test_import_assigns_fresh_ids(self):
        actions = [
            Action(11, "2025-01-01T08:00:00", 1, ActionType.GOAL, True),
            Action(12, "2025-01-02T08:00:00", 1, ActionType.GOAL, True),
        ]
        ids = iter([900, 901])
        restored = import_backup(export_backup(actions), lambda: next(ids))
        assert sorted(a.id for a in restored.actions) == [900, 901]


class TestMigration:
    """Test upgrading older documents."""

    def test_upgrade_chain_covers_every_version(self):
        assert sorted(UPGRADES) == list(range(1, CURRENT_VERSION))

    def test_version_2_document_is_upgraded(self):
        document = {
            "version": 2,
            "exportDate": "2024-12-01T10:00:00",
            "actions": [{"dateTime": "2024-11-30T10:00:00", "actionCount": 4,
                         "actionType": "OFFENSIVE_ACTION", "match": False}],
        }
        upgraded = migrate(document)

        assert upgraded["version"] == CURRENT_VERSION
        assert upgraded["players"] == []
        assert upgraded["teams"] == []
        assert upgraded["matches"] == []
        assert upgraded["actions"][0]["playerId"] == ""
        assert upgraded["actions"][0]["matchId"] == ""
        # The input document is not modified.
        assert "players" not in document
        assert "playerId" not in document["actions"][0]

    def test_missing_version_is_treated_as_version_1(self):
        upgraded = migrate({"exportDate": "", "actions": []})
        assert upgraded["version"] == CURRENT_VERSION

    def test_missing_collections_decode_as_empty(self):
        restored = import_backup({"version": 4}, lambda: 1)
        assert restored.actions == ()
        assert restored.players == ()
        assert restored.teams == ()
        assert restored.matches == ()

    def test_missing_match_fields_take_defaults(self):
        restored = import_backup({"version": 4, "matches": [{"id": "M1", "date": "2025-01-01"}]}, lambda: 1)
        match = restored.matches[0]
        assert match.player_score == -1
        assert match.opponent_score == -1
        assert match.is_home_match is True

    def test_missing_team_color_takes_default(self):
        restored = import_backup({"version": 3, "teams": [{"id": "T1", "name": "Riverside"}]}, lambda: 1)
        assert restored.teams[0].color == "#2196F3"

    def test_unknown_fields_are_ignored(self):
        document = {
            "version": 4,
            "device": "tablet",
            "actions": [{"dateTime": "2025-01-01T10:00:00", "actionType": "GOAL", "match": True, "rating": 5}],
        }
        restored = import_backup(document, lambda: 1)
        assert restored.actions[0].kind is ActionType.GOAL
        assert restored.actions[0].count == 0


    def test_offset_date_times_import_as_local_time(self):
        document = {"version": 4, "actions": [
            {"dateTime": "2025-05-10T14:30:00Z", "actionCount": 1, "actionType": "GOAL", "match": True},
        ]}
        restored = import_backup(document, lambda: 1)
        aware = datetime.fromisoformat("2025-05-10T14:30:00+00:00")
        assert restored.actions[0].local_datetime() == aware.astimezone().replace(tzinfo=None)

    def test_collections_newer_than_the_document_are_ignored(self):
        document = {
            "version": 2,
            "actions": [],
            "players": "not a list",
            "teams": [{"id": "T1", "name": "Riverside"}],
            "matches": 7,
        }
        restored = import_backup(document, lambda: 1)
        assert restored.players == ()
        assert restored.teams == ()
        assert restored.matches == ()

    def test_version_3_ignores_a_matches_key(self):
        restored = import_backup({"version": 3, "actions": [], "matches": "later"}, lambda: 1)
        assert restored.matches == ()


class TestRejection:
    """Test documents that cannot be imported."""

    @pytest.mark.parametrize("version", [0, 5, 99, "4", 4.0, True])
    def test_unsupported_versions(self, version):
        with pytest.raises(UnsupportedBackupVersion):
            import_backup({"version": version, "actions": []}, lambda: 1)

    def test_invalid_json(self):
        with pytest.raises(MalformedBackup):
            from_json("{not json")

    def test_top_level_must_be_an_object(self):
        with pytest.raises(MalformedBackup):
            from_json(json.dumps([1, 2, 3]))

    def test_actions_must_be_a_list(self):
        with pytest.raises(MalformedBackup):
            import_backup({"version": 4, "actions": "nope"}, lambda: 1)

    def test_bad_count_aborts_import(self):
        document = {"version": 4, "actions": [
            {"dateTime": "2025-01-01T10:00:00", "actionCount": 1, "actionType": "GOAL"},
            {"dateTime": "2025-01-02T10:00:00", "actionCount": "many", "actionType": "GOAL"},
        ]}
        with pytest.raises(MalformedBackup):
            import_backup(document, lambda: 1)

    @pytest.mark.parametrize("value", ["false", "true", 0, 1])
    def test_session_flag_must_be_a_boolean(self, value):
        document = {"version": 4, "actions": [
            {"dateTime": "2025-01-01T10:00:00", "actionCount": 1, "actionType": "GOAL", "match": value},
        ]}
        with pytest.raises(MalformedBackup):
            import_backup(document, lambda: 1)

    def test_home_flag_must_be_a_boolean(self):
        document = {"version": 4, "matches": [{"id": "M1", "date": "2025-01-01", "isHomeMatch": "no"}]}
        with pytest.raises(MalformedBackup):
            import_backup(document, lambda: 1)

    def test_bytes_payload(self):
        document = from_json(to_json({"version": 1, "actions": []}).encode("utf-8"))
        assert document["version"] == 1
