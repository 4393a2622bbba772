import logging

import pytest

import squadtrackEvent
import lib.shared.config as config
import lib.shared.player as player
import lib.shared.playtime as playtime
import plugins.shared.playtimetracker.playtimetracker as playtimetracker

from helpers import MakePlayers, Members


def TrackerConfig(**overrides):
    values = { "trackingInterval" : 60 }
    values.update(overrides)
    return config.Config.FromSpecification(playtimetracker.OPTIONS, values)


@pytest.fixture
def tracker(serverData, connectorTable, whitelister):
    whitelister.clans = { "FOO" : Members("76561190000000000"), "BAR" : Members("76561190000000001") }
    plugin = playtimetracker.PlaytimeTracker(serverData, TrackerConfig(), connectorTable)
    plugin.Start(startThread = False)
    yield plugin
    plugin.Finish()


def Rows(tracker):
    return tracker.GetRepository().FindAll()


class TestClassifyPopulation:

    @pytest.mark.parametrize("count, band", [
        (0, playtimetracker.BAND_BELOW),
        (3, playtimetracker.BAND_BELOW),
        (4, playtimetracker.BAND_SEEDING),
        (60, playtimetracker.BAND_SEEDING),
        (61, playtimetracker.BAND_ABOVE),
    ])
    def test_default_thresholds(self, count, band):
        assert playtimetracker.ClassifyPopulation(count, 4, 60) == band


class TestSampleTick:

    def test_seeding_then_playing(self, tracker, api, fakeClock):
        api.players = MakePlayers(1)

        api.playerCount = 10
        for _ in range(3):
            tracker.SampleTick()
        api.playerCount = 70
        for _ in range(2):
            tracker.SampleTick()

        assert Rows(tracker) == [playtime.PlaytimeRecord("76561190000000000", "1970-01-01", 2, 3, "FOO")]

    def test_two_clans_at_seeding_ceiling_then_above(self, tracker, api, whitelister):
        whitelister.clans = { "X" : Members("A"), "Y" : Members("B") }
        tracker.ReloadClans()
        api.players = [player.Player(0, "A", steamID = "A"), player.Player(1, "B", steamID = "B")]

        api.playerCount = 60
        for _ in range(3):
            tracker.SampleTick()
        api.playerCount = 61
        for _ in range(2):
            tracker.SampleTick()

        assert Rows(tracker) == [
            playtime.PlaytimeRecord("A", "1970-01-01", 2, 3, "X"),
            playtime.PlaytimeRecord("B", "1970-01-01", 2, 3, "Y"),
        ]

    def test_below_threshold_creates_row_without_counting(self, tracker, api):
        api.players = MakePlayers(2)
        assert tracker.SampleTick() == 2
        rows = Rows(tracker)
        assert len(rows) == 2
        assert all(row.minutesPlayed == 0 and row.minutesSeeded == 0 for row in rows)

    def test_new_day_gets_new_row(self, tracker, api, fakeClock):
        api.players = MakePlayers(1)
        api.playerCount = 10
        tracker.SampleTick()
        fakeClock.Advance(24 * 60 * 60)
        tracker.SampleTick()
        assert [(row.date, row.minutesSeeded) for row in Rows(tracker)] == [("1970-01-01", 1), ("1970-01-02", 1)]

    def test_players_without_steam_id_are_skipped(self, tracker, api):
        api.players = MakePlayers(3, withSteamId = False)
        api.playerCount = 10
        assert tracker.SampleTick() == 0
        assert Rows(tracker) == []

    def test_unknown_player_has_no_clan(self, tracker, api):
        api.players = MakePlayers(3)
        tracker.SampleTick()
        assert [row.clanTag for row in Rows(tracker)] == ["FOO", "BAR", None]

    def test_failing_player_does_not_stop_the_tick(self, tracker, api, monkeypatch):
        api.players = MakePlayers(3)
        api.playerCount = 10
        repository = tracker.GetRepository()
        increment = repository.Increment

        def FailingIncrement(steamID, day, field):
            if steamID == "76561190000000001":
                raise RuntimeError("disk full")
            increment(steamID, day, field)

        monkeypatch.setattr(repository, "Increment", FailingIncrement)
        assert tracker.SampleTick() == 2
        seeded = { row.steamID : row.minutesSeeded for row in Rows(tracker) }
        assert seeded == { "76561190000000000" : 1, "76561190000000001" : 0, "76561190000000002" : 1 }

    def test_tick_logs_updated_players(self, tracker, api, caplog):
        api.players = MakePlayers(2) + [player.Player(9, "console")]
        with caplog.at_level(logging.DEBUG, logger = playtimetracker.__name__):
            assert tracker.SampleTick() == 2
        assert "Updated playtime for 2 of 3 players." in caplog.messages


class TestClanSnapshot:

    def test_failed_start_load_leaves_snapshot_empty(self, serverData, connectorTable, whitelister, api):
        whitelister.fail = True
        plugin = playtimetracker.PlaytimeTracker(serverData, TrackerConfig(), connectorTable)
        assert plugin.Start(startThread = False)
        assert plugin.GetSnapshot().Size() == 0

    def test_reload_keeps_stale_data_on_failure(self, tracker, whitelister):
        whitelister.fail = True
        assert not tracker.ReloadClans()
        assert tracker.GetSnapshot().Get("76561190000000000") == "FOO"

    def test_reload_event_replaces_snapshot(self, tracker, whitelister, api):
        whitelister.clans = { "BAZ" : Members("76561190000000000") }
        tracker.OnNamedEvent(squadtrackEvent.NamedEvent(playtimetracker.RELOAD_CLANS_EVENT))
        assert tracker.GetSnapshot().Get("76561190000000000") == "BAZ"
        assert tracker.GetSnapshot().Get("76561190000000001") == None

    def test_clan_is_not_rewritten_on_existing_row(self, tracker, whitelister, api):
        api.players = MakePlayers(1)
        tracker.SampleTick()
        whitelister.clans = { "BAZ" : Members("76561190000000000") }
        tracker.ReloadClans()
        tracker.SampleTick()
        assert Rows(tracker)[0].clanTag == "FOO"


class TestStartup:

    def test_start_migrates_legacy_rows(self, serverData, connectorTable, db):
        db.ExecuteQuery(f"CREATE TABLE {playtime.LEGACY_PLAYER_TABLE} (steamID VARCHAR(255) PRIMARY KEY, clanTag VARCHAR(255))")
        db.ExecuteQuery(f"CREATE TABLE {playtime.LEGACY_PLAYTIME_TABLE} (steamID VARCHAR(255), date DATE, minutesPlayed INTEGER, minutesSeeded INTEGER)")
        db.ExecuteQuery(f"INSERT INTO {playtime.LEGACY_PLAYER_TABLE} VALUES ('1', 'FOO')")
        db.ExecuteQuery(f"INSERT INTO {playtime.LEGACY_PLAYTIME_TABLE} VALUES ('1', '2023-12-31', 7, 8)")
        plugin = playtimetracker.PlaytimeTracker(serverData, TrackerConfig(), connectorTable)
        plugin.Start(startThread = False)
        assert plugin.GetRepository().FindAll() == [playtime.PlaytimeRecord("1", "2023-12-31", 7, 8, "FOO")]

    def test_missing_connector_is_reported(self, serverData, connectorTable):
        with pytest.raises(KeyError):
            playtimetracker.PlaytimeTracker(serverData, TrackerConfig(database = "mysql"), connectorTable)

    def test_finish_stops_tracking_thread(self, serverData, connectorTable, api):
        plugin = playtimetracker.PlaytimeTracker(serverData, TrackerConfig(trackingInterval = 3600), connectorTable)
        plugin.Start()
        plugin.Finish()
        api.players = MakePlayers(1)
        # no tick ran while the thread was waiting
        assert plugin.GetRepository().Count() == 0

    def test_failed_tick_does_not_stop_tracking(self, serverData, connectorTable, api, monkeypatch):
        plugin = playtimetracker.PlaytimeTracker(serverData, TrackerConfig(), connectorTable)
        plugin.Start(startThread = False)
        api.players = MakePlayers(1)
        api.playerCount = 10

        waits = iter([False, False, True])
        monkeypatch.setattr(plugin._threadControl, "Wait", lambda seconds: next(waits))
        getAllPlayers = api.GetAllPlayers
        calls = []

        def FlakyGetAllPlayers():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("roster unavailable")
            return getAllPlayers()

        monkeypatch.setattr(api, "GetAllPlayers", FlakyGetAllPlayers)
        plugin._TrackingThreadHandler()
        assert len(calls) == 2
        assert [row.minutesSeeded for row in plugin.GetRepository().FindAll()] == [1]
