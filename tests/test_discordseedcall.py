from datetime import datetime, timezone

import discord
import pytest

import lib.shared.config as config
import plugins.shared.discordseedcall.discordseedcall as discordseedcall


@pytest.fixture
def seedCall(serverData, connectorTable, fakeClock):
    fakeClock.SetNow(datetime(2024, 5, 1, 14, 30, tzinfo = timezone.utc))

    def Create(**overrides):
        values = { "channelID" : "123", "time" : "15:00", "message" : "Seeding has started.", "pingGroups" : ["500455137626554379"] }
        values.update(overrides)
        return discordseedcall.DiscordSeedCall(serverData, config.Config.FromSpecification(discordseedcall.OPTIONS, values), connectorTable)

    return Create


def test_seconds_until():
    now = datetime(2024, 5, 1, 14, 30, 45, tzinfo = timezone.utc)
    assert discordseedcall.SecondsUntil("15:00", now) == 30 * 60
    assert discordseedcall.SecondsUntil("14:30", now) == None
    assert discordseedcall.SecondsUntil("09:00", now) == None


def test_build_content():
    assert discordseedcall.BuildContent("Seed!", []) == "Seed!"
    assert discordseedcall.BuildContent("Seed!", ["1", "2"]) == "Seed!\n\n<@&1> <@&2>"


class TestDiscordSeedCall:

    def test_sends_message_at_time(self, seedCall, discordClient, fakeClock, api):
        plugin = seedCall()
        assert plugin.Start()
        plugin.Loop()
        assert discordClient.sent == []

        fakeClock.Advance(30 * 60)
        plugin.Loop()
        assert len(discordClient.sent) == 1
        message = discordClient.sent[0]
        assert message.channelId == "123"
        assert message.content == "Seeding has started.\n\n<@&500455137626554379>"
        assert message.crosspost
        assert message.allowedMentions.roles == True
        assert message.allowedMentions.users == False
        assert message.allowedMentions.everyone == False

        # once a day
        fakeClock.Advance(24 * 60 * 60)
        plugin.Loop()
        assert len(discordClient.sent) == 1

    def test_skipped_when_already_seeded(self, seedCall, discordClient, fakeClock, api):
        api.playerCount = 61
        plugin = seedCall()
        plugin.Start()
        fakeClock.Advance(30 * 60)
        plugin.Loop()
        assert discordClient.sent == []

    def test_time_passed_today(self, seedCall, discordClient, fakeClock):
        plugin = seedCall(time = "12:00")
        assert plugin.Start()
        assert not plugin.IsPending()

    def test_invalid_time_fails_start(self, seedCall):
        assert not seedCall(time = "quarter past").Start()

    def test_send_failure_is_logged(self, seedCall, discordClient):
        discordClient.error = discord.DiscordException("no access")
        assert not seedCall().SendMessage()
