import datetime

import requests

import lib.shared.clock as clock
import lib.shared.player as player
import squadtrackinterface


class FakeClock(clock.Clock):
    """Clock frozen at a given unix time, moved only by Advance."""
    def __init__(self, now : float = 0.0):
        self._now = now

    def Time(self) -> float:
        return self._now

    def Advance(self, seconds : float):
        self._now += seconds

    def SetNow(self, value : datetime.datetime):
        self._now = value.timestamp()


class FakeAPI():
    def __init__(self):
        self.players = []
        self.playerCount = None
        self.currentLayer = None
        self.executed = []
        self.emitted = []

    def GetPlayerCount(self) -> int:
        if self.playerCount != None:
            return self.playerCount
        return len(self.players)

    def GetAllPlayers(self):
        return list(self.players)

    def GetCurrentLayer(self):
        return self.currentLayer

    def Execute(self, command : str) -> str:
        self.executed.append(command)
        return ""

    def EmitEvent(self, name : str, data : dict = None):
        self.emitted.append(name)

    def SetLayer(self, layerName : str):
        self.currentLayer = squadtrackinterface.CurrentLayer("Level", layerName, squadtrackinterface.ParseGamemode(layerName))


class SentMessage():
    def __init__(self, channelId, content, embed, allowedMentions, crosspost):
        self.channelId = channelId
        self.content = content
        self.embed = embed
        self.allowedMentions = allowedMentions
        self.crosspost = crosspost


class FakeDiscord():
    def __init__(self):
        self.sent = []
        self.error = None

    def SendMessage(self, channelId, content = None, embed = None, allowedMentions = None, crosspost = False):
        if self.error != None:
            raise self.error
        message = SentMessage(channelId, content, embed, allowedMentions, crosspost)
        self.sent.append(message)
        return message


class FakeWhitelister():
    def __init__(self, clans : dict = None):
        self.clans = clans if clans != None else {}
        self.fail = False
        self.calls = 0

    def GetWhitelistClans(self):
        self.calls += 1
        if self.fail:
            raise requests.ConnectionError("whitelister is down")
        return self.clans


class ClanMember():
    def __init__(self, steamID : str):
        self.steamID = steamID


def Members(*steamIDs):
    return [ClanMember(it) for it in steamIDs]


def MakePlayers(count : int, withSteamId : bool = True) -> list:
    return [player.Player(i, "player%d" % i, steamID = ("7656119%010d" % i) if withSteamId else None) for i in range(count)]


