import logging
import os
import threading

import requests

import connectors
import squadtrackEvent
import lib.shared.serverdata as serverdata
import lib.shared.config as config
import lib.shared.clock as clock
import lib.shared.playtime as playtime
import lib.shared.threadcontrol as threadcontrol

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "playtimetrackerCfg.json")

CONFIG_FALLBACK = \
"""{
    "database":"sqlite",
    "whitelisterClient":"whitelister",
    "seedingStartsAt":4,
    "seedingEndsAt":60,
    "trackingInterval":60,
    "migrateLegacy":true
}
"""

OPTIONS = {
    "database"          : { "required" : False, "default" : "sqlite",      "description" : "Database connector to log playtime information to." },
    "whitelisterClient" : { "required" : False, "default" : "whitelister", "description" : "The Whitelister connector." },
    "seedingStartsAt"   : { "required" : False, "default" : 4,             "description" : "Minimum number of players for the server to be seeding." },
    "seedingEndsAt"     : { "required" : False, "default" : 60,            "description" : "Maximum number of players for the server to be seeding." },
    "trackingInterval"  : { "required" : False, "default" : 60,            "description" : "Seconds between two samples, every sample counts as one minute." },
    "migrateLegacy"     : { "required" : False, "default" : True,          "description" : "Copy rows of the old player tracker tables on first start." },
}

RELOAD_CLANS_EVENT = "RELOAD_WHITELIST_CLANS"

BAND_BELOW = 0
BAND_SEEDING = 1
BAND_ABOVE = 2

Log = logging.getLogger(__name__)

PluginInstance = None


def ClassifyPopulation(count : int, startsAt : int, endsAt : int) -> int:
    if count < startsAt:
        return BAND_BELOW
    elif count > endsAt:
        return BAND_ABOVE
    return BAND_SEEDING


class ClanSnapshot(object):
    """
    Clan tag of every whitelisted player, taken from the whitelister on Refresh.
    A refresh replaces the whole mapping, a failed one leaves the previous mapping in place.
    """
    def __init__(self, whitelister):
        self._whitelister = whitelister
        self._lock = threading.Lock()
        self._clans : dict[str, str] = {}

    def Refresh(self) -> bool:
        try:
            whitelistClans = self._whitelister.GetWhitelistClans()
        except requests.RequestException as e:
            Log.error("Unable to load whitelist clans, keeping %d known players : %s", len(self._clans), e)
            return False
        clans = {}
        for clanTag, members in whitelistClans.items():
            for member in members:
                clans[member.steamID] = clanTag
        with self._lock:
            self._clans = clans
        Log.info("Loaded %d whitelisted players in %d clans.", len(clans), len(whitelistClans))
        return True

    def Get(self, steamID : str) -> str:
        with self._lock:
            return self._clans.get(steamID, None)

    def Size(self) -> int:
        with self._lock:
            return len(self._clans)


class PlaytimeTracker(object):
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config, connectorTable : connectors.ConnectorTable, clk : clock.Clock = None):
        self._serverData = serverData
        self._config = cfg
        self._clock = clk if clk != None else serverData.clock
        self._repository = playtime.PlaytimeRepository(connectorTable.Require(cfg["database"]))
        self._snapshot = ClanSnapshot(connectorTable.Require(cfg["whitelisterClient"]))
        self._threadControl = threadcontrol.ThreadControl()
        self._thread = None

    def GetRepository(self) -> playtime.PlaytimeRepository:
        return self._repository

    def GetSnapshot(self) -> ClanSnapshot:
        return self._snapshot

    def Start(self, startThread : bool = True) -> bool:
        self._repository.CreateTables()
        if self._config["migrateLegacy"]:
            playtime.MigrateLegacyPlaytime(self._repository)
        self._snapshot.Refresh()
        if startThread:
            self._threadControl.stop = False
            self._thread = threading.Thread(target = self._TrackingThreadHandler, daemon = True, name = "PlaytimeTracker")
            self._thread.start()
        return True

    def _TrackingThreadHandler(self):
        interval = self._config["trackingInterval"]
        Log.debug("Tracking playtime every %s seconds", interval)
        while not self._threadControl.Wait(interval):
            try:
                self.SampleTick()
            except Exception as ex:
                Log.error("Playtime sample failed, retrying next interval : %s", ex)

    def SampleTick(self) -> int:
        """
        Adds one minute to every identified player on the server, as played or seeded time depending
        on the population. Players are processed one by one, a failing row is logged and skipped.

        :return: number of players whose row was updated
        """
        api = self._serverData.API
        players = api.GetAllPlayers()
        playerCount = api.GetPlayerCount()
        band = ClassifyPopulation(playerCount, self._config["seedingStartsAt"], self._config["seedingEndsAt"])
        today = self._clock.Today()

        updated = 0
        for pl in players:
            steamID = pl.GetSteamId()
            if not steamID:
                continue
            try:
                self._repository.FindOrCreate(steamID, today, self._snapshot.Get(steamID))
                if band == BAND_SEEDING:
                    self._repository.Increment(steamID, today, playtime.FIELD_SEEDED)
                elif band == BAND_ABOVE:
                    self._repository.Increment(steamID, today, playtime.FIELD_PLAYED)
                updated += 1
            except Exception as ex:
                Log.error("Unable to update playtime of %s : %s", steamID, ex)
        Log.debug("Updated playtime for %d of %d players.", updated, playerCount)
        return updated

    def ReloadClans(self) -> bool:
        return self._snapshot.Refresh()

    def Finish(self):
        self._threadControl.stop = True
        if self._thread != None:
            self._thread.join()
            self._thread = None

    def OnNamedEvent(self, event : squadtrackEvent.NamedEvent) -> bool:
        if event.name == RELOAD_CLANS_EVENT:
            self.ReloadClans()
        return False


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    if exports == None:
        Log.error("Playtime tracker needs the connector table.")
        return False
    try:
        cfg = LoadConfig()
        global PluginInstance
        PluginInstance = PlaytimeTracker(serverData, cfg, exports)
    except (config.ConfigError, KeyError) as e:
        Log.error("Unable to initialize playtime tracker : %s", e)
        return False
    return True


# Called once when platform starts, after platform is done with loading internal data and preparing
def OnStart():
    return PluginInstance.Start()


# Called each loop tick from the system
def OnLoop():
    pass


# Called before plugin is unloaded by the system, finalize and free everything here
def OnFinish():
    if PluginInstance != None:
        PluginInstance.Finish()


def OnEvent(event) -> bool:
    if event.type == squadtrackEvent.SQUADTRACK_EVENT_TYPE_NAMED:
        return PluginInstance.OnNamedEvent(event)
    return False
