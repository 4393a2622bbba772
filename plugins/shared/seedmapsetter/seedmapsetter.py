import logging
import os
import random

import connectors
import squadtrackEvent
import lib.shared.serverdata as serverdata
import lib.shared.config as config
import lib.shared.clock as clock
import lib.shared.timeout as timeout

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "seedmapsetterCfg.json")

CONFIG_FALLBACK = \
"""{
    "seedingLayers":
    [
        "Sumari_Seed_v1"
    ],
    "afterSeedingLayers":
    [
        "Narva_RAAS_v1"
    ],
    "changeLayerDelay":10,
    "setNextLayerDelay":300
}
"""

OPTIONS = {
    "seedingLayers"      : { "required" : False, "default" : [],  "description" : "Seeding layers from which one will be set randomly with AdminChangeLayer." },
    "afterSeedingLayers" : { "required" : False, "default" : [],  "description" : "Layers from which one will be set randomly with AdminSetNextLayer." },
    "changeLayerDelay"   : { "required" : False, "default" : 10,  "description" : "Seconds the first player gets to load in before the layer changes." },
    "setNextLayerDelay"  : { "required" : False, "default" : 300, "description" : "Seconds after the layer change before the next layer is set." },
}

Log = logging.getLogger(__name__)

PluginInstance = None


def PickRandom(values : list, rng : random.Random = None) -> str:
    if not isinstance(values, list) or len(values) == 0:
        return None
    return (rng if rng != None else random).choice(values)


class SeedMapSetter(object):
    """
    Switches an empty server to a seeding layer when its first player joins, and a few minutes
    later queues a regular layer to be played once seeding is done.
    Both steps only happen while the current layer is a Seed one.
    """
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config, clk : clock.Clock = None, rng : random.Random = None):
        self._serverData = serverData
        self._config = cfg
        self._rng = rng
        clk = clk if clk != None else serverData.clock
        self._changeLayerTimeout = timeout.Timeout(clk)
        self._setNextLayerTimeout = timeout.Timeout(clk)

    def IsGameModeSeed(self) -> bool:
        layer = self._serverData.API.GetCurrentLayer()
        if layer == None or not layer.IsSeed():
            Log.debug("Current layer is not seed")
            return False
        return True

    def IsOnlyOnePlayerOnTheServer(self) -> bool:
        if self._serverData.API.GetPlayerCount() > 1:
            Log.debug("There are multiple players on the server")
            return False
        return True

    def OnPlayerConnected(self, event : squadtrackEvent.PlayerConnectedEvent) -> bool:
        if self.IsOnlyOnePlayerOnTheServer():
            # drop a pending change from an earlier join
            self._changeLayerTimeout.Finish()
            self._setNextLayerTimeout.Finish()
            self._changeLayerTimeout.Set(self._config["changeLayerDelay"])
            Log.info("New seeding layer will be set in %s seconds", self._config["changeLayerDelay"])
        return False

    def ChangeLayer(self):
        newSeedingLayer = PickRandom(self._config["seedingLayers"], self._rng)
        if newSeedingLayer and self.IsGameModeSeed():
            Log.info("Setting current layer to %s", newSeedingLayer)
            self._serverData.API.Execute("AdminChangeLayer %s" % newSeedingLayer)
            self._setNextLayerTimeout.Set(self._config["setNextLayerDelay"])

    def SetNextLayer(self):
        newAfterSeedingLayer = PickRandom(self._config["afterSeedingLayers"], self._rng)
        if self.IsGameModeSeed() and newAfterSeedingLayer:
            Log.info("Setting next layer to %s", newAfterSeedingLayer)
            self._serverData.API.Execute("AdminSetNextLayer %s" % newAfterSeedingLayer)

    def Loop(self):
        if self._changeLayerTimeout.Consume():
            self.ChangeLayer()
        if self._setNextLayerTimeout.Consume():
            self.SetNextLayer()

    def Finish(self):
        self._changeLayerTimeout.Finish()
        self._setNextLayerTimeout.Finish()


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    global PluginInstance
    PluginInstance = SeedMapSetter(serverData, LoadConfig())
    return True


def OnStart():
    return True


def OnLoop():
    PluginInstance.Loop()


def OnFinish():
    if PluginInstance != None:
        PluginInstance.Finish()


def OnEvent(event) -> bool:
    if event.type == squadtrackEvent.SQUADTRACK_EVENT_TYPE_PLAYER_CONNECTED:
        return PluginInstance.OnPlayerConnected(event)
    return False
