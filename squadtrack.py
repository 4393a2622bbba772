# platform imports
import os
import sys
import time
import queue
import logging
import argparse
import signal
import traceback

Server = None

def Sighandler(signum, frame):
    if signum == signal.SIGINT or signum == signal.SIGTERM:
        global Server
        if Server != None:
            Server.Stop()

Argparser = argparse.ArgumentParser(prog="SquadTrack", description="Playtime and seeding tracker for Squad servers")
Argparser.add_argument("-d", "--debug", action="store_true")
Argparser.add_argument("-lf", "--logfile")
Argparser.add_argument("-c", "--config", help="Path to the host config file")
Args = None

Log = logging.getLogger(__name__)

# custom imports
import lib.shared.config as config
import lib.shared.serverdata as serverdata
import lib.shared.playermanager as playermanager
import lib.shared.timeout as timeout
import lib.shared.clock as clock
import lib.shared.discordconnector as discordconnector
import squadtrackEvent
import squadtrackAPI
import squadtrackinterface
import connectors
import database
import plugin

CONFIG_DEFAULT_PATH = os.path.join(os.getcwd(), "squadtrackCfg.json")
CONFIG_FALLBACK = \
"""{
    "Name":"SquadTrack",
    "rcon":
    {
        "ip":"127.0.0.1",
        "port":21114,
        "password":"rconPassword",
        "timeout":10
    },

    "databases":
    [
        {
            "name":"sqlite",
            "path":"squadtrack.db"
        }
    ],

    "discord":
    {
        "enabled":false,
        "envFile":"discord.env",
        "readyTimeout":30
    },

    "logicDelay":0.1,
    "rosterRefreshInterval":30,

    "paths":
    [
        "./"
    ],

    "Plugins":
    [
        {
            "path":"plugins.shared.whitelister.whitelister"
        },
        {
            "path":"plugins.shared.playtimetracker.playtimetracker"
        },
        {
            "path":"plugins.shared.playtimereport.playtimereport",
            "required":false
        },
        {
            "path":"plugins.shared.seedmapsetter.seedmapsetter",
            "required":false
        },
        {
            "path":"plugins.shared.discordseedcall.discordseedcall",
            "required":false
        },
        {
            "path":"plugins.shared.taskscheduler.taskscheduler"
        }
    ]
}
"""


class SquadTrackServer:

    STATUS_PLUGIN_ERROR = -4
    STATUS_RESOURCES_ERROR = -3
    STATUS_RCON_ERROR = -2
    STATUS_CONFIG_ERROR = -1
    STATUS_INIT = 0
    STATUS_RUNNING = 1
    STATUS_FINISHING = 2
    STATUS_FINISHED = 3
    STATUS_STOPPING = 4
    STATUS_STOPPED = 5

    @staticmethod
    def StatusString(statusId):
        if statusId == SquadTrackServer.STATUS_INIT:
            return "Status : Initialized Ok."
        elif statusId == SquadTrackServer.STATUS_CONFIG_ERROR:
            return "Status : Error at configuration load."
        elif statusId == SquadTrackServer.STATUS_RCON_ERROR:
            return "Status : Unable to reach the server RCON."
        elif statusId == SquadTrackServer.STATUS_RESOURCES_ERROR:
            return "Status : Unable to open resources."
        elif statusId == SquadTrackServer.STATUS_PLUGIN_ERROR:
            return "Status : Plugin failed to load or start."
        else:
            return "Unknown status id."

    def ValidateConfig(self, cfg : config.Config) -> bool:
        if cfg == None:
            return False
        rconCfg = cfg.GetValue("rcon", None)
        if rconCfg == None:
            Log.error("Config has no rcon section.")
            return False
        for key in ("ip", "port", "password"):
            if rconCfg.get(key, None) in (None, ""):
                Log.error("Config rcon section is missing %s.", key)
                return False
        if rconCfg["password"] == "rconPassword":
            Log.error("RCON password is still the default one, edit %s first.", CONFIG_DEFAULT_PATH)
            return False
        for db in cfg.GetValue("databases", []):
            if "name" not in db or "path" not in db:
                Log.error("Database entry %s needs a name and a path.", db)
                return False
        if not isinstance(cfg.GetValue("Plugins", None), list):
            Log.error("Config Plugins has to be a list.")
            return False
        return True

    def GetStatus(self):
        return self._status

    def __init__(self, args, configPath : str = CONFIG_DEFAULT_PATH, iface : squadtrackinterface.IServerInterface = None, clk : clock.Clock = None):
        self._isFinished = False
        self._isRunning = False
        self._pluginManager = None
        self._svInterface = None
        self._discord = None
        self._dbManager = None
        self._currentLayer = None
        self._clock = clk if clk != None else clock.SystemClock

        startTime = time.time()
        self._status = SquadTrackServer.STATUS_INIT
        Log.info("Initializing SquadTrack...")
        # Config load first
        self._config = config.Config.fromJSON(configPath, CONFIG_FALLBACK)
        if self._config == None:
            self._status = SquadTrackServer.STATUS_CONFIG_ERROR
            return

        if iface == None and not self.ValidateConfig(self._config):
            self._status = SquadTrackServer.STATUS_CONFIG_ERROR
            return

        for path in self._config.GetValue("paths", []):
            sys.path.append(os.path.normpath(path))
        Log.debug("System path total %s", str(sys.path))

        self._connectors = connectors.ConnectorTable()

        # Databases
        self._dbManager = database.DatabaseManager()
        for dbCfg in self._config.GetValue("databases", []):
            r = self._dbManager.CreateDatabase(dbCfg["path"], dbCfg["name"])
            if r == database.DatabaseManager.DBM_RESULT_ERROR:
                Log.error("Unable to open database %s.", dbCfg["name"])
                self._status = SquadTrackServer.STATUS_RESOURCES_ERROR
                return
            self._connectors.Add(dbCfg["name"], self._dbManager.GetDatabase(dbCfg["name"]))

        # Server interface
        if iface == None:
            rconCfg = self._config.cfg["rcon"]
            iface = squadtrackinterface.SquadRconInterface(rconCfg["ip"], rconCfg["port"], rconCfg["password"], rconCfg.get("timeout", 10))
        self._svInterface = iface
        if not self._svInterface.Open():
            Log.error("Unable to Open server interface.")
            self._status = SquadTrackServer.STATUS_RCON_ERROR
            return

        # Discord
        discordCfg = self._config.GetValue("discord", {})
        if discordCfg.get("enabled", False):
            token = discordconnector.LoadToken(discordCfg.get("envFile", "discord.env"))
            if token == None:
                Log.error("Discord is enabled but DISCORD_BOT_TOKEN is not set in %s.", discordCfg.get("envFile", "discord.env"))
                self._status = SquadTrackServer.STATUS_CONFIG_ERROR
                return
            self._discord = discordconnector.DiscordConnector(token, discordCfg.get("readyTimeout", 30))
            self._connectors.Add("discord", self._discord)

        self._playerManager = playermanager.PlayerManager()
        self._namedEvents = queue.Queue()

        # Server data handling
        exportAPI = squadtrackAPI.API()
        exportAPI.GetPlayerCount    = self.API_GetPlayerCount
        exportAPI.GetAllPlayers     = self.API_GetAllPlayers
        exportAPI.GetCurrentLayer   = self.API_GetCurrentLayer
        exportAPI.Execute           = self.API_Execute
        exportAPI.EmitEvent         = self.API_EmitEvent
        exportAPI.GetPlugin         = self.API_GetPlugin
        exportAPI.GetConnector      = self.API_GetConnector
        exportAPI.GetDatabase       = self.API_GetDatabase
        self._serverData = serverdata.ServerData(exportAPI, self._svInterface, self._connectors, args, self._clock)

        # Plugins
        self._pluginManager = plugin.PluginManager(self._connectors)
        result = self._pluginManager.Initialize(self._config.GetValue("Plugins", []), self._serverData)
        if not result:
            self._status = SquadTrackServer.STATUS_PLUGIN_ERROR
            return
        self._logicDelayS = self._config.GetValue("logicDelay", 0.1)
        self._rosterRefreshS = self._config.GetValue("rosterRefreshInterval", 30)
        self._rosterTimeout = timeout.Timeout(self._clock)

        Log.info("SquadTrack initialized in %.2f seconds!\n" % (time.time() - startTime))

    def Finish(self):
        if not self._isFinished:
            Log.info("Finishing SquadTrack...")
            self._status = SquadTrackServer.STATUS_FINISHING
            self.Stop()
            if self._pluginManager != None:
                self._pluginManager.Event(squadtrackEvent.Event(squadtrackEvent.SQUADTRACK_EVENT_TYPE_SHUTDOWN))
                self._pluginManager.Finish()
            if self._discord != None:
                self._discord.Stop()
            if self._svInterface != None:
                self._svInterface.Close()
            if self._dbManager != None:
                self._dbManager.CloseAll()
            self._status = SquadTrackServer.STATUS_FINISHED
            self._isFinished = True
            Log.info("Finished SquadTrack.")

    def RefreshRoster(self, emitEvents : bool = True):
        """Fetches players and the current layer, plugins get connect/disconnect/layer events for the differences."""
        players = self._svInterface.ListPlayers()
        layer = self._svInterface.ShowCurrentMap()
        connected, disconnected = self._playerManager.Sync(players)
        Log.debug("Roster refreshed, %d players, %d connected, %d disconnected", len(players), len(connected), len(disconnected))

        oldLayer = self._currentLayer
        if layer != None:
            self._currentLayer = layer
            self._serverData.layerName = layer.layerName
            self._serverData.levelName = layer.levelName

        if not emitEvents:
            return
        for pl in connected:
            self._pluginManager.Event(squadtrackEvent.PlayerConnectedEvent(pl))
        for pl in disconnected:
            self._pluginManager.Event(squadtrackEvent.PlayerDisconnectedEvent(pl))
        if layer != None and (oldLayer == None or oldLayer.layerName != layer.layerName):
            self._pluginManager.Event(squadtrackEvent.LayerChangedEvent(layer.layerName, oldLayer.layerName if oldLayer != None else ""))

    def Start(self):
        try:
            if self._discord != None and not self._discord.Start():
                Log.error("Discord client failed to start, abort startup.")
                self._status = SquadTrackServer.STATUS_RESOURCES_ERROR
                return

            try:
                self.RefreshRoster(emitEvents = False)
            except squadtrackinterface.RCON_ERRORS as e:
                Log.warning("Initial roster fetch failed : %s", e)
            self._rosterTimeout.Set(self._rosterRefreshS)

            if not self._pluginManager.Start():
                self._status = SquadTrackServer.STATUS_PLUGIN_ERROR
                return
            self._isRunning = True
            self._status = SquadTrackServer.STATUS_RUNNING
            self._pluginManager.Event(squadtrackEvent.Event(squadtrackEvent.SQUADTRACK_EVENT_TYPE_INIT))
            while self._isRunning:
                startTime = time.time()
                self.Loop()
                elapsed = time.time() - startTime
                sleepTime = self._logicDelayS - elapsed
                if sleepTime <= 0:
                    sleepTime = 0
                time.sleep(sleepTime)

        except KeyboardInterrupt:
            signal.signal(signal.SIGINT, signal.SIG_IGN)
            Log.info("Interrupt received.")
            Sighandler(signal.SIGINT, -1)

    def Stop(self):
        if self._isRunning:
            Log.info("Stopping SquadTrack...")
            self._status = SquadTrackServer.STATUS_STOPPING
            self._isRunning = False
            self._status = SquadTrackServer.STATUS_STOPPED
            Log.info("Stopped.")

    def Loop(self):
        if self._rosterTimeout.Consume():
            try:
                self.RefreshRoster()
            except squadtrackinterface.RCON_ERRORS as e:
                Log.error("Roster refresh failed, keeping the previous roster : %s", e)
            self._rosterTimeout.Set(self._rosterRefreshS)
        self.DispatchNamedEvents()
        self._pluginManager.Loop()

    def DispatchNamedEvents(self):
        while not self._namedEvents.empty():
            event = self._namedEvents.get()
            Log.debug("Dispatching %s", event)
            self._pluginManager.Event(event)

    # API export functions
    def API_GetPlayerCount(self) -> int:
        return self._playerManager.GetPlayerCount()

    def API_GetAllPlayers(self):
        return self._playerManager.GetAllPlayers()

    def API_GetCurrentLayer(self) -> squadtrackinterface.CurrentLayer:
        return self._currentLayer

    def API_Execute(self, command : str) -> str:
        return self._svInterface.Execute(command)

    def API_EmitEvent(self, name : str, data : dict = None):
        self._namedEvents.put(squadtrackEvent.NamedEvent(name, data))

    def API_GetPlugin(self, name) -> plugin.Plugin:
        return self._pluginManager.GetPlugin(name)

    def API_GetConnector(self, name):
        return self._connectors.Get(name)

    def API_GetDatabase(self, name) -> database.ADatabase:
        return self._dbManager.GetDatabase(name)


def InitLogger():
    loggingMode = logging.INFO
    loggingFile = ""

    if Args.debug:
        print("DEBUGGING MODE.")
        loggingMode = logging.DEBUG
    if Args.logfile:
        # Add timestamp to log file so they don't get overwritten
        if os.path.exists(Args.logfile):
            newLogfile = Args.logfile + '-' + time.strftime("%m%d%Y_%H%M%S", time.localtime(time.time()))
            Args.logfile = newLogfile
        else:
            newLogfile = Args.logfile
        print(f"Logging into file {newLogfile}")
        loggingFile = newLogfile

    if loggingFile != "":
        logging.basicConfig(
        filename = loggingFile,
        level = loggingMode,
        filemode = 'a',
        format='%(asctime)s %(levelname)08s %(name)s %(message)s',
        )
    else:
        logging.basicConfig(
        level = loggingMode,
        format='%(asctime)s %(levelname)08s %(name)s %(message)s',
        )
    # discord.py is chatty on INFO
    logging.getLogger("discord").setLevel(logging.WARNING if not Args.debug else logging.DEBUG)


def main():
    global Args
    Args = Argparser.parse_args()
    InitLogger()
    signal.signal(signal.SIGINT, Sighandler)
    signal.signal(signal.SIGTERM, Sighandler)
    Log.info("SquadTrack entry point.")
    global Server
    Server = SquadTrackServer(Args, Args.config if Args.config else CONFIG_DEFAULT_PATH)
    int_status = Server.GetStatus()
    if int_status == SquadTrackServer.STATUS_INIT:
        try:
            Server.Start()  # it will exit the Start on user shutdown
        except Exception as e:
            Log.error(f"ERROR occurred: Type: {type(e)}; Reason: {e}; Traceback: {traceback.format_exc()}")
            print("\n\nCRASH DETECTED, CHECK LOGS")
        int_status = Server.GetStatus()
        if int_status < SquadTrackServer.STATUS_INIT:
            Log.error("SquadTrack startup error %s" % (SquadTrackServer.StatusString(int_status)))
    else:
        Log.error("SquadTrack initialize error %s" % (SquadTrackServer.StatusString(int_status)))
    Server.Finish()
    Server = None
    Log.info("SquadTrack finished.")


if __name__ == "__main__":
    main()
