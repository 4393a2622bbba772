import logging
import os
import re
from dataclasses import dataclass
from urllib.parse import urljoin

import requests

import connectors
import lib.shared.serverdata as serverdata
import lib.shared.config as config

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "whitelisterCfg.json")

CONFIG_FALLBACK = \
"""{
    "whitelisterUrl":"http://whitelister.local",
    "whitelistPath":"wl",
    "whitelistGroup":"Whitelist",
    "timeout":10
}
"""

OPTIONS = {
    "whitelisterUrl" : { "required" : True,  "default" : "",          "description" : "Whitelister base URL." },
    "whitelistPath"  : { "required" : False, "default" : "wl",        "description" : "Whitelist URL slug." },
    "whitelistGroup" : { "required" : False, "default" : "Whitelist", "description" : "Name of the default whitelist group." },
    "timeout"        : { "required" : False, "default" : 10,          "description" : "HTTP timeout in seconds." },
}

CONNECTOR_NAME = "whitelister"
DISCORD_ROLE_LIST = "Discord Role"

# Admin=76561198000000001:Whitelist // [CLAN] Player name
WHITELIST_PATTERN = re.compile(r"^Admin=(?P<steamID>[0-9]+):(?P<groupName>[A-Z]+) // \[(?P<listName>[A-Z]+)\] ", re.IGNORECASE)

Log = logging.getLogger(__name__)

PluginInstance = None


@dataclass
class WhitelistEntry:
    steamID : str
    groupName : str
    listName : str


def ParseWhitelist(text : str) -> list[WhitelistEntry]:
    """Lines that do not look like a whitelist entry are dropped."""
    entries = []
    for line in text.split("\n"):
        match = WHITELIST_PATTERN.match(line)
        if match != None:
            entries.append(WhitelistEntry(match.group("steamID"), match.group("groupName"), match.group("listName")))
    return entries


class WhitelisterConnector(object):
    """
    Facade over the Whitelister service, fetches the whitelist feed on every call.
    Network and HTTP errors are raised to the caller.
    """
    def __init__(self, cfg : config.Config):
        self._config = cfg

    def GetWhitelistUrl(self) -> str:
        return urljoin(self._config["whitelisterUrl"], self._config["whitelistPath"])

    def FetchWhitelist(self) -> str:
        url = self.GetWhitelistUrl()
        Log.debug("Fetching whitelist from %s", url)
        response = requests.get(url, timeout = self._config["timeout"])
        response.raise_for_status()
        return response.text

    def GetWhitelistPlayers(self) -> list[WhitelistEntry]:
        return ParseWhitelist(self.FetchWhitelist())

    def GetWhitelistClans(self) -> dict[str, list[WhitelistEntry]]:
        """Whitelist entries of the default group grouped by their list, in feed order."""
        clans = {}
        for entry in self.GetWhitelistPlayers():
            if entry.groupName != self._config["whitelistGroup"]:
                continue
            if entry.listName == DISCORD_ROLE_LIST:
                continue
            clans.setdefault(entry.listName, []).append(entry)
        return clans


class WhitelisterPlugin(object):
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config):
        self._serverData = serverData
        self.connector = WhitelisterConnector(cfg)

    def Start(self) -> bool:
        return True

    def Finish(self):
        pass


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


# Called once when this module ( plugin ) is loaded, connectors are available to later plugins
def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    try:
        cfg = LoadConfig()
    except config.ConfigError as e:
        Log.error("Whitelister config is invalid : %s", e)
        return False
    global PluginInstance
    PluginInstance = WhitelisterPlugin(serverData, cfg)
    if exports != None:
        exports.Add(CONNECTOR_NAME, PluginInstance.connector)
    return True


# Called once when platform starts, after platform is done with loading internal data and preparing
def OnStart():
    return PluginInstance.Start()


# Called each loop tick from the system
def OnLoop():
    pass


# Called before plugin is unloaded by the system, finalize and free everything here
def OnFinish():
    pass


# Called from system on some event raising, return True to indicate event being captured in this module, False to continue tossing it to other plugins in chain
def OnEvent(event) -> bool:
    return False
