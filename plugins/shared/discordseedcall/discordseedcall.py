import logging
import os
from datetime import datetime

import discord

import connectors
import lib.shared.serverdata as serverdata
import lib.shared.config as config
import lib.shared.clock as clock
import lib.shared.timeout as timeout
import lib.shared.discordconnector as discordconnector

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "discordseedcallCfg.json")

CONFIG_FALLBACK = \
"""{
    "discordClient":"discord",
    "channelID":"",
    "time":"15:00",
    "message":"Seeding has started.",
    "pingGroups":[],
    "seededThreshold":60
}
"""

OPTIONS = {
    "discordClient"   : { "required" : False, "default" : "discord", "description" : "The Discord connector." },
    "channelID"       : { "required" : True,  "default" : "",        "description" : "The ID of the channel to send the seeding message to." },
    "time"            : { "required" : True,  "default" : "",        "description" : "Time of the day (UTC, hh:mm) at which the message will be sent." },
    "message"         : { "required" : True,  "default" : "",        "description" : "The message being sent." },
    "pingGroups"      : { "required" : False, "default" : [],        "description" : "A list of Discord role IDs to ping." },
    "seededThreshold" : { "required" : False, "default" : 60,        "description" : "No message is sent while more players than this are online." },
}

Log = logging.getLogger(__name__)

PluginInstance = None


def MinutesOfDay(value) -> int:
    return value.hour * 60 + value.minute


def SecondsUntil(timeOfDay : str, now : datetime) -> int:
    """
    Seconds from now until timeOfDay (HH:MM) today, minute precision.
    None when that time has already passed today.
    """
    target = datetime.strptime(timeOfDay, "%H:%M")
    minutesDiff = MinutesOfDay(target) - MinutesOfDay(now)
    if minutesDiff > 0:
        return minutesDiff * 60
    return None


def BuildContent(message : str, pingGroups : list) -> str:
    if len(pingGroups) > 0:
        return message + "\n\n" + " ".join("<@&%s>" % groupID for groupID in pingGroups)
    return message


class DiscordSeedCall(object):
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config, connectorTable : connectors.ConnectorTable, clk : clock.Clock = None):
        self._serverData = serverData
        self._config = cfg
        self._clock = clk if clk != None else serverData.clock
        self._discord = connectorTable.Require(cfg["discordClient"])
        self._timeout = timeout.Timeout(self._clock)

    def Start(self) -> bool:
        try:
            seconds = SecondsUntil(self._config["time"], self._clock.Now())
        except ValueError:
            Log.error("Invalid time %s, expected HH:MM", self._config["time"])
            return False
        if seconds == None:
            Log.info("Wrong timeout, won't send a message")
            return True
        Log.info("Message will be sent in %d seconds", seconds)
        self._timeout.Set(seconds)
        return True

    def IsPending(self) -> bool:
        return self._timeout.IsArmed()

    def SendMessage(self) -> bool:
        if self._serverData.API.GetPlayerCount() > self._config["seededThreshold"]:
            Log.info("Server already seeded.")
            return False
        content = BuildContent(self._config["message"], self._config["pingGroups"])
        try:
            message = self._discord.SendMessage(self._config["channelID"], content = content,
                                                allowedMentions = discord.AllowedMentions(everyone = False, users = False, roles = True),
                                                crosspost = True)
        except (discordconnector.DiscordConnectorError, discord.DiscordException, TimeoutError) as e:
            Log.error("Error when sending message : %s", e)
            return False
        Log.info("Sent message '%s'", message.content)
        return True

    def Loop(self):
        if self._timeout.Consume():
            self.SendMessage()

    def Finish(self):
        self._timeout.Finish()


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


# Called once when this module ( plugin ) is loaded, return is bool to indicate success for the system
def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    if exports == None:
        Log.error("Discord seed call needs the connector table.")
        return False
    try:
        cfg = LoadConfig()
        global PluginInstance
        PluginInstance = DiscordSeedCall(serverData, cfg, exports)
    except (config.ConfigError, KeyError) as e:
        Log.error("Unable to initialize discord seed call : %s", e)
        return False
    return True


def OnStart():
    return PluginInstance.Start()


def OnLoop():
    PluginInstance.Loop()


def OnFinish():
    if PluginInstance != None:
        PluginInstance.Finish()


def OnEvent(event) -> bool:
    return False
