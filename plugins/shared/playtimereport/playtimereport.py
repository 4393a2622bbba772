import logging
import os
from datetime import date, timedelta

import discord
import requests

import connectors
import squadtrackEvent
import lib.shared.serverdata as serverdata
import lib.shared.config as config
import lib.shared.clock as clock
import lib.shared.playtime as playtime
import lib.shared.util as util
import lib.shared.discordconnector as discordconnector

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "playtimereportCfg.json")

CONFIG_FALLBACK = \
"""{
    "database":"sqlite",
    "whitelisterClient":"whitelister",
    "discordClient":"discord",
    "channelID":"",
    "reportEvent":"SEND_PLAYTIME_REPORT",
    "reportDays":7
}
"""

OPTIONS = {
    "database"          : { "required" : False, "default" : "sqlite",               "description" : "Database connector to read playtime information from." },
    "whitelisterClient" : { "required" : False, "default" : "whitelister",          "description" : "The Whitelister connector." },
    "discordClient"     : { "required" : False, "default" : "discord",              "description" : "The Discord connector." },
    "channelID"         : { "required" : True,  "default" : "",                     "description" : "The ID of the channel to send the report message to." },
    "reportEvent"       : { "required" : False, "default" : "SEND_PLAYTIME_REPORT", "description" : "Named event that triggers the report, raise it with the task scheduler." },
    "reportDays"        : { "required" : False, "default" : 7,                      "description" : "Number of whole days before today covered by the report." },
}

REPORT_TITLE = "Clan statistics (in minutes)"
REPORT_HEADER = ["Clan", "Played", "Seeded", "Ratio"]
REPORT_ALIGN = [util.ALIGN_LEFT, util.ALIGN_RIGHT, util.ALIGN_RIGHT, util.ALIGN_RIGHT]
DATE_FORMAT = "%Y-%m-%d"

Log = logging.getLogger(__name__)

PluginInstance = None


def ReportWindow(today : date, days : int) -> tuple[date, date]:
    """Last `days` whole days before today, today itself is still being tracked."""
    return today - timedelta(days = days), today - timedelta(days = 1)


def BuildReportTable(aggregates : list[playtime.ClanAggregate]) -> str:
    rows = [[it.clanTag, str(it.played), str(it.seeded), playtime.FormatRatio(it.ratio)] for it in aggregates]
    return util.FormatTable(REPORT_HEADER, rows, REPORT_ALIGN)


def BuildReportEmbed(table : str, dateFrom : date, dateTill : date) -> discord.Embed:
    embed = discord.Embed(title = REPORT_TITLE, description = "```\n%s\n```" % table)
    embed.add_field(name = "From", value = dateFrom.strftime(DATE_FORMAT), inline = True)
    embed.add_field(name = "Till", value = dateTill.strftime(DATE_FORMAT), inline = True)
    return embed


class PlaytimeReport(object):
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config, connectorTable : connectors.ConnectorTable, clk : clock.Clock = None):
        self._serverData = serverData
        self._config = cfg
        self._clock = clk if clk != None else serverData.clock
        self._repository = playtime.PlaytimeRepository(connectorTable.Require(cfg["database"]))
        self._whitelister = connectorTable.Require(cfg["whitelisterClient"])
        self._discord = connectorTable.Require(cfg["discordClient"])
        self._knownClans : list[str] = []

    def GetKnownClans(self) -> list[str]:
        try:
            self._knownClans = list(self._whitelister.GetWhitelistClans().keys())
        except requests.RequestException as e:
            Log.error("Unable to load whitelist clans, using %d clans from the last load : %s", len(self._knownClans), e)
        return self._knownClans

    def GenerateReport(self, dateFrom : date, dateTill : date) -> list[playtime.ClanAggregate]:
        return playtime.AggregateClans(self._repository, self.GetKnownClans(), dateFrom, dateTill)

    def SendReport(self) -> bool:
        dateFrom, dateTill = ReportWindow(self._clock.Today(), self._config["reportDays"])
        aggregates = self.GenerateReport(dateFrom, dateTill)
        embed = BuildReportEmbed(BuildReportTable(aggregates), dateFrom, dateTill)
        try:
            self._discord.SendMessage(self._config["channelID"], embed = embed)
        except (discordconnector.DiscordConnectorError, discord.DiscordException, TimeoutError) as e:
            Log.error("Unable to send playtime report : %s", e)
            return False
        Log.info("Sent playtime report of %d clans for %s - %s.", len(aggregates), dateFrom, dateTill)
        return True

    def OnNamedEvent(self, event : squadtrackEvent.NamedEvent) -> bool:
        if event.name == self._config["reportEvent"]:
            self.SendReport()
        return False


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    if exports == None:
        Log.error("Playtime report needs the connector table.")
        return False
    try:
        cfg = LoadConfig()
        global PluginInstance
        PluginInstance = PlaytimeReport(serverData, cfg, exports)
    except (config.ConfigError, KeyError) as e:
        Log.error("Unable to initialize playtime report : %s", e)
        return False
    return True


def OnStart():
    return True


def OnLoop():
    pass


def OnFinish():
    pass


# Called from system on some event raising, return True to indicate event being captured in this module, False to continue tossing it to other plugins in chain
def OnEvent(event) -> bool:
    if event.type == squadtrackEvent.SQUADTRACK_EVENT_TYPE_NAMED:
        return PluginInstance.OnNamedEvent(event)
    return False
