import logging
import re
import threading
from dataclasses import dataclass

from rcon.source import Client
from rcon.exceptions import EmptyResponse, SessionTimeout, WrongPassword

import lib.shared.player as player

Log = logging.getLogger(__name__)

GAMEMODE_SEED = "Seed"
KNOWN_GAMEMODES = ("Seed", "RAAS", "AAS", "Invasion", "Insurgency", "Skirmish", "TC", "Destruction", "Training", "Tanks", "Track")

# ID: 3 | Online IDs: EOS: 0002a1b2c3 steam: 76561198000000001 | Name: Foo | Team ID: 1 | Squad ID: 2 | Is Leader: True | Role: USA_SL_01
LIST_PLAYERS_REGEX = re.compile(r"^ID: (?P<id>\d+) \| Online IDs:(?P<onlineIds>[^|]*)\| Name: (?P<name>.*?) \| Team ID: (?P<teamId>\d+|N/A) \| Squad ID: (?P<squadId>\d+|N/A)")
# ID: 3 | SteamID: 76561198000000001 | EOSID: 0002a1b2c3 | Name: Foo | Team ID: 1 | Squad ID: 2
LIST_PLAYERS_LEGACY_REGEX = re.compile(r"^ID: (?P<id>\d+) \| SteamID: (?P<steamID>\d+)(?: \| EOSID: (?P<eosID>\w+))? \| Name: (?P<name>.*?) \| Team ID: (?P<teamId>\d+|N/A) \| Squad ID: (?P<squadId>\d+|N/A)")
ONLINE_ID_REGEX = re.compile(r"(\w+): *(\w+)")
CURRENT_LAYER_REGEX = re.compile(r"^Current level is (?P<levelName>[^,]*), layer is (?P<layerName>[^,\r\n]*)")
DISCONNECTED_SECTION = "----- Recently Disconnected Players"

# failures of a single command, the connection is retried on the next one
RCON_ERRORS = (OSError, EmptyResponse, SessionTimeout, WrongPassword)


@dataclass
class CurrentLayer:
    levelName : str
    layerName : str
    gamemode : str

    def IsSeed(self) -> bool:
        return self.gamemode == GAMEMODE_SEED


def _ToInt(value : str) -> int:
    if value == None or value == "N/A":
        return None
    return int(value)


def ParseGamemode(layerName : str) -> str:
    """Picks the gamemode out of a layer name such as Narva_Seed_v1 or "Al Basrah Seed v1"."""
    for token in re.split(r"[_\s]+", layerName):
        if token in KNOWN_GAMEMODES:
            return token
    return ""


def ParseListPlayers(response : str) -> list[player.Player]:
    """
    Parses the ListPlayers command output into players, both the EOS era format and the older
    SteamID only one. Recently disconnected players are not part of the roster.
    """
    players = []
    if response == None:
        return players
    for line in response.splitlines():
        line = line.strip()
        if line.startswith(DISCONNECTED_SECTION):
            break
        match = LIST_PLAYERS_REGEX.match(line)
        if match != None:
            onlineIds = { key.lower() : value for key, value in ONLINE_ID_REGEX.findall(match.group("onlineIds")) }
            players.append(player.Player(int(match.group("id")), match.group("name"),
                                         steamID = onlineIds.get("steam", None),
                                         eosID = onlineIds.get("eos", None),
                                         teamId = _ToInt(match.group("teamId")),
                                         squadId = _ToInt(match.group("squadId"))))
            continue
        match = LIST_PLAYERS_LEGACY_REGEX.match(line)
        if match != None:
            players.append(player.Player(int(match.group("id")), match.group("name"),
                                         steamID = match.group("steamID"),
                                         eosID = match.group("eosID"),
                                         teamId = _ToInt(match.group("teamId")),
                                         squadId = _ToInt(match.group("squadId"))))
        elif line.startswith("ID:"):
            Log.debug("Unrecognized ListPlayers line %s", line)
    return players


def ParseCurrentLayer(response : str) -> CurrentLayer:
    if response == None:
        return None
    match = CURRENT_LAYER_REGEX.match(response.strip())
    if match == None:
        Log.warning("Unrecognized ShowCurrentMap response %s", response)
        return None
    layerName = match.group("layerName").strip()
    return CurrentLayer(match.group("levelName").strip(), layerName, ParseGamemode(layerName))


class IServerInterface():
    def __init__(self):
        pass

    def Open(self) -> bool:
        return False

    def Close(self):
        pass

    def IsOpened(self) -> bool:
        return False

    def Execute(self, command : str) -> str:
        return "Not implemented"

    def ListPlayers(self) -> list[player.Player]:
        return []

    def ShowCurrentMap(self) -> CurrentLayer:
        return None


class SquadRconInterface(IServerInterface):
    """
    Squad server console over Source RCON. One connection is kept open and shared by the main loop
    and plugin threads, a dropped connection is reopened on the next command.
    """
    def __init__(self, ipAddress : str, port : int, password : str, timeout : float = 10):
        super().__init__()
        self._address = ipAddress
        self._port = port
        self._password = password
        self._timeout = timeout
        self._client = None
        self._lock = threading.Lock()

    def __del__(self):
        if hasattr(self, "_lock"):
            self.Close()

    def _Connect(self):
        client = Client(self._address, self._port, timeout = self._timeout, passwd = self._password)
        client.connect(login = True)
        self._client = client

    def Open(self) -> bool:
        with self._lock:
            if self._client != None:
                return True
            try:
                self._Connect()
            except WrongPassword:
                Log.error("RCON at %s:%s rejected the password.", self._address, self._port)
                return False
            except OSError as e:
                Log.error("Unable to connect to RCON at %s:%s : %s", self._address, self._port, e)
                return False
            Log.info("Connected to RCON at %s:%s", self._address, self._port)
            return True

    def Close(self):
        with self._lock:
            if self._client != None:
                try:
                    self._client.close()
                except OSError as e:
                    Log.debug("Error while closing RCON connection : %s", e)
                self._client = None

    def IsOpened(self) -> bool:
        return self._client != None

    def Execute(self, command : str) -> str:
        with self._lock:
            if self._client == None:
                self._Connect()
            try:
                Log.debug("RCON command %s", command)
                return self._client.run(command)
            except RCON_ERRORS:
                self._client.close()
                self._client = None
                raise

    def ListPlayers(self) -> list[player.Player]:
        return ParseListPlayers(self.Execute("ListPlayers"))

    def ShowCurrentMap(self) -> CurrentLayer:
        return ParseCurrentLayer(self.Execute("ShowCurrentMap"))
