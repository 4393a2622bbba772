# Functions exported by the host to plugins through ServerData.API, assigned by SquadTrackServer.
class API():
    def __init__(self):
        self.GetPlayerCount     = None # () -> int
        self.GetAllPlayers      = None # () -> list[player.Player]
        self.GetCurrentLayer    = None # () -> squadtrackinterface.CurrentLayer | None
        self.Execute            = None # (command : str) -> str
        self.EmitEvent          = None # (name : str, data : dict = None), safe from any thread
        self.GetPlugin          = None # (name : str) -> plugin.Plugin
        self.GetConnector       = None # (name : str) -> any
        self.GetDatabase        = None # (name : str) -> database.ADatabase
