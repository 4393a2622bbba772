import logging

log = logging.getLogger(__name__)


class Player(object):
    """
    A player currently known to the server roster.
    Identity is the steamID when the server reports one, eosID otherwise; either may be missing
    while the player is still loading in.
    """
    def __init__(self, id : int, name : str, steamID : str = None, eosID : str = None, teamId : int = None, squadId : int = None):
        self._id = id
        self._name = name
        self._steamID = steamID
        self._eosID = eosID
        self._teamId = teamId
        self._squadId = squadId

    def GetId(self) -> int:
        return self._id

    def GetName(self) -> str:
        return self._name

    def GetSteamId(self) -> str:
        return self._steamID

    def GetEosId(self) -> str:
        return self._eosID

    def GetTeamId(self) -> int:
        return self._teamId

    def GetSquadId(self) -> int:
        return self._squadId

    def GetKey(self) -> str:
        if self._steamID:
            return self._steamID
        if self._eosID:
            return self._eosID
        return "id:%d" % self._id

    def HasIdentity(self) -> bool:
        return bool(self._steamID)

    def Update(self, other) -> dict:
        """Copies changed fields from a fresher record, returns the old values of what changed."""
        changed = {}
        for attr in ("_name", "_teamId", "_squadId", "_steamID", "_eosID"):
            newValue = getattr(other, attr)
            if newValue != getattr(self, attr):
                changed[attr[1:]] = getattr(self, attr)
                setattr(self, attr, newValue)
        if len(changed) > 0:
            log.debug(f"Player {self} changed {changed}")
        return changed

    def __repr__(self):
        return f"{self._name} (ID : {self._id}) (SteamID : {self._steamID}) (TeamId : {self._teamId})"
