import lib.shared.player as player
import threading


class PlayerManager():
    def __init__(self):
        self._players : list[player.Player] = []
        self._lock = threading.Lock()

    def GetPlayerCount(self) -> int:
        with self._lock:
            return len(self._players)

    def GetAllPlayers(self) -> list[player.Player]:
        with self._lock:
            return self._players.copy()

    def Sync(self, fresh : list[player.Player]) -> tuple[list[player.Player], list[player.Player]]:
        """
        Replaces the roster with a freshly fetched one, keeping existing Player objects for players
        that stayed connected.

        :return: (connected, disconnected) players
        """
        with self._lock:
            known = { pl.GetKey() : pl for pl in self._players }
            connected = []
            roster = []
            for pl in fresh:
                existing = known.pop(pl.GetKey(), None)
                if existing == None:
                    connected.append(pl)
                    roster.append(pl)
                else:
                    existing.Update(pl)
                    roster.append(existing)
            disconnected = list(known.values())
            self._players = roster
        return connected, disconnected
