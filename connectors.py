import logging
import threading

Log = logging.getLogger(__name__)


class ConnectorTable():
    """
    Named shared services (databases, whitelister, discord) that plugins look up by name instead of
    importing each other. Plugins may register themselves here during OnInitialize.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._connectors : dict[str, any] = {}

    def Add(self, name : str, connector : any):
        with self._lock:
            if name in self._connectors:
                Log.warning("Connector %s is already registered, replacing it.", name)
            self._connectors[name] = connector

    def Get(self, name : str) -> any:
        with self._lock:
            return self._connectors.get(name, None)

    def Require(self, name : str) -> any:
        connector = self.Get(name)
        if connector == None:
            raise KeyError("Connector %s is not registered" % name)
        return connector
