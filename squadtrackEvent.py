import lib.shared.player as player

SQUADTRACK_EVENT_TYPE_INIT                  = 1 # Fired once after all plugins have started, no specific data.
SQUADTRACK_EVENT_TYPE_SHUTDOWN              = 2 # Fired before plugins are finished.
SQUADTRACK_EVENT_TYPE_PLAYER_CONNECTED      = 3 # PlayerConnectedEvent : player appeared in the roster, roster already contains it.
SQUADTRACK_EVENT_TYPE_PLAYER_DISCONNECTED   = 4 # PlayerDisconnectedEvent : player left the roster, roster no longer contains it.
SQUADTRACK_EVENT_TYPE_LAYER_CHANGED         = 5 # LayerChangedEvent : layerName : str, oldLayerName : str
SQUADTRACK_EVENT_TYPE_NAMED                 = 6 # NamedEvent : name : str, custom events raised by plugins ( e.g. task scheduler ) through API.EmitEvent


class Event():
    def __init__(self, type : int, data : dict = None):
        self.type = type
        self.data = data if data != None else {}


class PlayerConnectedEvent(Event):
    def __init__(self, pl : player.Player, data : dict = None):
        self.player = pl
        super().__init__(SQUADTRACK_EVENT_TYPE_PLAYER_CONNECTED, data)


class PlayerDisconnectedEvent(Event):
    def __init__(self, pl : player.Player, data : dict = None):
        self.player = pl
        super().__init__(SQUADTRACK_EVENT_TYPE_PLAYER_DISCONNECTED, data)


class LayerChangedEvent(Event):
    def __init__(self, layerName : str, oldLayerName : str):
        self.layerName = layerName
        self.oldLayerName = oldLayerName
        super().__init__(SQUADTRACK_EVENT_TYPE_LAYER_CHANGED, {})


class NamedEvent(Event):
    def __init__(self, name : str, data : dict = None):
        self.name = name
        super().__init__(SQUADTRACK_EVENT_TYPE_NAMED, data)

    def __repr__(self):
        return "NamedEvent(%s)" % self.name
