import connectors
import lib.shared.clock as clock


class ServerData():

    def __init__(self, API, iface, connectorTable : connectors.ConnectorTable, args, clk : clock.Clock = None):
        self.API = API
        self.args = args
        self.interface = iface
        self.connectors = connectorTable
        self.clock = clk if clk != None else clock.SystemClock
        self.layerName = ""
        self.levelName = ""

    def __repr__(self):
        return "Server data (layer %s)\n" % self.layerName
