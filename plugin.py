import logging
import importlib
import importlib.util
import time
import traceback
import connectors

Log = logging.getLogger(__name__)

PLUGIN_HOOKS = ("OnInitialize", "OnStart", "OnLoop", "OnEvent", "OnFinish")


class Plugin():

    def __init__(self, module):
        self._module = module
        self._onInitialize = None
        self._onStart = None
        self._onLoop = None
        self._onEvent = None
        self._onFinish = None
        self._isStarted = False
        self._isFinished = False

    def GetName(self) -> str:
        return self._module.__name__

    def GetModule(self):
        return self._module

    def Initialize(self, data : any, connectorTable : connectors.ConnectorTable) -> bool:
        missing = [hook for hook in PLUGIN_HOOKS if not callable(getattr(self._module, hook, None))]
        if len(missing) > 0:
            Log.error("Plugin %s is missing hooks %s", self.GetName(), ", ".join(missing))
            return False
        self._onInitialize = self._module.OnInitialize
        self._onStart = self._module.OnStart
        self._onLoop = self._module.OnLoop
        self._onEvent = self._module.OnEvent
        self._onFinish = self._module.OnFinish
        return self._onInitialize(data, connectorTable)

    def Finish(self):
        if self._isFinished:
            return
        Log.info("Finishing Plugin %s...", self.GetName())
        self._isFinished = True
        try:
            self._onFinish()
        except Exception as ex:
            Log.error("Exception [%s] caught on Finish for plugin [%s]\n %s", str(ex), self.GetName(), traceback.format_exc())
        Log.info("Finished Plugin %s.", self.GetName())

    def Start(self) -> bool:
        startTime = time.time()
        Log.info("Starting Plugin %s.", self.GetName())
        rslt = self._onStart()
        if rslt:
            self._isStarted = True
            Log.info("Plugin %s has started in %.2f seconds." % (self.GetName(), time.time() - startTime))
        return rslt

    def IsStarted(self) -> bool:
        return self._isStarted

    def Loop(self):
        try:
            self._onLoop()
        except Exception as ex:
            Log.error("Exception [%s] caught on Loop tick for plugin [%s]\n %s", str(ex), self.GetName(), traceback.format_exc())

    def Event(self, event) -> bool:
        try:
            return bool(self._onEvent(event))
        except Exception as ex:
            Log.error("Exception [%s] caught on Event call for plugin [%s]\n %s", str(ex), self.GetName(), traceback.format_exc())
        return False


class PluginManager():
    def __init__(self, connectorTable : connectors.ConnectorTable = None):
        self._isInit = False
        self._plugins : dict[str, Plugin] = {}
        self._isFinished = False
        self._connectors = connectorTable if connectorTable != None else connectors.ConnectorTable()

    def Initialize(self, targetPlugins : list, data : any) -> bool:
        Log.info("Loading plugins...")
        totalLoaded = 0
        for targetPlug in targetPlugins:
            plug = self.LoadPlugin(targetPlug["path"], data)
            if plug != None:
                self._plugins[targetPlug["path"]] = plug
                totalLoaded += 1
            elif targetPlug.get("required", True):
                Log.error("Required plugin %s failed to load." % targetPlug["path"])
                return False
        Log.info("Loaded total %d plugins. " % (totalLoaded))
        self._isInit = True
        return self._isInit

    def Start(self) -> bool:
        for targetPlug in self._plugins:
            if not self._plugins[targetPlug].Start():
                Log.error("Failed to start plugin %s." % targetPlug)
                return False
        return True

    def LoadPlugin(self, name, data : any) -> Plugin:
        Log.info("Loading plugin %s...", name)
        plugSpec = importlib.util.find_spec(name)
        if plugSpec == None:
            Log.error("Unable to locate plugin %s" % name)
            return None
        Log.debug("Full path to target module %s" % plugSpec.origin)
        mod = importlib.import_module(name)
        newPlug = Plugin(mod)
        startTime = time.time()
        if newPlug.Initialize(data, self._connectors):
            Log.info("Plugin %s has been Loaded and Initialized in %.2f seconds." % (mod.__name__, time.time() - startTime))
            return newPlug
        Log.error("Plugin %s was unable to initialize." % (name))
        return None

    def Finish(self):
        if not self._isFinished:
            Log.info("Finishing plugin manager...")
            # reverse order, dependants go before their connectors
            for name in reversed(list(self._plugins)):
                self._plugins[name].Finish()
            self._isFinished = True
            Log.info("Finished plugin manager.")

    def Loop(self):
        for plugin in self._plugins:
            self._plugins[plugin].Loop()

    def Event(self, event):
        for plugin in self._plugins:
            if self._plugins[plugin].Event(event): # handle hard capture return
                return

    def GetPlugin(self, plugName) -> Plugin:
        if plugName in self._plugins:
            return self._plugins[plugName]
        else:
            return None
