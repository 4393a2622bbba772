import logging
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

import connectors
import lib.shared.serverdata as serverdata
import lib.shared.config as config

SERVER_DATA = None

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "taskschedulerCfg.json")

CONFIG_FALLBACK = \
"""{
    "tasks":
    [
        {
            "name":"Weekly playtime report",
            "cron":"0 12 * * 1",
            "event":"SEND_PLAYTIME_REPORT"
        },
        {
            "name":"Daily whitelist clans reload",
            "cron":"0 6 * * *",
            "event":"RELOAD_WHITELIST_CLANS"
        }
    ],
    "timezone":"UTC"
}
"""

OPTIONS = {
    "tasks"    : { "required" : True,  "default" : [],    "description" : "Tasks to schedule, each with a name, a CRON expression and the event to raise." },
    "timezone" : { "required" : False, "default" : "UTC", "description" : "Timezone of all CRON expressions." },
}

TASK_FIELDS = ("name", "cron", "event")

Log = logging.getLogger(__name__)

PluginInstance = None


class TaskScheduler(object):
    """Raises named events on CRON schedules, it has no other behaviour of its own."""
    def __init__(self, serverData : serverdata.ServerData, cfg : config.Config):
        self._serverData = serverData
        self._config = cfg
        self._scheduler = BackgroundScheduler(timezone = cfg["timezone"])
        self._scheduled = []

    def GetScheduledTasks(self) -> list[str]:
        return [name for name, job in self._scheduled]

    def ScheduleTask(self, task : dict) -> bool:
        if not isinstance(task, dict) or any(not task.get(field, None) or not isinstance(task[field], str) for field in TASK_FIELDS):
            Log.error("Invalid task configuration: %s", task)
            return False
        try:
            trigger = CronTrigger.from_crontab(task["cron"], timezone = self._config["timezone"])
        except ValueError as e:
            Log.error("Invalid CRON expression for task \"%s\": %s (%s)", task["name"], task["cron"], e)
            return False

        Log.info("Scheduling task \"%s\" with CRON: %s", task["name"], task["cron"])
        job = self._scheduler.add_job(self.TriggerEvent, trigger, args = [task], name = task["name"])
        self._scheduled.append((task["name"], job))
        return True

    def TriggerEvent(self, task : dict):
        try:
            Log.info("Triggering event \"%s\" from task \"%s\".", task["event"], task["name"])
            self._serverData.API.EmitEvent(task["event"])
        except Exception as e:
            Log.error("Error triggering event for task \"%s\": %s", task["name"], e)

    def Start(self) -> bool:
        Log.info("Setting up scheduled tasks...")
        for task in self._config["tasks"]:
            try:
                self.ScheduleTask(task)
            except Exception as e:
                Log.error("Unable to schedule task %s : %s", task, e)
        self._scheduler.start()
        Log.info("%d tasks scheduled.", len(self._scheduled))
        return True

    def Finish(self):
        for name, job in self._scheduled:
            Log.debug("Stopping scheduled task: %s", name)
            job.remove()
        self._scheduled = []
        if self._scheduler.running:
            self._scheduler.shutdown(wait = False)
        Log.info("All scheduled tasks stopped.")


def LoadConfig(path : str = None) -> config.Config:
    raw = config.Config.fromJSON(path if path != None else CONFIG_DEFAULT_PATH, CONFIG_FALLBACK)
    return config.Config.FromSpecification(OPTIONS, raw.cfg if raw != None else {})


# Called once when this module ( plugin ) is loaded, return is bool to indicate success for the system
def OnInitialize(serverData : serverdata.ServerData, exports : connectors.ConnectorTable = None) -> bool:
    global SERVER_DATA
    SERVER_DATA = serverData
    try:
        cfg = LoadConfig()
    except config.ConfigError as e:
        Log.error("Task scheduler config is invalid : %s", e)
        return False
    global PluginInstance
    PluginInstance = TaskScheduler(serverData, cfg)
    return True


# Called once when platform starts, after platform is done with loading internal data and preparing
def OnStart():
    return PluginInstance.Start()


# Called each loop tick from the system
def OnLoop():
    pass


# Called before plugin is unloaded by the system, finalize and free everything here
def OnFinish():
    if PluginInstance != None:
        PluginInstance.Finish()


# Called from system on some event raising, return True to indicate event being captured in this module, False to continue tossing it to other plugins in chain
def OnEvent(event) -> bool:
    return False
