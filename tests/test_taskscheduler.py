import pytest

import lib.shared.config as config
import plugins.shared.taskscheduler.taskscheduler as taskscheduler


def SchedulerConfig(tasks, **overrides):
    values = { "tasks" : tasks }
    values.update(overrides)
    return config.Config.FromSpecification(taskscheduler.OPTIONS, values)


@pytest.fixture
def scheduler(serverData):
    plugins = []

    def Create(tasks, **overrides):
        plugin = taskscheduler.TaskScheduler(serverData, SchedulerConfig(tasks, **overrides))
        plugins.append(plugin)
        return plugin

    yield Create
    for plugin in plugins:
        plugin.Finish()


class TestScheduleTask:

    def test_valid_task_is_scheduled(self, scheduler):
        plugin = scheduler([])
        assert plugin.ScheduleTask({ "name" : "report", "cron" : "0 12 * * 1", "event" : "SEND_PLAYTIME_REPORT" })
        assert plugin.GetScheduledTasks() == ["report"]

    @pytest.mark.parametrize("task", [
        { "cron" : "0 12 * * 1", "event" : "SEND_PLAYTIME_REPORT" },
        { "name" : "report", "event" : "SEND_PLAYTIME_REPORT" },
        { "name" : "report", "cron" : "0 12 * * 1" },
        { "name" : "report", "cron" : "0 12 * * 1", "event" : "" },
    ])
    def test_incomplete_task_is_rejected(self, scheduler, task):
        plugin = scheduler([])
        assert not plugin.ScheduleTask(task)
        assert plugin.GetScheduledTasks() == []

    def test_invalid_cron_is_rejected(self, scheduler):
        plugin = scheduler([])
        assert not plugin.ScheduleTask({ "name" : "broken", "cron" : "61 * * * *", "event" : "X" })
        assert not plugin.ScheduleTask({ "name" : "broken", "cron" : "not a cron", "event" : "X" })

    def test_bad_task_does_not_block_others(self, scheduler):
        plugin = scheduler([
            { "name" : "first", "cron" : "0 * * * *", "event" : "A" },
            { "name" : "broken", "cron" : "nope", "event" : "B" },
            { "event" : "C" },
            { "name" : "last", "cron" : "*/5 * * * *", "event" : "D" },
        ])
        assert plugin.Start()
        assert plugin.GetScheduledTasks() == ["first", "last"]

    @pytest.mark.parametrize("cron", [5, ["0", "12", "*", "*", "1"], { "minute" : 0 }])
    def test_non_string_cron_is_skipped(self, scheduler, cron):
        plugin = scheduler([
            { "name" : "bad", "cron" : cron, "event" : "X" },
            { "name" : "good", "cron" : "0 12 * * 1", "event" : "Y" },
        ])
        assert plugin.Start()
        assert plugin.GetScheduledTasks() == ["good"]

    def test_unexpected_error_skips_only_that_task(self, scheduler, monkeypatch):
        plugin = scheduler([
            { "name" : "first", "cron" : "0 * * * *", "event" : "A" },
            { "name" : "second", "cron" : "0 12 * * 1", "event" : "B" },
        ])
        addJob = plugin._scheduler.add_job

        def FlakyAddJob(func, trigger, args = None, name = None):
            if name == "first":
                raise RuntimeError("job store unavailable")
            return addJob(func, trigger, args = args, name = name)

        monkeypatch.setattr(plugin._scheduler, "add_job", FlakyAddJob)
        assert plugin.Start()
        assert plugin.GetScheduledTasks() == ["second"]


class TestTriggerEvent:

    def test_emits_named_event(self, scheduler, api):
        plugin = scheduler([])
        plugin.TriggerEvent({ "name" : "report", "cron" : "0 12 * * 1", "event" : "SEND_PLAYTIME_REPORT" })
        assert api.emitted == ["SEND_PLAYTIME_REPORT"]

    def test_emit_failure_is_contained(self, scheduler, api, monkeypatch):
        def FailingEmit(name, data = None):
            raise RuntimeError("listener blew up")
        monkeypatch.setattr(api, "EmitEvent", FailingEmit)
        plugin = scheduler([])
        plugin.TriggerEvent({ "name" : "report", "cron" : "0 12 * * 1", "event" : "SEND_PLAYTIME_REPORT" })


def test_finish_removes_all_jobs(scheduler):
    plugin = scheduler([{ "name" : "first", "cron" : "0 * * * *", "event" : "A" }])
    plugin.Start()
    plugin.Finish()
    assert plugin.GetScheduledTasks() == []
